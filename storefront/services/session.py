# storefront/services/session.py
from typing import List

from storefront.domain.schemas import Coupon, CouponResult, ResolvedLine, Totals
from storefront.services.cart_store import CartStore
from storefront.services.catalog import CatalogSnapshot
from storefront.services.pricing import compute_totals, parse_coupon, resolve_lines
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ShopperSession:
    """
    To, co widzi widok koszyka: koszyk, snapshot katalogu i aktywny kupon.
    Tworzony jawnie i przekazywany dalej, bez globali.
    Kupon nie jest zapisywany, ginie razem z sesja.
    """

    def __init__(self, cart: CartStore, catalog: CatalogSnapshot):
        self.cart = cart
        self.catalog = catalog
        self.coupon: Coupon | None = None

    def apply_coupon(self, text) -> CouponResult:
        result = parse_coupon(text)
        if result.valid:
            self.coupon = result.coupon
            logger.info(f"Coupon {result.coupon.code} applied ({result.discount_percent}%)")
        else:
            #zly kod = brak rabatu, koszyk i checkout bez zmian
            self.coupon = None
            logger.info(f"Coupon rejected ({result.reason}): {result.code!r}")
        return result

    def clear_coupon(self) -> None:
        self.coupon = None

    def _ensure_catalog(self) -> None:
        if not self.catalog.loaded:
            self.catalog.fetch_catalog()

    def lines(self) -> List[ResolvedLine]:
        self._ensure_catalog()
        return resolve_lines(self.cart.get_all(), self.catalog.resolve)

    def totals(self) -> Totals:
        self._ensure_catalog()
        return compute_totals(self.cart.get_all(), self.catalog, self.coupon)

    def view(self) -> tuple[List[ResolvedLine], Totals]:
        self._ensure_catalog()
        items = self.cart.get_all()
        return (
            resolve_lines(items, self.catalog.resolve),
            compute_totals(items, self.catalog, self.coupon),
        )
