# storefront/services/checkout_service.py
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Sequence

from storefront.domain.errors import (
    CheckoutInProgressError,
    ConnectivityError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    PartialCommitError,
    ProductNotFoundError,
    StorefrontError,
)
from storefront.domain.schemas import (
    CheckoutResult,
    LineItem,
    Product,
    PurchaseLine,
    PurchaseSummary,
)
from storefront.services.lock_service import CheckoutGuard, LocalCheckoutGuard, new_owner_token
from storefront.services.pricing import apply_discount
from storefront.services.product_client import ProductClient
from storefront.utils.settings import CHECKOUT_MAX_WORKERS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

RETRY_MESSAGE = "We could not complete your purchase. Please try again."


class CheckoutState(str, Enum):
    IDLE = "IDLE"
    VALIDATING = "VALIDATING"
    COMMITTING = "COMMITTING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class CheckoutCoordinator:
    """
    Jedyny komponent, ktory zmienia stan magazynu na serwerze.

    1. pusty koszyk -> EmptyCartError, bez zadnego requestu
    2. swiezy odczyt kazdego produktu z backendu (rownolegle), z pominieciem snapshotu katalogu
    3. walidacja WSZYSTKICH pozycji zanim cokolwiek zostanie zapisane, pierwszy blad przerywa
    4. dekrementacja stanu (rownolegle), stock = max(stock - ilosc, 0)
    5. sukces: podsumowanie z odczytu z kroku 2, kupione pozycje zdjete z koszyka, kupon czyszczony
    6. blad: koszyk zostaje bez zmian

    Brak transakcji po stronie serwera: blad w trakcie kroku 4 zostawia czesc stanu
    juz zmniejszona (PartialCommitError). Miedzy krokiem 2 a 4 inna sesja moze kupic
    ten sam towar, ostatnie slowo ma serwer.
    """

    def __init__(
        self,
        product_client: ProductClient,
        guard: CheckoutGuard | None = None,
        max_workers: int = CHECKOUT_MAX_WORKERS,
    ):
        self.product_client = product_client
        self.guard = guard or LocalCheckoutGuard()
        self.max_workers = max(1, max_workers)
        self.state = CheckoutState.IDLE

    @property
    def busy(self) -> bool:
        return self.state in (CheckoutState.VALIDATING, CheckoutState.COMMITTING)

    def checkout(self, session) -> CheckoutResult:
        #pusty koszyk odrzucamy zanim cokolwiek pojdzie po sieci
        if session.cart.is_empty:
            if not self.busy:
                self.state = CheckoutState.FAILED
            return self._failure(EmptyCartError())

        owner = new_owner_token()

        try:
            acquired = self.guard.acquire(owner)
        except ConnectivityError as e:
            return self._failure(e)

        if not acquired:
            #drugi klik w trakcie checkoutu - odrzucamy, stan bez zmian
            logger.warning("Checkout rejected, another checkout is in progress")
            return CheckoutResult(
                success=False,
                reason=_reason(CheckoutInProgressError()),
                error=CheckoutInProgressError(),
            )

        try:
            self.state = CheckoutState.IDLE
            return self._run(session)
        except BaseException:
            self.state = CheckoutState.FAILED
            raise
        finally:
            self.guard.release(owner)

    def _run(self, session) -> CheckoutResult:
        cart = session.cart
        items = cart.get_all()

        if not items:
            self.state = CheckoutState.FAILED
            return self._failure(EmptyCartError())

        logger.info(f"Checkout started for {len(items)} items")

        try:
            self.state = CheckoutState.VALIDATING
            products = self._pre_commit_read(items)
            self._validate(items, products)

            self.state = CheckoutState.COMMITTING
            self._commit(items, products)
        except StorefrontError as e:
            self.state = CheckoutState.FAILED
            return self._failure(e)

        coupon = session.coupon
        summary = build_summary(
            items,
            products,
            discount_percent=coupon.discount_percent if coupon else 0,
            coupon_code=coupon.code if coupon else None,
        )

        #tylko to, co kupione, zmiany w trakcie checkoutu zostaja
        cart.remove_purchased(items)
        session.clear_coupon()
        self.state = CheckoutState.SUCCESS

        logger.info(
            f"Checkout completed: {len(summary.items)} items, total {summary.discounted_total}"
        )
        return CheckoutResult(success=True, summary=summary)

    def _pre_commit_read(self, items: Sequence[LineItem]) -> Dict[str, Product | StorefrontError]:
        """Fan-out odczytow, fan-in przed walidacja. Bledy zbierane per pozycja."""
        results: Dict[str, Product | StorefrontError] = {}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            futures = [
                (item, pool.submit(self.product_client.fetch_product, item.product_id))
                for item in items
            ]
            for item, fut in futures:
                try:
                    results[item.key] = fut.result()
                except StorefrontError as e:
                    results[item.key] = e

        return results

    def _validate(self, items: Sequence[LineItem], products: Dict[str, Product | StorefrontError]) -> None:
        for item in items:
            outcome = products.get(item.key)

            if outcome is None:
                raise ProductNotFoundError(item.product_id)
            if isinstance(outcome, StorefrontError):
                raise outcome

            if item.quantity <= 0:
                raise InvalidQuantityError(item.product_id, item.quantity)

            if outcome.stock < item.quantity:
                raise InsufficientStockError(
                    product_id=item.product_id,
                    name=outcome.name or item.cached_name,
                    available=outcome.stock,
                    requested=item.quantity,
                )

    def _commit(self, items: Sequence[LineItem], products: Dict[str, Product]) -> None:
        committed, failed = [], []
        first_error: StorefrontError | None = None

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            futures = []
            for item in items:
                current = products[item.key]
                new_stock = max(current.stock - item.quantity, 0)
                futures.append(
                    (item, pool.submit(self.product_client.update_stock, item.product_id, new_stock, current))
                )

            #czekamy na wszystkie zapisy, zeby wiedziec co zostalo zmienione
            for item, fut in futures:
                try:
                    fut.result()
                    committed.append(item.product_id)
                except StorefrontError as e:
                    failed.append(item.product_id)
                    first_error = first_error or e
                    logger.error(f"Stock update for product {item.product_id} failed: {e}")

        if not failed:
            return

        if not committed:
            raise first_error

        logger.error(f"Partial commit: committed={committed} failed={failed}")
        raise PartialCommitError(committed, failed)

    def _failure(self, error: StorefrontError) -> CheckoutResult:
        logger.info(f"Checkout failed: {error}")
        return CheckoutResult(success=False, reason=_reason(error), error=error)


def build_summary(
    items: Sequence[LineItem],
    products: Dict[str, Product],
    discount_percent: int = 0,
    coupon_code: str | None = None,
) -> PurchaseSummary:
    lines = []
    total = Decimal("0")

    for item in items:
        product = products[item.key]
        line_total = product.price * item.quantity
        total += line_total
        lines.append(
            PurchaseLine(
                product_id=item.product_id,
                name=product.name or item.cached_name or str(item.product_id),
                quantity=item.quantity,
                unit_price=product.price,
                subtotal=line_total,
            )
        )

    return PurchaseSummary(
        items=tuple(lines),
        total=total,
        discounted_total=apply_discount(total, discount_percent),
        discount_percent=discount_percent,
        coupon_code=coupon_code,
        purchased_at=datetime.now(timezone.utc),
    )


def _reason(error: Exception) -> str:
    """Komunikat dla uzytkownika."""
    if isinstance(error, EmptyCartError):
        return "Your cart is empty."
    if isinstance(error, ProductNotFoundError):
        return f"Product {error.product_id} not found."
    if isinstance(error, InvalidQuantityError):
        return "Invalid quantity in cart."
    if isinstance(error, InsufficientStockError):
        return str(error)
    if isinstance(error, CheckoutInProgressError):
        return "Checkout already in progress."
    return RETRY_MESSAGE
