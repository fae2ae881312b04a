# storefront/services/pricing.py
import re
from decimal import Decimal
from typing import Callable, Iterable, List

from storefront.domain.schemas import (
    Coupon,
    CouponResult,
    LineItem,
    Product,
    ProductId,
    ResolvedLine,
    Totals,
)

Resolver = Callable[[ProductId], Product | None]

_COUPON_RE = re.compile(r"^DESC([0-9]{1,2})$", re.IGNORECASE | re.ASCII)

MIN_DISCOUNT = 1
MAX_DISCOUNT = 99

ZERO = Decimal("0")


def subtotal(line_items: Iterable[LineItem], resolve: Resolver) -> Decimal:
    """Suma cena * ilosc; produkty, ktorych nie ma w katalogu, licza sie jako 0."""
    total = ZERO
    for item in line_items:
        product = resolve(item.product_id)
        if product is not None:
            total += product.price * item.quantity
    return total


def parse_coupon(text) -> CouponResult:
    code = (text or "").strip() if isinstance(text, str) else ""

    match = _COUPON_RE.match(code)
    if not match:
        return CouponResult(
            valid=False,
            code=code,
            reason="format",
            message="Coupon codes look like DESC10 (DESC followed by 1-2 digits).",
        )

    percent = int(match.group(1))
    if not MIN_DISCOUNT <= percent <= MAX_DISCOUNT:
        return CouponResult(
            valid=False,
            code=code,
            parsed_percent=percent,
            reason="out of range",
            message=f"Discount must be between {MIN_DISCOUNT}% and {MAX_DISCOUNT}%.",
        )

    return CouponResult(
        valid=True,
        code=code.upper(),
        coupon=Coupon(code=code.upper(), discount_percent=percent),
        parsed_percent=percent,
        message=f"{percent}% discount applied.",
    )


def apply_discount(amount: Decimal, percent: int) -> Decimal:
    #bez zaokraglen, to robi dopiero warstwa prezentacji
    if percent <= 0:
        return amount
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    return amount * (1 - Decimal(percent) / 100)


def merge_line(item: LineItem, product: Product | None) -> ResolvedLine:
    """
    Jawne laczenie pozycji z produktem.
    Cena z serwera zawsze wygrywa, cache z LineItem tylko do wyswietlenia gdy produktu brak.
    """
    if product is None:
        return ResolvedLine(
            product_id=item.product_id,
            quantity=item.quantity,
            name=item.cached_name,
            image=item.cached_image,
            unit_price=item.cached_unit_price or ZERO,
            available=None,
            missing=True,
            subtotal=ZERO,
        )

    return ResolvedLine(
        product_id=item.product_id,
        quantity=item.quantity,
        name=product.name or item.cached_name,
        image=product.image or item.cached_image,
        unit_price=product.price,
        available=product.stock,
        missing=False,
        subtotal=product.price * item.quantity,
    )


def resolve_lines(line_items: Iterable[LineItem], resolve: Resolver) -> List[ResolvedLine]:
    return [merge_line(item, resolve(item.product_id)) for item in line_items]


def compute_totals(line_items: Iterable[LineItem], catalog, coupon: Coupon | None = None) -> Totals:
    """catalog: cokolwiek z metoda resolve(product_id)."""
    amount = subtotal(line_items, catalog.resolve)
    percent = coupon.discount_percent if coupon else 0
    return Totals(
        subtotal=amount,
        discount_percent=percent,
        discounted_total=apply_discount(amount, percent),
    )
