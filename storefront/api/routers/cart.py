#storefront/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_session
from storefront.domain.errors import InvalidQuantityError
from storefront.domain.schemas import CartOut, CouponIn, CouponOut, ItemIn, QuantityIn
from storefront.services.session import ShopperSession
from storefront.utils.formatters import money

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_out(session: ShopperSession) -> CartOut:
    lines, totals = session.view()
    return CartOut(
        lines=lines,
        totals=totals,
        coupon_code=session.coupon.code if session.coupon else None,
        display_subtotal=money(totals.subtotal),
        display_total=money(totals.discounted_total),
    )


@router.get("/", response_model=CartOut)
def get_cart(session: ShopperSession = Depends(get_session)):
    return _cart_out(session)


@router.post("/items", response_model=CartOut)
def add_item(payload: ItemIn, session: ShopperSession = Depends(get_session)):
    #podpowiedzi (nazwa, cena) z katalogu jesli produkt jest znany
    product = session.catalog.resolve(payload.product_id)
    try:
        session.cart.add_item(product or payload.product_id, payload.quantity)
    except InvalidQuantityError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _cart_out(session)


@router.patch("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: str,
    payload: QuantityIn,
    session: ShopperSession = Depends(get_session),
):
    #nieznane id - bez zmian
    session.cart.update_quantity(product_id, payload.quantity)
    return _cart_out(session)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(product_id: str, session: ShopperSession = Depends(get_session)):
    #idempotentne, brak pozycji to nie blad
    session.cart.remove_item(product_id)
    return _cart_out(session)


@router.delete("/", response_model=CartOut)
def clear_cart(session: ShopperSession = Depends(get_session)):
    session.cart.clear()
    return _cart_out(session)


@router.post("/coupon", response_model=CouponOut)
def apply_coupon(payload: CouponIn, session: ShopperSession = Depends(get_session)):
    result = session.apply_coupon(payload.code)
    return CouponOut(
        valid=result.valid,
        code=result.code,
        discount_percent=result.discount_percent,
        reason=result.reason,
        message=result.message,
        totals=session.totals(),
    )


@router.delete("/coupon", response_model=CartOut)
def remove_coupon(session: ShopperSession = Depends(get_session)):
    session.clear_coupon()
    return _cart_out(session)
