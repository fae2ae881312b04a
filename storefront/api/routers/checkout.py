# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_coordinator, get_session
from storefront.domain.errors import (
    CheckoutInProgressError,
    ConnectivityError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
)
from storefront.domain.schemas import CheckoutOut
from storefront.services.checkout_service import CheckoutCoordinator
from storefront.services.session import ShopperSession

router = APIRouter(prefix="/checkout", tags=["checkout"])

_STATUS = (
    (EmptyCartError, 400),
    (InvalidQuantityError, 400),
    (NotFoundError, 404),
    (InsufficientStockError, 409),
    (CheckoutInProgressError, 409),
    (ConnectivityError, 502),
)


@router.post("/", response_model=CheckoutOut)
def checkout(
    session: ShopperSession = Depends(get_session),
    coordinator: CheckoutCoordinator = Depends(get_coordinator),
):
    """
    Zakup z walidacja stanu magazynu.
    Przy bledzie koszyk zostaje nietkniety, mozna poprawic i sprobowac ponownie.
    """
    result = coordinator.checkout(session)
    if result.success:
        return CheckoutOut(success=True, summary=result.summary)

    status = 502
    for exc_type, code in _STATUS:
        if isinstance(result.error, exc_type):
            status = code
            break
    raise HTTPException(status_code=status, detail=result.reason)
