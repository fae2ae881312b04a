# storefront/api/routers/catalog.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_session
from storefront.domain.schemas import CatalogOut
from storefront.services.session import ShopperSession

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/", response_model=CatalogOut)
def get_catalog(
    refresh: bool = Query(False),
    session: ShopperSession = Depends(get_session),
):
    #blad sieci nie wywala widoku, zwracamy stary albo pusty snapshot
    products = session.catalog.fetch_catalog(force=refresh)
    return CatalogOut(
        products=products,
        degraded=session.catalog.degraded,
        fetched_at=session.catalog.fetched_at,
    )
