# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.deps import build_coordinator, build_session
from storefront.api.routers import cart, catalog, checkout, health
from storefront.services.checkout_service import CheckoutCoordinator
from storefront.services.product_client import ProductClient
from storefront.services.session import ShopperSession


def create_app(
    session: ShopperSession | None = None,
    coordinator: CheckoutCoordinator | None = None,
    product_client: ProductClient | None = None,
) -> FastAPI:
    app = FastAPI(title="Storefront Cart", version="1.0.0")

    #jeden klient = jedna sesja koszyka, wstrzykiwana przez Depends
    product_client = product_client or ProductClient()
    app.state.session = session or build_session(product_client)
    app.state.coordinator = coordinator or build_coordinator(product_client)

    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    return app
