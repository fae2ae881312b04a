# storefront/api/deps.py
from fastapi import Request

from storefront.repos.cart_storage import build_storage
from storefront.services.cart_store import CartStore
from storefront.services.catalog import CatalogSnapshot
from storefront.services.checkout_service import CheckoutCoordinator
from storefront.services.lock_service import build_guard
from storefront.services.product_client import ProductClient
from storefront.services.session import ShopperSession
from storefront.utils.settings import CART_STORAGE_URL, CART_STORAGE_KEY, CHECKOUT_GUARD


def build_session(product_client: ProductClient, storage_url: str = CART_STORAGE_URL) -> ShopperSession:
    catalog = CatalogSnapshot(product_client)
    cart = CartStore(storage=build_storage(storage_url, key=CART_STORAGE_KEY), catalog=catalog)
    return ShopperSession(cart=cart, catalog=catalog)


def build_coordinator(product_client: ProductClient) -> CheckoutCoordinator:
    return CheckoutCoordinator(
        product_client=product_client,
        guard=build_guard(CHECKOUT_GUARD, key=CART_STORAGE_KEY),
    )


def get_session(request: Request) -> ShopperSession:
    return request.app.state.session


def get_coordinator(request: Request) -> CheckoutCoordinator:
    return request.app.state.coordinator
