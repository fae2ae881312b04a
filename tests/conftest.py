import threading
from decimal import Decimal

import pytest

from storefront.domain.errors import ConnectivityError, ProductNotFoundError
from storefront.domain.schemas import Product
from storefront.repos.cart_storage import InMemoryCartStorage
from storefront.services.cart_store import CartStore
from storefront.services.catalog import CatalogSnapshot
from storefront.services.checkout_service import CheckoutCoordinator
from storefront.services.session import ShopperSession


class FakeProductClient:
    """Backend produktow w pamieci, z logiem wywolan i wstrzykiwaniem bledow."""

    def __init__(self, products=()):
        self.products = {str(p["id"]): dict(p) for p in products}
        self.calls = []
        self.fail_list = False
        self.fail_reads = set()
        self.fail_updates = set()
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def list_products(self):
        self._record("LIST")
        if self.fail_list:
            raise ConnectivityError("backend down")
        return [Product.model_validate(p) for p in self.products.values()]

    def fetch_product(self, product_id):
        self._record("GET", str(product_id))
        if str(product_id) in self.fail_reads:
            raise ConnectivityError("read failed")
        rec = self.products.get(str(product_id))
        if rec is None:
            raise ProductNotFoundError(product_id)
        return Product.model_validate(rec)

    def update_stock(self, product_id, new_stock, current=None):
        self._record("UPDATE", str(product_id), new_stock)
        if str(product_id) in self.fail_updates:
            raise ConnectivityError("write failed")
        with self._lock:
            self.products[str(product_id)]["stock"] = new_stock
            return Product.model_validate(self.products[str(product_id)])

    def stock(self, product_id):
        return self.products[str(product_id)]["stock"]

    def network_calls(self, kind=None):
        return [c for c in self.calls if kind is None or c[0] == kind]


@pytest.fixture
def products():
    return [
        {"id": 1, "name": "Keyboard", "price": "100.00", "stock": 5, "image": "kb.jpg"},
        {"id": 2, "name": "Mouse", "price": "25.50", "stock": 10, "image": "mouse.jpg"},
        {"id": 3, "name": "Monitor", "price": "300", "stock": 2},
    ]


@pytest.fixture
def product_client(products):
    return FakeProductClient(products)


@pytest.fixture
def storage():
    return InMemoryCartStorage()


@pytest.fixture
def catalog(product_client):
    return CatalogSnapshot(product_client)


@pytest.fixture
def cart(storage):
    return CartStore(storage=storage)


@pytest.fixture
def session(cart, catalog):
    return ShopperSession(cart=cart, catalog=catalog)


@pytest.fixture
def coordinator(product_client):
    return CheckoutCoordinator(product_client=product_client, max_workers=4)


@pytest.fixture
def keyboard():
    return Product(id=1, name="Keyboard", price=Decimal("100.00"), stock=5, image="kb.jpg")
