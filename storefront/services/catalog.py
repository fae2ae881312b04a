# storefront/services/catalog.py
import threading
import time
from datetime import datetime, timezone
from typing import Dict, List

from storefront.domain.errors import ConnectivityError
from storefront.domain.schemas import Product, ProductId, product_key
from storefront.services.product_client import ProductClient
from storefront.utils.settings import CATALOG_RETRY_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogSnapshot:
    """
    Lokalna, moze byc nieaktualna, kopia produktow do wyswietlania.
    Checkout nigdy nie podejmuje decyzji o stanie magazynu na jej podstawie.
    """

    def __init__(self, product_client: ProductClient, retry_after: float = CATALOG_RETRY_SECONDS):
        self.product_client = product_client
        self.retry_after = retry_after
        self._failed_at: float | None = None
        self._products: Dict[str, Product] = {}
        self._lock = threading.Lock()
        self.loaded = False
        self.fetched_at: datetime | None = None
        self.last_error: Exception | None = None

    @property
    def degraded(self) -> bool:
        return self.last_error is not None

    def fetch_catalog(self, force: bool = False) -> List[Product]:
        if not force:
            if self.loaded:
                return self.products()
            if self._failed_at is not None and time.monotonic() - self._failed_at < self.retry_after:
                #backend niedawno lezal, nie pytamy przy kazdym widoku koszyka
                return self.products()

        try:
            fetched = self.product_client.list_products()
        except ConnectivityError as e:
            #zostaje stary snapshot (albo pusty), widok koszyka nie moze sie wysypac
            logger.warning(f"Catalog fetch failed, keeping {len(self._products)} cached products: {e}")
            self.last_error = e
            self._failed_at = time.monotonic()
            return self.products()

        with self._lock:
            self._products = {product_key(p.id): p for p in fetched}
            self.loaded = True
            self.fetched_at = datetime.now(timezone.utc)
            self.last_error = None
            self._failed_at = None

        logger.info(f"Catalog snapshot loaded: {len(fetched)} products")
        return self.products()

    def resolve(self, product_id: ProductId) -> Product | None:
        return self._products.get(product_key(product_id))

    def products(self) -> List[Product]:
        return list(self._products.values())

    def __len__(self) -> int:
        return len(self._products)
