# storefront/services/product_client.py
from typing import List

import requests
from requests import RequestException
from pydantic import ValidationError

from storefront.domain.errors import ConnectivityError, ProductNotFoundError
from storefront.domain.schemas import Product, ProductId
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    PRODUCT_SERVICE_URL,
    HTTP_TIMEOUT_SECONDS,
    STOCK_UPDATE_METHOD,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """
    Klient REST backendu produktow.
    404 -> ProductNotFoundError (bez retry), bledy sieci -> ConnectivityError po 3 probach.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        http=None,
        stock_update_method: str = STOCK_UPDATE_METHOD,
    ):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        #requests.Session albo cokolwiek z tym samym API (np. TestClient)
        self.http = http or requests.Session()
        self.stock_update_method = stock_update_method.upper()
        if self.stock_update_method not in ("PUT", "PATCH"):
            raise ValueError(f"Unsupported stock update method: {stock_update_method}")

    def list_products(self) -> List[Product]:
        url = f"{self.base_url}/products"
        data = self._call("GET", url)
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ConnectivityError(f"Malformed product list from {url}: {type(data).__name__}")

        products = []
        for rec in data:
            try:
                products.append(Product.model_validate(rec))
            except ValidationError as e:
                logger.warning(f"Skipping malformed product record {rec!r}: {e}")
        return products

    def fetch_product(self, product_id: ProductId) -> Product:
        url = f"{self.base_url}/products/{product_id}"
        data = self._call("GET", url, product_id=product_id)
        return self._to_product(data, product_id)

    def update_stock(
        self,
        product_id: ProductId,
        new_stock: int,
        current: Product | None = None,
    ) -> Product:
        url = f"{self.base_url}/products/{product_id}"

        if self.stock_update_method == "PUT":
            #json-server oczekuje calego obiektu przy PUT
            if current is None:
                current = self.fetch_product(product_id)
            payload = {**current.to_record(), "stock": new_stock}
        else:
            payload = {"stock": new_stock}

        logger.info(f"Stock update {product_id} -> {new_stock} ({self.stock_update_method})")
        data = self._call(self.stock_update_method, url, product_id=product_id, json=payload)
        return self._to_product(data, product_id)

    def _call(self, method: str, url: str, product_id: ProductId | None = None, **kwargs):
        try:
            return self._send(method, url, product_id, **kwargs)
        except RequestException as e:
            logger.error(f"ProductClient {method} {url} failed: {e}")
            raise ConnectivityError(f"Product service unavailable: {e}") from e

    @http_retry()
    def _send(self, method: str, url: str, product_id: ProductId | None, **kwargs):
        logger.info(f"ProductClient {method} {url}")

        resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        if resp.status_code == 404 and product_id is not None:
            raise ProductNotFoundError(product_id)
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _to_product(data, product_id: ProductId) -> Product:
        if not data:
            raise ProductNotFoundError(product_id)
        try:
            return Product.model_validate(data)
        except ValidationError as e:
            raise ConnectivityError(f"Malformed product record for {product_id}: {e}") from e
