# storefront/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://localhost:3000")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))

CART_STORAGE_URL = os.getenv("CART_STORAGE_URL", "file://./.storefront/cart.json")
CART_STORAGE_KEY = os.getenv("CART_STORAGE_KEY", "cart")

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CHECKOUT_GUARD = os.getenv("CHECKOUT_GUARD", "local").lower()
CHECKOUT_GUARD_TTL_SECONDS = int(os.getenv("CHECKOUT_GUARD_TTL_SECONDS", 60))
CHECKOUT_MAX_WORKERS = int(os.getenv("CHECKOUT_MAX_WORKERS", 8))

#PUT = caly rekord (json-server), PATCH = tylko {"stock": n}
STOCK_UPDATE_METHOD = os.getenv("STOCK_UPDATE_METHOD", "PUT").upper()

CURRENCY = os.getenv("CURRENCY", "$")
MONEY_DECIMALS = int(os.getenv("MONEY_DECIMALS", 2))

#po nieudanym pobraniu katalogu kolejna proba (bez force) dopiero po tym czasie
CATALOG_RETRY_SECONDS = float(os.getenv("CATALOG_RETRY_SECONDS", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
