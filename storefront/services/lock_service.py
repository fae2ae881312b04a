# storefront/services/lock_service.py
import threading
import uuid
from typing import Protocol

import redis
from redis.exceptions import RedisError

from storefront.domain.errors import ConnectivityError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, CHECKOUT_GUARD, CHECKOUT_GUARD_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nikt nie wcisnie sie miedzy GET a DEL


class CheckoutGuard(Protocol):
    def acquire(self, owner: str) -> bool:
        ...

    def release(self, owner: str) -> bool:
        ...


class LocalCheckoutGuard:
    """Blokada w obrebie procesu: drugi klik w 'kup' w trakcie checkoutu odpada."""

    def __init__(self):
        self._lock = threading.Lock()
        self._owner: str | None = None

    def acquire(self, owner: str) -> bool:
        if not self._lock.acquire(blocking=False):
            logger.info(f"Checkout guard busy (held by {self._owner})")
            return False
        self._owner = owner
        return True

    def release(self, owner: str) -> bool:
        if self._owner != owner:
            return False
        self._owner = None
        self._lock.release()
        return True


class RedisCheckoutGuard:
    """
    -blokada checkoutu wspoldzielona miedzy procesami (SET NX EX)
    -zwalnianie tylko przez wlasciciela (lua)
    """

    def __init__(
        self,
        key: str = "cart",
        url: str | None = None,
        ttl: int = CHECKOUT_GUARD_TTL_SECONDS,
        client=None,
    ):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.key = f"checkout:{key}:lock"
        self.ttl = ttl

    def acquire(self, owner: str) -> bool:
        try:
            return self._acquire(owner)
        except RedisError as e:
            raise ConnectivityError(f"Checkout lock unavailable: {e}") from e

    def release(self, owner: str) -> bool:
        try:
            return self._release(owner)
        except RedisError as e:
            #lock i tak wygasnie po ttl
            logger.warning(f"Failed to release lock {self.key}: {e}")
            return False

    @redis_retry()
    def _acquire(self, owner: str) -> bool:
        logger.info(f"Acquire lock {self.key} for {owner}")
        #SET checkout:cart:lock "<owner>" NX EX 60
        return bool(self.redis.set(name=self.key, value=owner, nx=True, ex=self.ttl))

    @redis_retry()
    def _release(self, owner: str) -> bool:
        logger.info(f"Release lock {self.key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, self.key, owner)
        return bool(res)


def new_owner_token() -> str:
    return uuid.uuid4().hex


def build_guard(kind: str = CHECKOUT_GUARD, key: str = "cart") -> CheckoutGuard:
    if kind == "redis":
        return RedisCheckoutGuard(key=key)
    if kind == "local":
        return LocalCheckoutGuard()
    raise ValueError(f"Unknown checkout guard: {kind}")
