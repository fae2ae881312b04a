import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.domain.errors import CheckoutInProgressError, ConnectivityError
from storefront.services.checkout_service import CheckoutCoordinator
from storefront.services.lock_service import (
    LocalCheckoutGuard,
    RedisCheckoutGuard,
    build_guard,
)


def test_local_guard_rejects_second_owner():
    guard = LocalCheckoutGuard()

    assert guard.acquire("a")
    assert not guard.acquire("b")
    assert not guard.release("b")
    assert guard.release("a")
    assert guard.acquire("b")


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


def test_redis_guard_is_shared_between_instances(redis_client):
    first = RedisCheckoutGuard(key="cart", client=redis_client, ttl=30)
    second = RedisCheckoutGuard(key="cart", client=redis_client, ttl=30)

    assert first.acquire("tab-1")
    assert not second.acquire("tab-2")
    assert redis_client.ttl("checkout:cart:lock") > 0

    #tylko wlasciciel moze zwolnic
    assert not second.release("tab-2")
    assert first.release("tab-1")
    assert second.acquire("tab-2")


def test_redis_guard_errors_become_connectivity_errors():
    class Down:
        def set(self, **kwargs):
            raise RedisConnectionError("down")

    guard = RedisCheckoutGuard(client=Down())
    with pytest.raises(ConnectivityError):
        guard.acquire("x")


def test_checkout_with_held_redis_guard_is_rejected(session, product_client, redis_client):
    guard = RedisCheckoutGuard(key="cart", client=redis_client)
    guard.acquire("other-process")
    session.cart.add_item(1)

    result = CheckoutCoordinator(product_client, guard=guard).checkout(session)

    assert isinstance(result.error, CheckoutInProgressError)
    assert product_client.calls == []
    assert len(session.cart) == 1


def test_build_guard():
    assert isinstance(build_guard("local"), LocalCheckoutGuard)
    with pytest.raises(ValueError):
        build_guard("zookeeper")
