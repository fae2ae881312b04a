import threading
from decimal import Decimal

import pytest

from storefront.domain.errors import (
    CheckoutInProgressError,
    ConnectivityError,
    EmptyCartError,
    InsufficientStockError,
    PartialCommitError,
    ProductNotFoundError,
)
from storefront.services.checkout_service import RETRY_MESSAGE, CheckoutCoordinator, CheckoutState


def snapshot(cart):
    return [(i.product_id, i.quantity) for i in cart.get_all()]


def test_empty_cart_fails_without_network(session, coordinator, product_client):
    result = coordinator.checkout(session)

    assert not result.success
    assert isinstance(result.error, EmptyCartError)
    assert product_client.calls == []
    assert coordinator.state == CheckoutState.FAILED


def test_insufficient_stock_aborts_and_keeps_cart(session, coordinator, product_client):
    product_client.products["1"]["stock"] = 2
    session.cart.add_item(1, qty=3)

    result = coordinator.checkout(session)

    assert not result.success
    assert isinstance(result.error, InsufficientStockError)
    assert result.error.available == 2
    assert result.error.requested == 3
    assert "Available: 2" in result.reason and "requested: 3" in result.reason
    assert "Keyboard" in result.reason
    assert snapshot(session.cart) == [(1, 3)]
    assert product_client.network_calls("UPDATE") == []
    assert product_client.stock(1) == 2


def test_successful_checkout_decrements_stock_and_clears_cart(session, coordinator, product_client):
    session.cart.add_item(1, qty=2)

    result = coordinator.checkout(session)

    assert result.success
    assert product_client.stock(1) == 3
    assert session.cart.is_empty
    assert result.summary.total == 2 * Decimal("100.00")
    assert result.summary.discounted_total == result.summary.total
    line = result.summary.items[0]
    assert (line.product_id, line.name, line.quantity, line.unit_price) == (1, "Keyboard", 2, Decimal("100.00"))
    assert coordinator.state == CheckoutState.SUCCESS


def test_checkout_reads_fresh_stock_not_catalog(session, coordinator, product_client):
    session.catalog.fetch_catalog()
    session.cart.add_item(3, qty=2)
    product_client.products["3"]["stock"] = 1

    result = coordinator.checkout(session)

    assert isinstance(result.error, InsufficientStockError)
    assert result.error.available == 1
    assert ("GET", "3") in product_client.calls


def test_summary_uses_pre_commit_prices_and_coupon(session, coordinator, product_client):
    session.cart.add_item({"id": 2, "price": "1.00", "name": "Cached"}, qty=2)
    session.cart.add_item(1)
    session.apply_coupon("DESC10")

    result = coordinator.checkout(session)

    summary = result.summary
    assert [(l.product_id, l.subtotal) for l in summary.items] == [(2, Decimal("51.00")), (1, Decimal("100.00"))]
    assert summary.total == Decimal("151.00")
    assert summary.discounted_total == Decimal("135.9")
    assert summary.discount_percent == 10
    assert summary.coupon_code == "DESC10"
    #kupon czyszczony po udanym zakupie
    assert session.coupon is None


def test_validation_is_exhaustive_before_any_write(session, coordinator, product_client):
    session.cart.add_item(1, qty=1)
    session.cart.add_item(2, qty=1)
    session.cart.add_item(3, qty=5)

    result = coordinator.checkout(session)

    assert isinstance(result.error, InsufficientStockError)
    assert result.error.product_id == 3
    assert product_client.network_calls("UPDATE") == []
    assert [product_client.stock(i) for i in (1, 2, 3)] == [5, 10, 2]


def test_first_failing_item_in_cart_order_wins(session, coordinator, product_client):
    session.cart.add_item(3, qty=9)
    session.cart.add_item(404)

    result = coordinator.checkout(session)

    assert isinstance(result.error, InsufficientStockError)


def test_missing_product_aborts_checkout(session, coordinator, product_client):
    session.cart.add_item(1)
    session.cart.add_item(404, qty=2)

    result = coordinator.checkout(session)

    assert isinstance(result.error, ProductNotFoundError)
    assert result.error.product_id == 404
    assert "404" in result.reason
    assert snapshot(session.cart) == [(1, 1), (404, 2)]


def test_read_failure_gives_retry_message(session, coordinator, product_client):
    session.cart.add_item(1)
    product_client.fail_reads.add("1")

    result = coordinator.checkout(session)

    assert isinstance(result.error, ConnectivityError)
    assert result.reason == RETRY_MESSAGE
    assert snapshot(session.cart) == [(1, 1)]


def test_partial_commit_is_reported_and_cart_kept(session, coordinator, product_client):
    session.cart.add_item(1, qty=1)
    session.cart.add_item(2, qty=2)
    session.cart.add_item(3, qty=1)
    product_client.fail_updates.add("2")

    result = coordinator.checkout(session)

    assert not result.success
    assert isinstance(result.error, PartialCommitError)
    assert sorted(result.error.committed) == [1, 3]
    assert result.error.failed == [2]
    assert result.reason == RETRY_MESSAGE
    assert [product_client.stock(i) for i in (1, 2, 3)] == [4, 10, 1]
    assert snapshot(session.cart) == [(1, 1), (2, 2), (3, 1)]
    assert coordinator.state == CheckoutState.FAILED


def test_total_write_failure_is_connectivity_error(session, coordinator, product_client):
    session.cart.add_item(1)
    product_client.fail_updates.add("1")

    result = coordinator.checkout(session)

    assert isinstance(result.error, ConnectivityError)
    assert not isinstance(result.error, PartialCommitError)


def test_sale_between_read_and_write_is_not_detected(session, product_client):
    class RacingClient(type(product_client)):
        #inna sesja wykupuje towar zaraz po naszym odczycie, ostatnie slowo ma serwer
        def fetch_product(self, product_id):
            product = super().fetch_product(product_id)
            self.products[str(product_id)]["stock"] = 0
            return product

    client = RacingClient(product_client.products.values())
    session.cart.add_item(3, qty=2)

    result = CheckoutCoordinator(client).checkout(session)

    assert result.success
    assert client.stock(3) == 0


def test_retry_after_failure_starts_fresh(session, coordinator, product_client):
    session.cart.add_item(1, qty=6)
    assert not coordinator.checkout(session).success

    session.cart.update_quantity(1, 5)
    result = coordinator.checkout(session)

    assert result.success
    assert product_client.stock(1) == 0


def test_concurrent_checkout_is_rejected(session, product_client):
    entered = threading.Event()
    release = threading.Event()

    class SlowClient(type(product_client)):
        def fetch_product(self, product_id):
            entered.set()
            release.wait(5)
            return super().fetch_product(product_id)

    client = SlowClient(product_client.products.values())
    coordinator = CheckoutCoordinator(client)
    session.cart.add_item(1, qty=1)

    results = []
    worker = threading.Thread(target=lambda: results.append(coordinator.checkout(session)))
    worker.start()
    assert entered.wait(5)

    assert coordinator.state == CheckoutState.VALIDATING
    second = coordinator.checkout(session)

    release.set()
    worker.join(5)

    assert not second.success
    assert isinstance(second.error, CheckoutInProgressError)
    assert results[0].success
    assert client.stock(1) == 4
    assert len(client.network_calls("UPDATE")) == 1


@pytest.mark.parametrize("workers", [1, 8])
def test_fan_out_width_does_not_change_outcome(session, product_client, workers):
    for pid in (1, 2, 3):
        session.cart.add_item(pid)

    result = CheckoutCoordinator(product_client, max_workers=workers).checkout(session)

    assert result.success
    assert [l.product_id for l in result.summary.items] == [1, 2, 3]


def test_items_added_during_commit_stay_in_cart(session, product_client):
    writing = threading.Event()
    added = threading.Event()

    class SlowWriteClient(type(product_client)):
        def update_stock(self, product_id, new_stock, current=None):
            writing.set()
            added.wait(5)
            return super().update_stock(product_id, new_stock, current)

    client = SlowWriteClient(product_client.products.values())
    session.cart.add_item(1, qty=1)

    results = []
    worker = threading.Thread(target=lambda: results.append(CheckoutCoordinator(client).checkout(session)))
    worker.start()
    assert writing.wait(5)

    session.cart.add_item(2, qty=3)
    session.cart.add_item(1, qty=2)
    added.set()
    worker.join(5)

    assert results[0].success
    assert [l.product_id for l in results[0].summary.items] == [1]
    #kupiona byla 1 sztuka, reszta i nowa pozycja zostaja
    assert snapshot(session.cart) == [(1, 2), (2, 3)]
    assert client.stock(1) == 4
