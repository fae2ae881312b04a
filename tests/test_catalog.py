from decimal import Decimal

from storefront.domain.errors import ConnectivityError
from storefront.services.catalog import CatalogSnapshot


def test_fetch_catalog_loads_once(catalog, product_client):
    products = catalog.fetch_catalog()
    catalog.fetch_catalog()

    assert len(products) == 3
    assert product_client.network_calls("LIST") == [("LIST",)]
    assert catalog.loaded
    assert catalog.fetched_at is not None


def test_force_refresh_fetches_again(catalog, product_client):
    catalog.fetch_catalog()
    product_client.products["1"]["price"] = "120.00"

    assert catalog.resolve(1).price == Decimal("100.00")

    catalog.fetch_catalog(force=True)
    assert catalog.resolve(1).price == Decimal("120.00")


def test_resolve_matches_string_and_int_ids(catalog):
    catalog.fetch_catalog()

    assert catalog.resolve("2").name == "Mouse"
    assert catalog.resolve(2).name == "Mouse"
    assert catalog.resolve(404) is None


def test_failed_first_fetch_degrades_to_empty(catalog, product_client):
    product_client.fail_list = True

    assert catalog.fetch_catalog() == []
    assert catalog.degraded
    assert isinstance(catalog.last_error, ConnectivityError)
    assert catalog.resolve(1) is None


def test_failed_refresh_keeps_stale_snapshot(catalog, product_client):
    catalog.fetch_catalog()
    product_client.fail_list = True

    products = catalog.fetch_catalog(force=True)

    assert len(products) == 3
    assert catalog.degraded

    product_client.fail_list = False
    catalog.fetch_catalog(force=True)
    assert not catalog.degraded


def test_snapshot_is_not_kept_in_sync(product_client):
    catalog = CatalogSnapshot(product_client)
    catalog.fetch_catalog()

    product_client.products["3"]["stock"] = 0

    assert catalog.resolve(3).stock == 2


def test_failed_fetch_is_not_repeated_on_every_view(catalog, product_client):
    product_client.fail_list = True
    catalog.fetch_catalog()
    catalog.fetch_catalog()

    assert product_client.network_calls("LIST") == [("LIST",)]

    product_client.fail_list = False
    catalog.fetch_catalog(force=True)
    assert catalog.loaded and not catalog.degraded


def test_fetch_is_retried_after_back_off(product_client):
    catalog = CatalogSnapshot(product_client, retry_after=0)
    product_client.fail_list = True
    catalog.fetch_catalog()

    product_client.fail_list = False

    assert len(catalog.fetch_catalog()) == 3
    assert len(product_client.network_calls("LIST")) == 2
