"""Tests for catalog listing, filtering and sorting."""

import asyncio
from datetime import UTC, datetime

from green_label.domain.products import ProductSource
from green_label.services.catalog import CatalogService, filter_and_sort
from tests.conftest import FakeBackendClient, connect_error, make_product

_PRODUCTS = [
    make_product(
        "111",
        name="Oat Milk",
        brand="Oatly",
        green_score=80,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    ),
    make_product(
        "222",
        name=None,
        brand="Acme",
        green_score=None,
        created_at=datetime(2024, 3, 1, tzinfo=UTC),
    ),
    make_product(
        "333",
        name="Almond Bar",
        brand=None,
        green_score=40,
        created_at=None,
    ),
]


def _barcodes(products) -> list[str]:  # type: ignore[no-untyped-def]
    return [product.barcode for product in products]


def test_filter_matches_name_brand_or_barcode() -> None:
    assert _barcodes(filter_and_sort(_PRODUCTS, "OAT")) == ["111"]
    assert _barcodes(filter_and_sort(_PRODUCTS, "acme")) == ["222"]
    assert _barcodes(filter_and_sort(_PRODUCTS, "33")) == ["333"]
    assert len(filter_and_sort(_PRODUCTS, "  ")) == 3


def test_sort_orders() -> None:
    assert _barcodes(filter_and_sort(_PRODUCTS, sort_by="score")) == ["111", "333", "222"]
    assert _barcodes(filter_and_sort(_PRODUCTS, sort_by="name")) == ["333", "111", "222"]
    assert _barcodes(filter_and_sort(_PRODUCTS, sort_by="newest")) == ["222", "111", "333"]
    assert _barcodes(filter_and_sort(_PRODUCTS, sort_by="bogus")) == ["222", "111", "333"]


def test_list_products_maps_backend_rows() -> None:
    backend = FakeBackendClient(
        responses={
            "list_products": {
                "success": True,
                "products": [
                    {"barcode": "1", "name": "Tea", "source": "openfoodfacts"},
                    {"barcode": "2", "source": "unknown"},
                    "junk",
                ],
            }
        }
    )

    products = asyncio.run(CatalogService(backend).list_products())

    assert _barcodes(products) == ["1"]
    assert products[0].source is ProductSource.OPENFOODFACTS


def test_list_products_tolerates_outage() -> None:
    backend = FakeBackendClient(responses={"list_products": connect_error()})

    assert asyncio.run(CatalogService(backend).list_products()) == []
