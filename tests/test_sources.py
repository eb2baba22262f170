"""Tests for product source adapters and record mapping."""

import asyncio
import json
from dataclasses import dataclass

import httpx
import pytest

from green_label.adapters.openfoodfacts_client import OpenFoodFactsClient
from green_label.domain.products import ProductSource
from green_label.services.sources import (
    BackendSource,
    OpenFoodFactsSource,
    product_from_backend,
    product_from_openfoodfacts,
)
from tests.conftest import FakeBackendClient, connect_error, status_error


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    answer: object

    async def get_product(self, barcode: str) -> dict[str, object]:
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer  # type: ignore[return-value]


def test_openfoodfacts_mapping_uses_field_fallbacks() -> None:
    product = product_from_openfoodfacts(
        "3017620422003",
        {
            "status": 1,
            "product": {
                "generic_name": "Hazelnut spread",
                "brands": "Ferrero",
                "image_small_url": "https://img.test/small.jpg",
                "ecoscore_score": 130,
                "ecoscore_grade": "E",
                "nutriscore_grade": "e",
                "packaging_text": "Glass jar",
                "ingredients_text_en": "Sugar, palm oil",
            },
        },
    )

    assert product is not None
    assert product.source is ProductSource.OPENFOODFACTS
    assert product.name == "Hazelnut spread"
    assert product.brand == "Ferrero"
    assert product.image_url == "https://img.test/small.jpg"
    assert product.green_score == 100
    assert product.ecoscore_grade == "e"
    assert product.nutrition_grade == "e"
    assert product.packaging_info == "Glass jar"
    assert product.ingredients_text == "Sugar, palm oil"
    assert json.loads(product.raw_data or "{}")["brands"] == "Ferrero"


def test_openfoodfacts_mapping_defaults() -> None:
    product = product_from_openfoodfacts(
        "42", {"status": 1, "product": {"ecoscore_grade": "b"}}
    )

    assert product is not None
    assert product.name == "Product 42"
    assert product.green_score == 50

    bare = product_from_openfoodfacts("42", {"status": 1, "product": {}})
    assert bare is not None
    assert bare.green_score is None


def test_openfoodfacts_mapping_absent_product() -> None:
    assert product_from_openfoodfacts("42", {"status": 0}) is None
    assert product_from_openfoodfacts("42", {"status": 1, "product": None}) is None


def test_backend_mapping_field_priority() -> None:
    product = product_from_backend(
        {
            "code": "999",
            "Name": "Oat Drink",
            "productName": "ignored",
            "EcoScore": "81",
            "imageUrl": "https://img.test/oat.jpg",
            "brands": "Oatly",
            "source": "gpt4",
        },
        barcode="requested",
    )

    assert product.barcode == "999"
    assert product.name == "Oat Drink"
    assert product.green_score == 81
    assert product.image_url == "https://img.test/oat.jpg"
    assert product.brand == "Oatly"
    assert product.source is ProductSource.GPT4


def test_backend_mapping_defaults_and_fallback_name() -> None:
    product = product_from_backend({}, barcode="123")

    assert product.barcode == "123"
    assert product.name == "Unknown Product"
    assert product.green_score == 50
    assert product.source is ProductSource.GPT4

    unnamed = product_from_backend({}, barcode="123", fallback_name=None)
    assert unnamed.name is None


def test_backend_mapping_rejects_unknown_source() -> None:
    with pytest.raises(ValueError):
        product_from_backend({"barcode": "1", "source": "scraper"})


def test_openfoodfacts_source_treats_http_errors_as_absent() -> None:
    source = OpenFoodFactsSource(FakeOpenFoodFactsClient(status_error(404)))

    assert asyncio.run(source.resolve("123")) is None


def test_openfoodfacts_source_propagates_transport_errors() -> None:
    source = OpenFoodFactsSource(FakeOpenFoodFactsClient(connect_error()))

    with pytest.raises(httpx.ConnectError):
        asyncio.run(source.resolve("123"))


def test_backend_source_unwraps_success_envelope() -> None:
    client = FakeBackendClient(
        products={
            "123": {"success": True, "product": {"barcode": "123", "name": "Tea"}},
            "456": {"success": False, "error": "not found"},
            "789": {"success": True, "product": {"barcode": "789", "source": "bogus"}},
        }
    )
    source = BackendSource(client)

    found = asyncio.run(source.resolve("123"))

    assert found is not None
    assert found.name == "Tea"
    assert asyncio.run(source.resolve("456")) is None
    assert asyncio.run(source.resolve("789")) is None
