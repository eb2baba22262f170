"""Product source adapters and record normalization.

Each adapter knows one upstream schema and maps it to the canonical
``Product``. Field priority lists are ordered: the first non-empty value
wins.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import httpx

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.adapters.openfoodfacts_client import OpenFoodFactsClient
from green_label.domain.products import MAX_SCORE, MIN_SCORE, Product, ProductSource

DEFAULT_GREEN_SCORE = 50
UNKNOWN_PRODUCT_NAME = "Unknown Product"

_OFF_NAME_FIELDS = ("product_name", "generic_name")
_OFF_IMAGE_FIELDS = ("image_url", "image_small_url")
_OFF_NUTRITION_GRADE_FIELDS = ("nutrition_grades", "nutriscore_grade")
_OFF_PACKAGING_FIELDS = ("packaging", "packaging_text")
_OFF_INGREDIENTS_FIELDS = ("ingredients_text", "ingredients_text_en")

_BACKEND_BARCODE_FIELDS = ("barcode", "code")
_BACKEND_NAME_FIELDS = ("name", "Name", "product_name", "productName", "title")
_BACKEND_SCORE_FIELDS = ("ecoScore", "EcoScore", "green_score")
_BACKEND_IMAGE_FIELDS = ("image_url", "imageUrl", "ImageUrl", "image_small_url", "image")
_BACKEND_BRAND_FIELDS = ("brand", "Brand", "brands", "manufacturer")

_logger = logging.getLogger(__name__)


class SourceAdapter(Protocol):
    """Resolves a barcode against one upstream."""

    name: str

    async def resolve(self, barcode: str) -> Product | None:
        """Return the product, or None when the source has nothing.

        Raises ``httpx.TransportError`` when the upstream is unreachable.
        """


@dataclass
class OpenFoodFactsSource(SourceAdapter):
    """Adapter over the Open Food Facts product database."""

    client: OpenFoodFactsClient
    name: str = "openfoodfacts"

    async def resolve(self, barcode: str) -> Product | None:
        """Look up the barcode in Open Food Facts."""
        try:
            payload = await self.client.get_product(barcode)
            return product_from_openfoodfacts(barcode, payload)
        except httpx.HTTPStatusError as exc:
            _logger.info(
                "Open Food Facts returned %s for %s",
                exc.response.status_code,
                barcode,
            )
        except ValueError as exc:
            _logger.warning("Malformed Open Food Facts record for %s: %s", barcode, exc)
        return None


@dataclass
class BackendSource(SourceAdapter):
    """Adapter over the internal backend product endpoint."""

    client: BackendClient
    fallback_name: str | None = UNKNOWN_PRODUCT_NAME
    name: str = "backend"

    async def resolve(self, barcode: str) -> Product | None:
        """Look up the barcode in the backend."""
        try:
            payload = await self.client.get_product(barcode)
            record = unwrap(payload, "product")
            if not isinstance(record, dict):
                return None
            return product_from_backend(
                record, barcode=barcode, fallback_name=self.fallback_name
            )
        except httpx.HTTPStatusError as exc:
            _logger.info(
                "Backend returned %s for %s", exc.response.status_code, barcode
            )
        except ValueError as exc:
            _logger.warning("Malformed backend record for %s: %s", barcode, exc)
        return None


def product_from_openfoodfacts(
    barcode: str, payload: dict[str, object]
) -> Product | None:
    """Map an Open Food Facts response to a Product, or None when absent."""
    if not isinstance(payload, dict) or payload.get("status") != 1:
        return None
    record = payload.get("product")
    if not isinstance(record, dict):
        return None
    ecoscore_grade = _grade(record.get("ecoscore_grade"))
    green_score = _score(record.get("ecoscore_score"))
    if green_score is None and ecoscore_grade is not None:
        green_score = DEFAULT_GREEN_SCORE
    now = datetime.now(tz=UTC)
    return Product(
        barcode=barcode,
        source=ProductSource.OPENFOODFACTS,
        name=_first_text(record, _OFF_NAME_FIELDS) or f"Product {barcode}",
        brand=_text(record.get("brands")),
        image_url=_first_text(record, _OFF_IMAGE_FIELDS),
        green_score=green_score,
        nutrition_grade=_grade(_first_text(record, _OFF_NUTRITION_GRADE_FIELDS)),
        ecoscore_grade=ecoscore_grade,
        packaging_info=_first_text(record, _OFF_PACKAGING_FIELDS),
        ingredients_text=_first_text(record, _OFF_INGREDIENTS_FIELDS),
        raw_data=json.dumps(record),
        created_at=now,
        updated_at=now,
    )


def product_from_backend(
    record: dict[str, object],
    *,
    barcode: str | None = None,
    fallback_name: str | None = UNKNOWN_PRODUCT_NAME,
) -> Product:
    """Map a backend product record to a Product.

    The record's own barcode wins over the requested one so lookups can be
    matched back by exact barcode. Raises ValueError for records without a
    barcode or with an unknown source.
    """
    resolved_barcode = _first_text(record, _BACKEND_BARCODE_FIELDS) or barcode
    if not resolved_barcode:
        raise ValueError("Backend record has no barcode")
    green_score = _first_score(record, _BACKEND_SCORE_FIELDS)
    raw_data = record.get("raw_data")
    if not isinstance(raw_data, str):
        raw_data = json.dumps(record)
    return Product(
        barcode=resolved_barcode,
        source=_source(record.get("source")),
        name=_first_text(record, _BACKEND_NAME_FIELDS) or fallback_name,
        brand=_first_text(record, _BACKEND_BRAND_FIELDS),
        image_url=_first_text(record, _BACKEND_IMAGE_FIELDS),
        green_score=DEFAULT_GREEN_SCORE if green_score is None else green_score,
        nutrition_grade=_grade(record.get("nutrition_grade")),
        ecoscore_grade=_grade(record.get("ecoscore_grade")),
        packaging_info=_text(record.get("packaging_info")),
        ingredients_text=_text(record.get("ingredients_text")),
        raw_data=raw_data,
        created_at=_timestamp(record.get("created_at")),
        updated_at=_timestamp(record.get("updated_at")),
    )


def _source(value: object) -> ProductSource:
    if value is None or value == "":
        return ProductSource.GPT4
    return ProductSource(value)


def _text(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _first_text(record: dict[str, object], fields: tuple[str, ...]) -> str | None:
    for field_name in fields:
        value = _text(record.get(field_name))
        if value:
            return value
    return None


def _grade(value: object) -> str | None:
    text = _text(value)
    if text is None or len(text) != 1 or not text.isalpha():
        return None
    return text.lower()


def _score(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return None
    try:
        score = float(value)
    except ValueError:
        return None
    return float(min(MAX_SCORE, max(MIN_SCORE, score)))


def _first_score(record: dict[str, object], fields: tuple[str, ...]) -> float | None:
    for field_name in fields:
        score = _score(record.get(field_name))
        if score is not None:
            return score
    return None


def _timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
