"""Domain models for products, scores and lookup history."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

MIN_SCORE = 0
MAX_SCORE = 100


class ProductSource(Enum):
    """Provenance of a product record."""

    OPENFOODFACTS = "openfoodfacts"
    GPT4 = "gpt4"


@dataclass(frozen=True)
class Product:
    """Canonical product record shared by scoring and views."""

    barcode: str
    source: ProductSource
    name: str | None = None
    brand: str | None = None
    image_url: str | None = None
    green_score: float | None = None
    nutrition_grade: str | None = None
    ecoscore_grade: str | None = None
    packaging_info: str | None = None
    ingredients_text: str | None = None
    raw_data: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.barcode:
            raise ValueError("Product barcode is required")
        if not isinstance(self.source, ProductSource):
            raise ValueError(f"Unknown product source: {self.source!r}")
        if self.green_score is not None and not (
            MIN_SCORE <= self.green_score <= MAX_SCORE
        ):
            raise ValueError(f"green_score out of range: {self.green_score}")

    @property
    def display_name(self) -> str:
        """Return the name, or a barcode-based placeholder."""
        return self.name or f"Product {self.barcode}"

    def to_dict(self) -> dict[str, object]:
        """Serialize the product to JSON-compatible primitives."""
        return {
            "barcode": self.barcode,
            "name": self.name,
            "brand": self.brand,
            "image_url": self.image_url,
            "green_score": self.green_score,
            "nutrition_grade": self.nutrition_grade,
            "ecoscore_grade": self.ecoscore_grade,
            "packaging_info": self.packaging_info,
            "ingredients_text": self.ingredients_text,
            "source": self.source.value,
            "raw_data": self.raw_data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """Five-facet sustainability score breakdown."""

    packaging_score: int
    nutrition_score: int
    environmental_score: int
    sustainability_score: int
    overall_score: int
    provenance: str

    def to_dict(self) -> dict[str, object]:
        """Serialize the breakdown."""
        return {
            "packaging_score": self.packaging_score,
            "nutrition_score": self.nutrition_score,
            "environmental_score": self.environmental_score,
            "sustainability_score": self.sustainability_score,
            "overall_score": self.overall_score,
            "provenance": self.provenance,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """A single barcode lookup in the history ledger."""

    barcode: str
    product_name: str | None
    searched_at: datetime
