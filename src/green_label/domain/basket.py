"""Domain models for shopping basket analysis."""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class BasketItem:
    """One analyzed product in a basket."""

    barcode: str
    product_name: str | None
    carbon: float
    health_score: int
    image_url: str | None = None
    brand: str | None = None


@dataclass(frozen=True)
class BasketResult:
    """Aggregate view over the analyzed basket items."""

    total_items: int
    total_carbon: float
    avg_health_score: float
    items: list[BasketItem]

    @classmethod
    def from_items(cls, items: list[BasketItem]) -> "BasketResult":
        """Build a result whose totals are derived from the items."""
        total_carbon = sum(item.carbon for item in items)
        avg_health = (
            sum(item.health_score for item in items) / len(items) if items else 0.0
        )
        return cls(
            total_items=len(items),
            total_carbon=total_carbon,
            avg_health_score=avg_health,
            items=list(items),
        )

    def with_items(self, items: list[BasketItem]) -> "BasketResult":
        """Return a copy with display-enriched items; totals are unchanged."""
        return replace(self, items=list(items))

    def to_dict(self) -> dict[str, object]:
        """Serialize the result."""
        return {
            "total_items": self.total_items,
            "total_carbon": self.total_carbon,
            "avg_health_score": self.avg_health_score,
            "items": [
                {
                    "barcode": item.barcode,
                    "product_name": item.product_name,
                    "carbon": item.carbon,
                    "health_score": item.health_score,
                    "image_url": item.image_url,
                    "brand": item.brand,
                }
                for item in self.items
            ],
        }


@dataclass(frozen=True)
class SavedBasket:
    """A basket analysis stored in the basket ledger."""

    id: str | None
    barcodes: list[str]
    result: BasketResult
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize the saved basket."""
        return {
            "id": self.id,
            "barcodes": list(self.barcodes),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            **self.result.to_dict(),
        }
