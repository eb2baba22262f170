"""Shopping basket drafting, analysis and display backfill."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Protocol

import httpx

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.domain.basket import BasketItem, BasketResult, SavedBasket
from green_label.domain.errors import BasketAnalysisError, ConnectivityError
from green_label.domain.products import MAX_SCORE, MIN_SCORE, Product
from green_label.services.sources import SourceAdapter

_NAME_FIELDS = ("product_name", "name", "productName")

_logger = logging.getLogger(__name__)


class BasketRepository(Protocol):
    """Persistence interface for the basket ledger."""

    async def save(self, barcodes: list[str], result: BasketResult) -> SavedBasket | None:
        """Store a basket analysis and return the saved record."""

    async def list_baskets(self) -> list[SavedBasket]:
        """Return saved baskets, most recent first."""


@dataclass
class BasketDraft:
    """Ordered, duplicate-free list of barcodes being collected."""

    barcodes: list[str] = field(default_factory=list)

    def add(self, barcode: str) -> bool:
        """Add a barcode; returns False when empty or already present."""
        code = barcode.strip()
        if not code or code in self.barcodes:
            return False
        self.barcodes.append(code)
        return True

    def remove(self, barcode: str) -> None:
        """Remove a barcode if present."""
        self.barcodes = [code for code in self.barcodes if code != barcode]

    def clear(self) -> None:
        """Remove every barcode."""
        self.barcodes = []


@dataclass
class BasketService:
    """Analyzes baskets, fills in display metadata and saves them."""

    backend_client: BackendClient
    product_source: SourceAdapter
    repository: BasketRepository
    saved_baskets: list[SavedBasket] = field(default_factory=list)
    _pending: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    async def analyze(self, barcodes: list[str]) -> BasketResult | None:
        """Analyze a basket; returns None without a request when empty."""
        if not barcodes:
            return None
        try:
            payload = await self.backend_client.analyze_basket(list(barcodes))
        except httpx.TransportError as exc:
            raise ConnectivityError(",".join(barcodes)) from exc
        except (httpx.HTTPStatusError, ValueError) as exc:
            raise BasketAnalysisError("Basket analysis failed") from exc
        data = unwrap(payload, "basket")
        if not isinstance(data, dict):
            raise BasketAnalysisError("Basket analysis failed")
        result = basket_from_payload(data)
        result = await self.backfill(result)
        self._save_in_background(list(barcodes), result)
        return result

    async def backfill(self, result: BasketResult) -> BasketResult:
        """Fill missing names, images and brands from per-item lookups."""
        missing = list(
            dict.fromkeys(item.barcode for item in result.items if not item.product_name)
        )
        if not missing:
            return result
        lookups = await asyncio.gather(*(self._lookup(code) for code in missing))
        found = {product.barcode: product for product in lookups if product is not None}
        if not found:
            return result
        return result.with_items(
            [merge_display_fields(item, found.get(item.barcode)) for item in result.items]
        )

    async def previous_baskets(self) -> list[SavedBasket]:
        """Refresh the saved basket list from the ledger.

        Waits for in-flight saves so a just-analyzed basket is included.
        """
        await self.drain()
        try:
            self.saved_baskets = await self.repository.list_baskets()
        except Exception:
            _logger.exception("Failed to load previous baskets")
        return self.saved_baskets

    async def drain(self) -> None:
        """Wait for in-flight basket saves."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _lookup(self, barcode: str) -> Product | None:
        try:
            return await self.product_source.resolve(barcode)
        except httpx.HTTPError as exc:
            _logger.warning("Basket item lookup failed for %s: %s", barcode, exc)
            return None

    def _save_in_background(self, barcodes: list[str], result: BasketResult) -> None:
        task = asyncio.create_task(self._save(barcodes, result))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, barcodes: list[str], result: BasketResult) -> None:
        try:
            saved = await self.repository.save(barcodes, result)
        except Exception:
            _logger.exception("Failed to save basket")
            return
        if saved is not None:
            self.saved_baskets = [saved, *self.saved_baskets]


def merge_display_fields(item: BasketItem, product: Product | None) -> BasketItem:
    """Fill empty display fields from a product; never touches metrics."""
    if product is None or product.barcode != item.barcode:
        return item
    return replace(
        item,
        product_name=item.product_name or product.name,
        image_url=item.image_url or product.image_url,
        brand=item.brand or product.brand,
    )


def basket_from_payload(data: dict[str, object]) -> BasketResult:
    """Build a basket result from a backend basket payload."""
    rows = data.get("items")
    items = [
        basket_item_from_payload(row)
        for row in (rows if isinstance(rows, list) else [])
        if isinstance(row, dict) and row.get("barcode")
    ]
    return BasketResult.from_items(items)


def basket_item_from_payload(row: dict[str, object]) -> BasketItem:
    """Map one backend basket row to a basket item."""
    name = None
    for field_name in _NAME_FIELDS:
        value = row.get(field_name)
        if isinstance(value, str) and value.strip():
            name = value.strip()
            break
    return BasketItem(
        barcode=str(row["barcode"]),
        product_name=name,
        carbon=max(0.0, _to_float(row.get("carbon"))),
        health_score=int(max(MIN_SCORE, min(MAX_SCORE, round(_to_float(row.get("health_score")))))),
        image_url=_optional_text(row.get("image_url")),
        brand=_optional_text(row.get("brand")),
    )


def _to_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def saved_basket_from_row(
    row: dict[str, object], fallback_barcodes: list[str] | None = None
) -> SavedBasket:
    """Map a stored basket row to a saved basket.

    Totals are recomputed from the stored items.
    """
    barcodes = row.get("barcodes")
    if not isinstance(barcodes, list):
        barcodes = list(fallback_barcodes or [])
    row_id = row.get("id", row.get("_id"))
    created_at = row.get("created_at")
    return SavedBasket(
        id=str(row_id) if row_id is not None else None,
        barcodes=[str(code) for code in barcodes],
        result=basket_from_payload(row),
        created_at=(
            datetime.fromisoformat(created_at) if isinstance(created_at, str) else None
        ),
    )
