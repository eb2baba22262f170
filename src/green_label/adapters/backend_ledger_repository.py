"""Ledger repositories backed by the Green Label backend API."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.domain.basket import BasketResult, SavedBasket
from green_label.domain.products import HistoryEntry, Product
from green_label.services.basket import BasketRepository, saved_basket_from_row
from green_label.services.history import (
    HistoryRepository,
    history_entry_from_row,
    history_entry_to_row,
)
from green_label.services.resolver import ProductRepository

_logger = logging.getLogger(__name__)


@dataclass
class BackendHistoryRepository(HistoryRepository):
    """History ledger stored through the backend API."""

    client: BackendClient

    async def append(self, entry: HistoryEntry) -> None:
        """Append a history entry."""
        payload = await self.client.add_history(history_entry_to_row(entry))
        _require_success(payload, "Failed to append history entry")

    async def list_entries(self) -> list[HistoryEntry]:
        """Return all history entries."""
        payload = await self.client.get_history()
        if isinstance(payload, list):
            rows = payload
        else:
            rows = unwrap(payload, "history")
            if not isinstance(rows, list):
                raise RuntimeError("Failed to load history")
        entries = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                entries.append(history_entry_from_row(row))
            except ValueError as exc:
                _logger.warning("Skipping invalid history row: %s", exc)
        return entries

    async def clear(self) -> None:
        """Delete every history entry."""
        payload = await self.client.clear_history()
        _require_success(payload, "Failed to clear history")


@dataclass
class BackendBasketRepository(BasketRepository):
    """Basket ledger stored through the backend API."""

    client: BackendClient

    async def save(self, barcodes: list[str], result: BasketResult) -> SavedBasket | None:
        """Save a basket analysis."""
        payload = await self.client.save_basket(barcodes)
        _require_success(payload, "Failed to save basket")
        row = unwrap(payload, "basket")
        if not isinstance(row, dict):
            row = {}
        row_id = row.get("id", row.get("_id"))
        created_at = row.get("created_at")
        return SavedBasket(
            id=str(row_id) if row_id is not None else None,
            barcodes=list(barcodes),
            result=result,
            created_at=(
                datetime.fromisoformat(created_at)
                if isinstance(created_at, str)
                else datetime.now(tz=UTC)
            ),
        )

    async def list_baskets(self) -> list[SavedBasket]:
        """Return saved baskets, most recent first."""
        rows = unwrap(await self.client.list_baskets(), "baskets")
        if not isinstance(rows, list):
            raise RuntimeError("Failed to load baskets")
        baskets = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                baskets.append(saved_basket_from_row(row))
            except ValueError as exc:
                _logger.warning("Skipping invalid basket row: %s", exc)
        return baskets


@dataclass
class BackendProductRepository(ProductRepository):
    """Product collection stored through the backend API."""

    client: BackendClient

    async def upsert(self, product: Product) -> None:
        """Insert or update a product keyed by barcode."""
        payload = await self.client.add_product(product.to_dict())
        _require_success(payload, "Failed to persist product")


def _require_success(payload: object, message: str) -> None:
    if not isinstance(payload, dict) or payload.get("success") is not True:
        raise RuntimeError(message)
