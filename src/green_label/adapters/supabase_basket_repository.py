"""Supabase implementation of the basket ledger."""

import asyncio
import logging
from dataclasses import dataclass

from supabase import Client

from green_label.domain.basket import BasketResult, SavedBasket
from green_label.services.basket import BasketRepository, saved_basket_from_row

_TABLE = "baskets"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseBasketRepository(BasketRepository):
    """Supabase-backed basket repository."""

    client: Client

    async def save(self, barcodes: list[str], result: BasketResult) -> SavedBasket | None:
        """Insert a basket row and return it."""
        row = await asyncio.to_thread(
            self._insert, {"barcodes": list(barcodes), **result.to_dict()}
        )
        return saved_basket_from_row(row, fallback_barcodes=barcodes)

    async def list_baskets(self) -> list[SavedBasket]:
        """Return saved baskets, newest first."""
        rows = await asyncio.to_thread(self._select)
        baskets = []
        for row in rows:
            try:
                baskets.append(saved_basket_from_row(row))
            except ValueError as exc:
                _logger.warning("Skipping invalid basket row: %s", exc)
        return baskets

    def _insert(self, row: dict[str, object]) -> dict[str, object]:
        response = self.client.table(_TABLE).insert(row).execute()
        if not response.data:
            raise RuntimeError("Failed to save basket")
        return response.data[0]

    def _select(self) -> list[dict[str, object]]:
        response = (
            self.client.table(_TABLE).select("*").order("created_at", desc=True).execute()
        )
        return response.data or []
