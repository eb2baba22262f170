"""Supabase implementation of the lookup history ledger."""

import asyncio
import logging
from dataclasses import dataclass

from supabase import Client

from green_label.domain.products import HistoryEntry
from green_label.services.history import (
    HistoryRepository,
    history_entry_from_row,
    history_entry_to_row,
)

_TABLE = "search_history"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase-backed history repository."""

    client: Client

    async def append(self, entry: HistoryEntry) -> None:
        """Insert a history row."""
        await asyncio.to_thread(self._insert, history_entry_to_row(entry))

    async def list_entries(self) -> list[HistoryEntry]:
        """Return history rows, newest first."""
        rows = await asyncio.to_thread(self._select)
        entries = []
        for row in rows:
            try:
                entries.append(history_entry_from_row(row))
            except ValueError as exc:
                _logger.warning("Skipping invalid history row: %s", exc)
        return entries

    async def clear(self) -> None:
        """Delete every history row."""
        await asyncio.to_thread(self._delete_all)

    def _insert(self, row: dict[str, object]) -> None:
        self.client.table(_TABLE).insert(row).execute()

    def _select(self) -> list[dict[str, object]]:
        response = (
            self.client.table(_TABLE)
            .select("*")
            .order("searched_at", desc=True)
            .execute()
        )
        return response.data or []

    def _delete_all(self) -> None:
        self.client.table(_TABLE).delete().neq("barcode", "").execute()
