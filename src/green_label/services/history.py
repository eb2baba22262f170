"""Lookup history ledger."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import httpx

from green_label.domain.errors import ConfirmationRequiredError, HistoryUnavailableError
from green_label.domain.products import HistoryEntry

_LEDGER_ERRORS = (httpx.HTTPError, RuntimeError, ValueError)

_logger = logging.getLogger(__name__)


class HistoryRepository(Protocol):
    """Persistence interface for the lookup history."""

    async def append(self, entry: HistoryEntry) -> None:
        """Append a history entry."""

    async def list_entries(self) -> list[HistoryEntry]:
        """Return all history entries."""

    async def clear(self) -> None:
        """Delete every history entry."""


@dataclass
class HistoryService:
    """Append-only history with whole-collection clear."""

    repository: HistoryRepository

    async def record(self, barcode: str, product_name: str | None) -> HistoryEntry:
        """Append a lookup for the barcode, stamped now."""
        entry = HistoryEntry(
            barcode=barcode,
            product_name=product_name,
            searched_at=datetime.now(tz=UTC),
        )
        await self.repository.append(entry)
        return entry

    async def list(self) -> list[HistoryEntry]:
        """Return history, most recent first."""
        try:
            entries = await self.repository.list_entries()
        except _LEDGER_ERRORS as exc:
            _logger.warning("Failed to load history: %s", exc)
            raise HistoryUnavailableError("Failed to load search history") from exc
        return sorted(entries, key=_sort_key, reverse=True)

    async def clear(self, *, confirm: bool = False) -> None:
        """Delete all history. Irreversible, so confirmation is mandatory."""
        if not confirm:
            raise ConfirmationRequiredError("Clearing history requires confirmation")
        try:
            await self.repository.clear()
        except _LEDGER_ERRORS as exc:
            _logger.warning("Failed to clear history: %s", exc)
            raise HistoryUnavailableError("Failed to clear history") from exc


def _sort_key(entry: HistoryEntry) -> datetime:
    searched_at = entry.searched_at
    if searched_at.tzinfo is None:
        return searched_at.replace(tzinfo=UTC)
    return searched_at


def history_entry_from_row(row: dict[str, object]) -> HistoryEntry:
    """Map a stored history row to an entry.

    Raises ValueError when the barcode or timestamp is missing or malformed.
    """
    barcode = row.get("barcode")
    searched_at = row.get("searched_at")
    if not isinstance(barcode, str) or not barcode:
        raise ValueError("History row has no barcode")
    if not isinstance(searched_at, str):
        raise ValueError("History row has no timestamp")
    name = row.get("product_name")
    return HistoryEntry(
        barcode=barcode,
        product_name=name if isinstance(name, str) and name else None,
        searched_at=datetime.fromisoformat(searched_at),
    )


def history_entry_to_row(entry: HistoryEntry) -> dict[str, object]:
    """Serialize an entry for storage."""
    return {
        "barcode": entry.barcode,
        "product_name": entry.product_name,
        "searched_at": entry.searched_at.isoformat(),
    }
