"""Barcode resolution across product sources."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from green_label.domain.errors import (
    ConnectivityError,
    InvalidBarcodeError,
    ProductNotFoundError,
)
from green_label.domain.products import Product
from green_label.services.history import HistoryService
from green_label.services.sources import SourceAdapter

_logger = logging.getLogger(__name__)


class ProductRepository(Protocol):
    """Persistence interface for the resolved product collection."""

    async def upsert(self, product: Product) -> None:
        """Insert or update a product keyed by barcode."""


def normalize_barcode(barcode: str) -> str:
    """Trim a barcode, rejecting empty input."""
    normalized = barcode.strip() if isinstance(barcode, str) else ""
    if not normalized:
        raise InvalidBarcodeError("Please enter a valid barcode")
    return normalized


@dataclass
class ProductResolver:
    """Tries sources in priority order and returns the first product.

    Successful resolutions record history and upsert the product in
    background tasks; their failures are logged and never reach the caller.
    """

    sources: list[SourceAdapter]
    history_service: HistoryService
    product_repository: ProductRepository
    _pending: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    async def resolve(self, barcode: str) -> Product:
        """Resolve a barcode to a product."""
        normalized = normalize_barcode(barcode)
        reachable = 0
        for source in self.sources:
            try:
                product = await source.resolve(normalized)
            except httpx.TransportError as exc:
                _logger.warning(
                    "Product source %s unreachable for %s: %s",
                    source.name,
                    normalized,
                    exc,
                )
                continue
            reachable += 1
            if product is not None:
                _logger.info("Resolved %s via %s", normalized, source.name)
                self._persist_in_background(product)
                return product
        if reachable == 0:
            raise ConnectivityError(normalized)
        raise ProductNotFoundError(normalized)

    async def drain(self) -> None:
        """Wait for in-flight persistence tasks."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _persist_in_background(self, product: Product) -> None:
        task = asyncio.create_task(self._persist(product))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, product: Product) -> None:
        try:
            await self.history_service.record(product.barcode, product.name)
        except Exception:
            _logger.exception(
                "Failed to record lookup history", extra={"barcode": product.barcode}
            )
        try:
            await self.product_repository.upsert(product)
        except Exception:
            _logger.exception(
                "Failed to persist product", extra={"barcode": product.barcode}
            )
