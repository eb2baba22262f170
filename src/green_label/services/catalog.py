"""Saved product catalog browsing."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.domain.products import Product
from green_label.services.sources import product_from_backend

SORT_NEWEST = "newest"
SORT_SCORE = "score"
SORT_NAME = "name"
SORT_OPTIONS = (SORT_NEWEST, SORT_SCORE, SORT_NAME)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_logger = logging.getLogger(__name__)


@dataclass
class CatalogService:
    """Lists products the backend has stored."""

    backend_client: BackendClient

    async def list_products(self) -> list[Product]:
        """Return every stored product; empty when the backend is unavailable."""
        try:
            payload = await self.backend_client.list_products()
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Failed to list products: %s", exc)
            return []
        rows = unwrap(payload, "products")
        if not isinstance(rows, list):
            return []
        products = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                products.append(product_from_backend(row))
            except ValueError as exc:
                _logger.warning("Skipping invalid catalog product: %s", exc)
        return products


def filter_and_sort(
    products: list[Product], term: str = "", sort_by: str = SORT_NEWEST
) -> list[Product]:
    """Filter by name, brand or barcode and order the result.

    Unknown sort keys fall back to newest first.
    """
    needle = term.strip().lower()
    if needle:
        products = [product for product in products if _matches(product, needle)]
    if sort_by == SORT_SCORE:
        return sorted(products, key=lambda product: product.green_score or 0, reverse=True)
    if sort_by == SORT_NAME:
        return sorted(products, key=lambda product: (product.name or "Unknown").lower())
    return sorted(products, key=_created_at, reverse=True)


def _matches(product: Product, needle: str) -> bool:
    return (
        needle in (product.name or "").lower()
        or needle in (product.brand or "").lower()
        or needle in product.barcode
    )


def _created_at(product: Product) -> datetime:
    created_at = product.created_at
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=UTC)
    return created_at
