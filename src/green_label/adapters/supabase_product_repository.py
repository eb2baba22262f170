"""Supabase implementation of the product collection."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from green_label.domain.products import Product
from green_label.services.resolver import ProductRepository


@dataclass
class SupabaseProductRepository(ProductRepository):
    """Supabase-backed product repository keyed by barcode."""

    client: Client

    async def upsert(self, product: Product) -> None:
        """Insert or update the product row; missing fields are left untouched."""
        row = {key: value for key, value in product.to_dict().items() if value is not None}
        await asyncio.to_thread(self._upsert, row)

    def _upsert(self, row: dict[str, object]) -> None:
        self.client.table("products").upsert(row, on_conflict="barcode").execute()
