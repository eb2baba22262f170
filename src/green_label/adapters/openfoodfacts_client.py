"""Open Food Facts product API client."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

_USER_AGENT = "GreenLabel/0.1 (barcode eco score client)"


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts lookups."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10

    @classmethod
    def create(cls, base_url: str, timeout: float = 10) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers={"User-Agent": _USER_AGENT}),
            timeout=timeout,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product record; absence is signaled by the status flag."""
        url = f"{self.base_url}/api/v0/product/{quote(barcode, safe='')}.json"
        response = await self.http_client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
