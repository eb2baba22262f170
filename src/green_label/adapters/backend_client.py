"""Client for the Green Label backend API."""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import httpx

JsonPayload = dict[str, object] | list[object]


class BackendClient(Protocol):
    """Interface for backend API interactions.

    Every method returns the decoded JSON body. Non-2xx responses raise
    ``httpx.HTTPStatusError``; callers treat them the same as a
    ``success: false`` envelope.
    """

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product stored by the backend."""

    async def add_product(self, product: dict[str, object]) -> dict[str, object]:
        """Upsert a product into the backend collection."""

    async def list_products(self) -> dict[str, object]:
        """List saved products."""

    async def get_history(self) -> JsonPayload:
        """List lookup history entries."""

    async def add_history(self, entry: dict[str, object]) -> dict[str, object]:
        """Append a lookup history entry."""

    async def clear_history(self) -> dict[str, object]:
        """Delete all lookup history."""

    async def get_recommendations(self, barcode: str) -> dict[str, object]:
        """Fetch greener alternatives for a product."""

    async def get_macros(self, barcode: str) -> dict[str, object]:
        """Fetch macronutrients for a product."""

    async def get_recipes(self, barcode: str, count: int) -> dict[str, object]:
        """Fetch recipe suggestions for a product."""

    async def analyze_basket(self, barcodes: list[str]) -> dict[str, object]:
        """Analyze a basket of barcodes."""

    async def save_basket(self, barcodes: list[str]) -> dict[str, object]:
        """Save a basket analysis to the ledger."""

    async def list_baskets(self) -> dict[str, object]:
        """List saved baskets."""

    async def get_impact_stats(self) -> dict[str, object]:
        """Fetch impact statistics."""

    async def list_badges(self) -> dict[str, object]:
        """List earned badges."""

    async def create_goal(self, goal: dict[str, object]) -> dict[str, object]:
        """Create an eco goal."""


@dataclass
class HttpxBackendClient(BackendClient):
    """Backend client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10

    @classmethod
    def create(cls, base_url: str, timeout: float = 10) -> "HttpxBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product stored by the backend."""
        return await self._request("GET", f"/api/product/{_segment(barcode)}")

    async def add_product(self, product: dict[str, object]) -> dict[str, object]:
        """Upsert a product into the backend collection."""
        return await self._request("POST", "/api/products/add", json=product)

    async def list_products(self) -> dict[str, object]:
        """List saved products."""
        return await self._request("GET", "/api/products")

    async def get_history(self) -> JsonPayload:
        """List lookup history entries."""
        return await self._request("GET", "/history")

    async def add_history(self, entry: dict[str, object]) -> dict[str, object]:
        """Append a lookup history entry."""
        return await self._request("POST", "/history", json=entry)

    async def clear_history(self) -> dict[str, object]:
        """Delete all lookup history."""
        return await self._request("DELETE", "/history/clear")

    async def get_recommendations(self, barcode: str) -> dict[str, object]:
        """Fetch greener alternatives for a product."""
        return await self._request(
            "GET", f"/api/product/{_segment(barcode)}/recommendations"
        )

    async def get_macros(self, barcode: str) -> dict[str, object]:
        """Fetch macronutrients for a product."""
        return await self._request("GET", f"/api/product/{_segment(barcode)}/macros")

    async def get_recipes(self, barcode: str, count: int) -> dict[str, object]:
        """Fetch recipe suggestions for a product."""
        return await self._request(
            "GET",
            f"/api/product/{_segment(barcode)}/recipes",
            params={"count": count},
        )

    async def analyze_basket(self, barcodes: list[str]) -> dict[str, object]:
        """Analyze a basket of barcodes."""
        return await self._request("POST", "/api/basket", json={"barcodes": barcodes})

    async def save_basket(self, barcodes: list[str]) -> dict[str, object]:
        """Save a basket analysis to the ledger."""
        return await self._request(
            "POST", "/api/basket/save", json={"barcodes": barcodes}
        )

    async def list_baskets(self) -> dict[str, object]:
        """List saved baskets."""
        return await self._request("GET", "/api/baskets")

    async def get_impact_stats(self) -> dict[str, object]:
        """Fetch impact statistics."""
        return await self._request("GET", "/api/impact/stats")

    async def list_badges(self) -> dict[str, object]:
        """List earned badges."""
        return await self._request("GET", "/api/badges")

    async def create_goal(self, goal: dict[str, object]) -> dict[str, object]:
        """Create an eco goal."""
        return await self._request("POST", "/api/goals", json=goal)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: object | None = None,
        params: dict[str, object] | None = None,
    ) -> JsonPayload:
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


def _segment(value: str) -> str:
    return quote(value, safe="")


def unwrap(payload: object, key: str) -> object | None:
    """Return ``payload[key]`` from a successful envelope, else None."""
    if not isinstance(payload, dict) or payload.get("success") is not True:
        return None
    return payload.get(key)
