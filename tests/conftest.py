"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
import pytest

from green_label.adapters.backend_client import BackendClient, JsonPayload
from green_label.config import Settings
from green_label.containers import AppContainer
from green_label.domain.basket import BasketResult, SavedBasket
from green_label.domain.products import HistoryEntry, Product, ProductSource
from green_label.services.basket import BasketRepository, BasketService
from green_label.services.catalog import CatalogService
from green_label.services.history import HistoryRepository, HistoryService
from green_label.services.impact import ImpactService
from green_label.services.panels import PanelLoader
from green_label.services.resolver import ProductRepository, ProductResolver
from green_label.services.sources import BackendSource, SourceAdapter

Answer = object | Exception | Callable[[object], object]


def make_product(barcode: str = "123", **overrides: object) -> Product:
    """Build a product with sensible defaults."""
    values: dict[str, object] = {
        "barcode": barcode,
        "source": ProductSource.OPENFOODFACTS,
        "name": f"Product {barcode}",
        "green_score": 72,
    }
    values.update(overrides)
    return Product(**values)  # type: ignore[arg-type]


def connect_error() -> httpx.ConnectError:
    return httpx.ConnectError(
        "unreachable", request=httpx.Request("GET", "https://upstream.test")
    )


def status_error(code: int = 500) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://upstream.test")
    return httpx.HTTPStatusError(
        "bad status", request=request, response=httpx.Response(code, request=request)
    )


@dataclass
class FakeSource(SourceAdapter):
    """Source returning canned products, recording every call."""

    name: str
    products: dict[str, Product] = field(default_factory=dict)
    error: Exception | None = None
    delay: float = 0
    calls: list[str] = field(default_factory=list)
    log: list[str] | None = None

    async def resolve(self, barcode: str) -> Product | None:
        self.calls.append(barcode)
        if self.log is not None:
            self.log.append(f"{self.name}:start")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.log is not None:
            self.log.append(f"{self.name}:end")
        if self.error is not None:
            raise self.error
        return self.products.get(barcode)


@dataclass
class FakeBackendClient(BackendClient):
    """Backend client answering from canned payloads.

    ``responses`` maps a method name to a payload, an exception to raise or a
    callable receiving the call argument. ``products`` does the same per
    barcode for ``get_product``.
    """

    responses: dict[str, Answer] = field(default_factory=dict)
    products: dict[str, Answer] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)

    async def get_product(self, barcode: str) -> dict[str, object]:
        answer = self.products.get(barcode, {"success": False})
        return await self._answer("get_product", barcode, answer)

    async def add_product(self, product: dict[str, object]) -> dict[str, object]:
        return await self._respond("add_product", product)

    async def list_products(self) -> dict[str, object]:
        return await self._respond("list_products", None)

    async def get_history(self) -> JsonPayload:
        return await self._respond("get_history", None)

    async def add_history(self, entry: dict[str, object]) -> dict[str, object]:
        return await self._respond("add_history", entry)

    async def clear_history(self) -> dict[str, object]:
        return await self._respond("clear_history", None)

    async def get_recommendations(self, barcode: str) -> dict[str, object]:
        return await self._respond("get_recommendations", barcode)

    async def get_macros(self, barcode: str) -> dict[str, object]:
        return await self._respond("get_macros", barcode)

    async def get_recipes(self, barcode: str, count: int) -> dict[str, object]:
        return await self._respond("get_recipes", (barcode, count))

    async def analyze_basket(self, barcodes: list[str]) -> dict[str, object]:
        return await self._respond("analyze_basket", barcodes)

    async def save_basket(self, barcodes: list[str]) -> dict[str, object]:
        return await self._respond("save_basket", barcodes)

    async def list_baskets(self) -> dict[str, object]:
        return await self._respond("list_baskets", None)

    async def get_impact_stats(self) -> dict[str, object]:
        return await self._respond("get_impact_stats", None)

    async def list_badges(self) -> dict[str, object]:
        return await self._respond("list_badges", None)

    async def create_goal(self, goal: dict[str, object]) -> dict[str, object]:
        return await self._respond("create_goal", goal)

    async def close(self) -> None:
        return None

    def called(self, method: str) -> list[object]:
        return [argument for name, argument in self.calls if name == method]

    async def _respond(self, method: str, argument: object) -> object:
        answer = self.responses.get(method, {"success": False})
        return await self._answer(method, argument, answer)

    async def _answer(self, method: str, argument: object, answer: Answer) -> object:
        self.calls.append((method, argument))
        delay = self.delays.get(method)
        if delay:
            await asyncio.sleep(delay)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(argument)
        return answer


@dataclass
class InMemoryHistoryRepository(HistoryRepository):
    """In-memory history ledger for tests."""

    entries: list[HistoryEntry] = field(default_factory=list)
    fail: bool = False

    async def append(self, entry: HistoryEntry) -> None:
        if self.fail:
            raise RuntimeError("history store down")
        self.entries.append(entry)

    async def list_entries(self) -> list[HistoryEntry]:
        return list(self.entries)

    async def clear(self) -> None:
        self.entries.clear()


@dataclass
class InMemoryBasketRepository(BasketRepository):
    """In-memory basket ledger for tests."""

    baskets: list[SavedBasket] = field(default_factory=list)
    fail: bool = False
    delay: float = 0

    async def save(self, barcodes: list[str], result: BasketResult) -> SavedBasket | None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("basket store down")
        saved = SavedBasket(
            id=str(len(self.baskets) + 1),
            barcodes=list(barcodes),
            result=result,
            created_at=datetime.now(tz=UTC),
        )
        self.baskets.insert(0, saved)
        return saved

    async def list_baskets(self) -> list[SavedBasket]:
        if self.fail:
            raise RuntimeError("basket store down")
        return list(self.baskets)


@dataclass
class InMemoryProductRepository(ProductRepository):
    """In-memory product collection for tests."""

    products: dict[str, Product] = field(default_factory=dict)
    fail: bool = False

    async def upsert(self, product: Product) -> None:
        if self.fail:
            raise RuntimeError("product store down")
        self.products[product.barcode] = product


@pytest.fixture
def settings() -> Settings:
    return Settings(
        backend_base_url="https://backend.test",
        openfoodfacts_base_url="https://off.test",
    )


@pytest.fixture
def backend_client() -> FakeBackendClient:
    return FakeBackendClient()


@pytest.fixture
def history_repository() -> InMemoryHistoryRepository:
    return InMemoryHistoryRepository()


@pytest.fixture
def basket_repository() -> InMemoryBasketRepository:
    return InMemoryBasketRepository()


@pytest.fixture
def product_repository() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def primary_source() -> FakeSource:
    return FakeSource("openfoodfacts")


@pytest.fixture
def container(
    settings: Settings,
    backend_client: FakeBackendClient,
    primary_source: FakeSource,
    history_repository: InMemoryHistoryRepository,
    basket_repository: InMemoryBasketRepository,
    product_repository: InMemoryProductRepository,
) -> AppContainer:
    history_service = HistoryService(history_repository)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        backend_client=backend_client,
        history_service=history_service,
        resolver=ProductResolver(
            sources=[primary_source, BackendSource(backend_client)],
            history_service=history_service,
            product_repository=product_repository,
        ),
        panel_loader=PanelLoader(backend_client),
        basket_service=BasketService(
            backend_client=backend_client,
            product_source=BackendSource(backend_client, fallback_name=None),
            repository=basket_repository,
        ),
        impact_service=ImpactService(backend_client),
        catalog_service=CatalogService(backend_client),
        close_resources=close_resources,
    )
