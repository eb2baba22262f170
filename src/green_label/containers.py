"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import Client, create_client

from green_label.adapters.backend_client import BackendClient, HttpxBackendClient
from green_label.adapters.backend_ledger_repository import (
    BackendBasketRepository,
    BackendHistoryRepository,
    BackendProductRepository,
)
from green_label.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from green_label.adapters.supabase_basket_repository import SupabaseBasketRepository
from green_label.adapters.supabase_history_repository import SupabaseHistoryRepository
from green_label.adapters.supabase_product_repository import (
    SupabaseProductRepository,
)
from green_label.config import LEDGER_STORE_SUPABASE, Settings, parse_ledger_store
from green_label.services.basket import BasketRepository, BasketService
from green_label.services.catalog import CatalogService
from green_label.services.history import HistoryRepository, HistoryService
from green_label.services.impact import ImpactService
from green_label.services.panels import PanelLoader
from green_label.services.resolver import ProductRepository, ProductResolver
from green_label.services.sources import BackendSource, OpenFoodFactsSource


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    backend_client: BackendClient
    history_service: HistoryService
    resolver: ProductResolver
    panel_loader: PanelLoader
    basket_service: BasketService
    impact_service: ImpactService
    catalog_service: CatalogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = _supabase_client(resolved_settings)
    timeout = resolved_settings.request_timeout_seconds
    backend_client = HttpxBackendClient.create(
        resolved_settings.backend_base_url, timeout=timeout
    )
    openfoodfacts_client = HttpxOpenFoodFactsClient.create(
        resolved_settings.openfoodfacts_base_url, timeout=timeout
    )
    history_repository, basket_repository, product_repository = _ledger_repositories(
        supabase_client, backend_client
    )
    history_service = HistoryService(history_repository)
    resolver = ProductResolver(
        sources=[
            OpenFoodFactsSource(openfoodfacts_client),
            BackendSource(backend_client),
        ],
        history_service=history_service,
        product_repository=product_repository,
    )
    basket_service = BasketService(
        backend_client=backend_client,
        product_source=BackendSource(backend_client, fallback_name=None),
        repository=basket_repository,
    )

    async def close_resources() -> None:
        await resolver.drain()
        await basket_service.drain()
        await backend_client.close()
        await openfoodfacts_client.close()

    return AppContainer(
        settings=resolved_settings,
        backend_client=backend_client,
        history_service=history_service,
        resolver=resolver,
        panel_loader=PanelLoader(
            backend_client, recipe_count=resolved_settings.recipe_count
        ),
        basket_service=basket_service,
        impact_service=ImpactService(backend_client),
        catalog_service=CatalogService(backend_client),
        close_resources=close_resources,
    )


def _supabase_client(settings: Settings) -> Client | None:
    if parse_ledger_store(settings.ledger_store) != LEDGER_STORE_SUPABASE:
        return None
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError(
            "supabase_url and supabase_service_key are required for the "
            "supabase ledger store"
        )
    return create_client(settings.supabase_url, settings.supabase_service_key)


def _ledger_repositories(
    supabase_client: Client | None, backend_client: HttpxBackendClient
) -> tuple[HistoryRepository, BasketRepository, ProductRepository]:
    if supabase_client is not None:
        return (
            SupabaseHistoryRepository(supabase_client),
            SupabaseBasketRepository(supabase_client),
            SupabaseProductRepository(supabase_client),
        )
    return (
        BackendHistoryRepository(backend_client),
        BackendBasketRepository(backend_client),
        BackendProductRepository(backend_client),
    )
