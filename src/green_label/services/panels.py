"""Product view assembly: resolution plus independently loading panels.

Recommendations, macros and recipes are fetched as separate tasks. Each
task writes only its own slot of the view state and is tagged with the
generation of the barcode it was started for; results from an older
generation are dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace

import httpx
from pydantic import ValidationError

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.domain.errors import (
    ConnectivityError,
    InvalidBarcodeError,
    ProductNotFoundError,
)
from green_label.domain.panels import Macros, Recipe, Recommendation, RecommendationData
from green_label.domain.products import Product, ScoreBreakdown
from green_label.services.resolver import ProductResolver
from green_label.services.scoring import derive_scores
from green_label.services.sources import product_from_backend

EXCELLENT_SCORE = 80
PANEL_RECOMMENDATIONS = "recommendations"
PANEL_MACROS = "macros"
PANEL_RECIPES = "recipes"
PANELS = (PANEL_RECOMMENDATIONS, PANEL_MACROS, PANEL_RECIPES)

MODE_ALTERNATIVES = "alternatives"
MODE_EXCELLENT = "excellent"

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationsPanel:
    """What the recommendations section shows."""

    mode: str
    current_score: float
    alternatives: list[Product] = field(default_factory=list)
    ai_suggestions: list[Recommendation] = field(default_factory=list)
    improvement_tips: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MacroSplit:
    """Share of protein, carbs and fat by weight, in percent."""

    protein_pct: float
    carbs_pct: float
    fat_pct: float


def macro_split(macros: Macros) -> MacroSplit:
    """Split macros into percentages; all zero when there is no mass."""
    total = macros.protein_g + macros.carbs_g + macros.fat_g
    if total <= 0:
        return MacroSplit(protein_pct=0.0, carbs_pct=0.0, fat_pct=0.0)
    return MacroSplit(
        protein_pct=macros.protein_g / total * 100,
        carbs_pct=macros.carbs_g / total * 100,
        fat_pct=macros.fat_g / total * 100,
    )


def recommendations_panel(data: RecommendationData) -> RecommendationsPanel | None:
    """Decide how to present recommendations, or None to hide the panel."""
    alternatives = _alternatives(data.database_products)
    if not alternatives and not data.ai_suggestions:
        if data.current_score >= EXCELLENT_SCORE:
            return RecommendationsPanel(
                mode=MODE_EXCELLENT,
                current_score=data.current_score,
                improvement_tips=list(data.improvement_tips),
            )
        return None
    return RecommendationsPanel(
        mode=MODE_ALTERNATIVES,
        current_score=data.current_score,
        alternatives=alternatives,
        ai_suggestions=list(data.ai_suggestions),
        improvement_tips=list(data.improvement_tips),
    )


@dataclass
class PanelLoader:
    """Fetches one optional panel at a time; failures yield None."""

    backend_client: BackendClient
    recipe_count: int = 2

    async def load_recommendations(self, barcode: str) -> RecommendationsPanel | None:
        """Fetch and classify recommendations."""
        payload = await self._fetch(
            PANEL_RECOMMENDATIONS, barcode, self.backend_client.get_recommendations
        )
        data = unwrap(payload, "recommendations")
        if not isinstance(data, dict):
            return None
        try:
            return recommendations_panel(RecommendationData.model_validate(data))
        except ValidationError as exc:
            _logger.warning("Invalid recommendations for %s: %s", barcode, exc)
            return None

    async def load_macros(self, barcode: str) -> Macros | None:
        """Fetch macronutrients."""
        payload = await self._fetch(PANEL_MACROS, barcode, self.backend_client.get_macros)
        data = unwrap(payload, "macros")
        if not isinstance(data, dict):
            return None
        try:
            return Macros.model_validate(data)
        except ValidationError as exc:
            _logger.warning("Invalid macros for %s: %s", barcode, exc)
            return None

    async def load_recipes(self, barcode: str) -> list[Recipe] | None:
        """Fetch up to ``recipe_count`` recipes."""
        payload = await self._fetch(
            PANEL_RECIPES,
            barcode,
            lambda code: self.backend_client.get_recipes(code, self.recipe_count),
        )
        data = unwrap(payload, "recipes")
        if not isinstance(data, list):
            return None
        recipes: list[Recipe] = []
        for row in data[: self.recipe_count]:
            try:
                recipes.append(Recipe.model_validate(row))
            except ValidationError as exc:
                _logger.warning("Skipping invalid recipe for %s: %s", barcode, exc)
        return recipes

    async def _fetch(
        self,
        panel: str,
        barcode: str,
        fetch: Callable[[str], Awaitable[dict[str, object]]],
    ) -> object | None:
        try:
            return await fetch(barcode)
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Failed to load %s for %s: %s", panel, barcode, exc)
            return None


@dataclass(frozen=True)
class ProductViewState:
    """Immutable snapshot of the product view."""

    generation: int = 0
    barcode: str | None = None
    loading: bool = False
    product: Product | None = None
    scores: ScoreBreakdown | None = None
    error: Exception | None = None
    pending_panels: frozenset[str] = frozenset()
    recommendations: RecommendationsPanel | None = None
    macros: Macros | None = None
    recipes: list[Recipe] | None = None


ViewListener = Callable[[ProductViewState], None]


@dataclass
class ProductViewController:
    """Owns the current product view and replaces it as results arrive."""

    resolver: ProductResolver
    panel_loader: PanelLoader
    listeners: list[ViewListener] = field(default_factory=list)
    state: ProductViewState = field(default_factory=ProductViewState)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    async def show(self, barcode: str) -> ProductViewState:
        """Resolve a barcode and start its panels.

        A later call supersedes this one: if another barcode was requested
        while this resolution was in flight, its result is discarded.
        """
        generation = self.state.generation + 1
        self._cancel_panels()
        self._replace(
            ProductViewState(
                generation=generation,
                barcode=barcode.strip() if isinstance(barcode, str) else None,
                loading=True,
            )
        )
        try:
            product = await self.resolver.resolve(barcode)
        except (InvalidBarcodeError, ProductNotFoundError, ConnectivityError) as exc:
            if self._is_current(generation):
                self._replace(replace(self.state, loading=False, error=exc))
            return self.state
        if not self._is_current(generation):
            _logger.info("Discarding stale result for %s", product.barcode)
            return self.state
        self._replace(
            ProductViewState(
                generation=generation,
                barcode=product.barcode,
                product=product,
                scores=derive_scores(product),
                pending_panels=frozenset(PANELS),
            )
        )
        self._start_panels(generation, product.barcode)
        return self.state

    async def wait_for_panels(self) -> None:
        """Wait until every panel task of the current generation settles."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def close(self) -> None:
        """Cancel in-flight panel work and invalidate pending results."""
        self._cancel_panels()
        self._replace(ProductViewState(generation=self.state.generation + 1))

    def _start_panels(self, generation: int, barcode: str) -> None:
        loaders = {
            PANEL_RECOMMENDATIONS: self.panel_loader.load_recommendations,
            PANEL_MACROS: self.panel_loader.load_macros,
            PANEL_RECIPES: self.panel_loader.load_recipes,
        }
        for panel, loader in loaders.items():
            task = asyncio.create_task(
                self._load_panel(generation, panel, loader, barcode)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _load_panel(
        self,
        generation: int,
        panel: str,
        loader: Callable[[str], Awaitable[object]],
        barcode: str,
    ) -> None:
        result = await loader(barcode)
        if not self._is_current(generation):
            return
        self._replace(
            replace(
                self.state,
                pending_panels=self.state.pending_panels - {panel},
                **{panel: result},
            )
        )

    def _cancel_panels(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _is_current(self, generation: int) -> bool:
        return self.state.generation == generation

    def _replace(self, state: ProductViewState) -> None:
        self.state = state
        for listener in self.listeners:
            listener(state)


def _alternatives(rows: list[dict[str, object]]) -> list[Product]:
    products = []
    for row in rows:
        try:
            products.append(product_from_backend(row))
        except ValueError as exc:
            _logger.warning("Skipping invalid alternative product: %s", exc)
    return products
