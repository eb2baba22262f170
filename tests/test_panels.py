"""Tests for product panels and the product view controller."""

import asyncio

from green_label.domain.errors import ProductNotFoundError
from green_label.domain.panels import Macros, RecommendationData
from green_label.services.history import HistoryService
from green_label.services.panels import (
    MODE_ALTERNATIVES,
    MODE_EXCELLENT,
    PANELS,
    PanelLoader,
    ProductViewController,
    ProductViewState,
    macro_split,
    recommendations_panel,
)
from green_label.services.resolver import ProductResolver
from tests.conftest import (
    FakeBackendClient,
    FakeSource,
    InMemoryHistoryRepository,
    InMemoryProductRepository,
    connect_error,
    make_product,
)


def _controller(
    source: FakeSource, backend: FakeBackendClient
) -> tuple[ProductViewController, list[ProductViewState]]:
    resolver = ProductResolver(
        sources=[source],
        history_service=HistoryService(InMemoryHistoryRepository()),
        product_repository=InMemoryProductRepository(),
    )
    states: list[ProductViewState] = []
    controller = ProductViewController(
        resolver=resolver,
        panel_loader=PanelLoader(backend),
        listeners=[states.append],
    )
    return controller, states


def test_macro_split_percentages() -> None:
    split = macro_split(Macros(protein_g=10, carbs_g=30, fat_g=10))

    assert split.protein_pct == 20
    assert split.carbs_pct == 60
    assert split.fat_pct == 20


def test_macro_split_zero_guard() -> None:
    split = macro_split(Macros(calories_kcal=5))

    assert (split.protein_pct, split.carbs_pct, split.fat_pct) == (0, 0, 0)


def test_macros_basis_defaults_to_100g() -> None:
    assert Macros().basis == "100g"
    assert Macros(per="serving").basis == "serving"


def test_recommendations_excellent_when_empty_and_high_score() -> None:
    panel = recommendations_panel(
        RecommendationData(current_score=85, improvement_tips=["Keep it up"])
    )

    assert panel is not None
    assert panel.mode == MODE_EXCELLENT
    assert panel.improvement_tips == ["Keep it up"]


def test_recommendations_hidden_when_empty_and_low_score() -> None:
    assert recommendations_panel(RecommendationData(current_score=50)) is None


def test_recommendations_alternatives_skip_invalid_products() -> None:
    panel = recommendations_panel(
        RecommendationData.model_validate(
            {
                "database_products": [
                    {"barcode": "1", "name": "Better"},
                    {"name": "No barcode"},
                ],
                "ai_suggestions": None,
                "current_score": None,
            }
        )
    )

    assert panel is not None
    assert panel.mode == MODE_ALTERNATIVES
    assert [product.name for product in panel.alternatives] == ["Better"]
    assert panel.current_score == 0


def test_panel_loader_failures_yield_none() -> None:
    backend = FakeBackendClient(
        responses={
            "get_recommendations": connect_error(),
            "get_macros": {"success": False},
            "get_recipes": {"success": True, "recipes": "nope"},
        }
    )
    loader = PanelLoader(backend)

    assert asyncio.run(loader.load_recommendations("1")) is None
    assert asyncio.run(loader.load_macros("1")) is None
    assert asyncio.run(loader.load_recipes("1")) is None


def test_panel_loader_truncates_recipes_and_defaults_sections() -> None:
    backend = FakeBackendClient(
        responses={
            "get_recipes": {
                "success": True,
                "recipes": [
                    {"title": "Porridge", "ingredients": None},
                    {"title": "Cookies", "time_minutes": 20, "steps": ["Bake"]},
                    {"title": "Granola"},
                ],
            }
        }
    )

    recipes = asyncio.run(PanelLoader(backend).load_recipes("1"))

    assert recipes is not None
    assert [recipe.title for recipe in recipes] == ["Porridge", "Cookies"]
    assert recipes[0].ingredients == []
    assert recipes[0].steps == []
    assert backend.called("get_recipes") == [("1", 2)]


def test_view_shows_product_scores_and_each_panel_independently() -> None:
    source = FakeSource("off", products={"123": make_product("123", green_score=90)})
    backend = FakeBackendClient(
        responses={
            "get_recommendations": {"success": False},
            "get_macros": {
                "success": True,
                "macros": {"protein_g": 1, "carbs_g": 1, "fat_g": 2},
            },
            "get_recipes": connect_error(),
        },
        delays={"get_recipes": 0.01},
    )
    controller, states = _controller(source, backend)

    async def run() -> ProductViewState:
        await controller.show("123")
        await controller.wait_for_panels()
        return controller.state

    state = asyncio.run(run())

    assert state.product is not None
    assert state.scores is not None
    assert state.error is None
    assert state.pending_panels == frozenset()
    assert state.recommendations is None
    assert state.macros is not None
    assert state.macros.fat_g == 2
    assert state.recipes is None
    with_product = [s for s in states if s.product is not None]
    assert with_product[0].pending_panels == frozenset(PANELS)
    assert len(with_product) == 1 + len(PANELS)


def test_stale_resolution_is_discarded() -> None:
    slow = make_product("A", name="Slow product")
    fast = make_product("B", name="Fast product")

    class DelayedSource(FakeSource):
        async def resolve(self, barcode: str):  # type: ignore[no-untyped-def]
            self.calls.append(barcode)
            await asyncio.sleep(0.05 if barcode == "A" else 0)
            return {"A": slow, "B": fast}[barcode]

    controller, _ = _controller(DelayedSource("off"), FakeBackendClient())

    async def run() -> ProductViewState:
        first = asyncio.create_task(controller.show("A"))
        await asyncio.sleep(0)
        await controller.show("B")
        await first
        await controller.wait_for_panels()
        return controller.state

    state = asyncio.run(run())

    assert state.product is not None
    assert state.product.name == "Fast product"
    assert state.barcode == "B"


def test_late_panel_results_for_previous_barcode_are_dropped() -> None:
    source = FakeSource(
        "off", products={"A": make_product("A"), "B": make_product("B")}
    )
    backend = FakeBackendClient(
        responses={
            "get_macros": lambda barcode: {
                "success": True,
                "macros": {"protein_g": 1 if barcode == "A" else 9},
            }
        },
        delays={"get_macros": 0.01},
    )
    controller, _ = _controller(source, backend)

    async def run() -> ProductViewState:
        await controller.show("A")
        await controller.show("B")
        await controller.wait_for_panels()
        return controller.state

    state = asyncio.run(run())

    assert state.barcode == "B"
    assert state.macros is not None
    assert state.macros.protein_g == 9


def test_resolution_error_is_the_single_view_error() -> None:
    controller, _ = _controller(FakeSource("off"), FakeBackendClient())

    state = asyncio.run(controller.show("404"))

    assert isinstance(state.error, ProductNotFoundError)
    assert state.loading is False
    assert state.product is None
    assert state.pending_panels == frozenset()
