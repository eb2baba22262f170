"""FastAPI application factory for the product, basket and history views."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from green_label.api.models import BasketRequest, GoalRequest
from green_label.app_logging import configure_logging
from green_label.containers import AppContainer
from green_label.domain.errors import (
    BasketAnalysisError,
    ConfirmationRequiredError,
    ConnectivityError,
    HistoryUnavailableError,
    InvalidBarcodeError,
    ProductNotFoundError,
)
from green_label.domain.impact import ImpactStats, UserGoal
from green_label.domain.panels import Macros
from green_label.domain.products import HistoryEntry, Product
from green_label.services.basket import BasketDraft
from green_label.services.catalog import SORT_NEWEST, filter_and_sort
from green_label.services.formatting import history_label, share_text, time_ago
from green_label.services.panels import RecommendationsPanel, macro_split
from green_label.services.resolver import normalize_barcode
from green_label.services.scoring import (
    derive_scores,
    format_grade,
    grade_for_score,
    overall_impact,
    score_analysis,
    score_label,
)

_ERROR_STATUS: dict[type[Exception], int] = {
    InvalidBarcodeError: 422,
    ProductNotFoundError: 404,
    ConnectivityError: 503,
    BasketAnalysisError: 502,
    ConfirmationRequiredError: 400,
    HistoryUnavailableError: 503,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    async def domain_error(request: Request, exc: Exception) -> JSONResponse:
        logger.info("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=_ERROR_STATUS[type(exc)],
            content={"detail": str(exc), "retryable": getattr(exc, "retryable", False)},
        )

    for error_type in _ERROR_STATUS:
        app.add_exception_handler(error_type, domain_error)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/products")
    async def list_products(
        request: Request, q: str = "", sort: str = SORT_NEWEST
    ) -> dict[str, object]:
        """Saved products filtered by a search term and sorted."""
        state_container: AppContainer = request.app.state.container
        products = await state_container.catalog_service.list_products()
        return {
            "products": [
                _catalog_row(product) for product in filter_and_sort(products, q, sort)
            ]
        }

    @app.get("/products/{barcode}")
    async def product_detail(barcode: str, request: Request) -> dict[str, object]:
        """Resolve a barcode and return the product with its score breakdown."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.resolver.resolve(barcode)
        return _product_detail(product)

    @app.get("/products/{barcode}/recommendations")
    async def product_recommendations(
        barcode: str, request: Request
    ) -> dict[str, object]:
        """Greener alternatives, or null when the panel is hidden."""
        state_container: AppContainer = request.app.state.container
        panel = await state_container.panel_loader.load_recommendations(
            normalize_barcode(barcode)
        )
        if panel is None:
            return {"recommendations": None}
        return {"recommendations": _recommendations(panel)}

    @app.get("/products/{barcode}/macros")
    async def product_macros(barcode: str, request: Request) -> dict[str, object]:
        """Macronutrients with their percentage split."""
        state_container: AppContainer = request.app.state.container
        macros = await state_container.panel_loader.load_macros(
            normalize_barcode(barcode)
        )
        return {"macros": _macros(macros) if macros is not None else None}

    @app.get("/products/{barcode}/recipes")
    async def product_recipes(barcode: str, request: Request) -> dict[str, object]:
        """Recipe suggestions using the product."""
        state_container: AppContainer = request.app.state.container
        recipes = await state_container.panel_loader.load_recipes(
            normalize_barcode(barcode)
        )
        if recipes is None:
            return {"recipes": None}
        return {"recipes": [recipe.model_dump() for recipe in recipes]}

    @app.post("/basket")
    async def analyze_basket(
        payload: BasketRequest, request: Request
    ) -> dict[str, object]:
        """Analyze a basket of barcodes."""
        state_container: AppContainer = request.app.state.container
        draft = BasketDraft()
        for barcode in payload.barcodes:
            draft.add(barcode)
        result = await state_container.basket_service.analyze(draft.barcodes)
        return {"basket": result.to_dict() if result is not None else None}

    @app.get("/baskets")
    async def list_baskets(request: Request) -> dict[str, object]:
        """Previously saved baskets."""
        state_container: AppContainer = request.app.state.container
        baskets = await state_container.basket_service.previous_baskets()
        return {"baskets": [basket.to_dict() for basket in baskets]}

    @app.get("/history")
    async def list_history(request: Request) -> dict[str, object]:
        """Lookup history, most recent first."""
        state_container: AppContainer = request.app.state.container
        entries = await state_container.history_service.list()
        return {"history": [_history_row(entry) for entry in entries]}

    @app.delete("/history")
    async def clear_history(request: Request, confirm: bool = False) -> dict[str, bool]:
        """Delete all history; requires ``confirm=true``."""
        state_container: AppContainer = request.app.state.container
        await state_container.history_service.clear(confirm=confirm)
        return {"success": True}

    @app.get("/impact")
    async def impact(request: Request) -> dict[str, object]:
        """Impact statistics and earned badges."""
        state_container: AppContainer = request.app.state.container
        overview = await state_container.impact_service.overview()
        stats = overview.stats
        return {
            "stats": _impact_stats(stats) if stats is not None else None,
            "badges": [badge.model_dump() for badge in overview.badges],
        }

    @app.post("/impact/goals")
    async def create_goal(
        request: Request, payload: GoalRequest | None = None
    ) -> dict[str, object]:
        """Create an eco goal, using the default carbon goal when no body is sent."""
        state_container: AppContainer = request.app.state.container
        goal = payload or GoalRequest()
        created = await state_container.impact_service.create_goal(
            goal_type=goal.type,
            description=goal.description,
            target_value=goal.target_value,
            progress=goal.progress,
        )
        return {"goal": _goal(created) if created is not None else None}

    return app


def _product_detail(product: Product) -> dict[str, object]:
    scores = derive_scores(product)
    facets = {
        "packaging": scores.packaging_score,
        "nutrition": scores.nutrition_score,
        "environmental": scores.environmental_score,
        "sustainability": scores.sustainability_score,
    }
    return {
        "product": product.to_dict(),
        "display_name": product.display_name,
        "label": score_label(product.green_score),
        "nutrition_grade": format_grade(product.nutrition_grade),
        "ecoscore_grade": format_grade(product.ecoscore_grade),
        "scores": scores.to_dict(),
        "facets": {
            name: {
                "score": score,
                "grade": grade_for_score(score),
                "analysis": score_analysis(score),
            }
            for name, score in facets.items()
        },
        "overall": {
            "score": scores.overall_score,
            "grade": grade_for_score(scores.overall_score),
            "impact": overall_impact(scores.overall_score),
        },
        "share_text": share_text(product),
    }


def _catalog_row(product: Product) -> dict[str, object]:
    return {
        **product.to_dict(),
        "display_name": product.display_name,
        "label": score_label(product.green_score),
    }


def _recommendations(panel: RecommendationsPanel) -> dict[str, object]:
    return {
        "mode": panel.mode,
        "current_score": panel.current_score,
        "alternatives": [_catalog_row(product) for product in panel.alternatives],
        "ai_suggestions": [
            suggestion.model_dump() for suggestion in panel.ai_suggestions
        ],
        "improvement_tips": list(panel.improvement_tips),
    }


def _macros(macros: Macros) -> dict[str, object]:
    return {
        **macros.model_dump(),
        "per": macros.basis,
        "split": asdict(macro_split(macros)),
    }


def _history_row(entry: HistoryEntry) -> dict[str, object]:
    return {
        "barcode": entry.barcode,
        "product_name": entry.product_name,
        "label": history_label(entry),
        "searched_at": entry.searched_at.isoformat(),
        "time_ago": time_ago(entry.searched_at),
    }


def _impact_stats(stats: ImpactStats) -> dict[str, object]:
    return {
        **stats.model_dump(),
        "active_goals": [_goal(goal) for goal in stats.active_goals],
    }


def _goal(goal: UserGoal) -> dict[str, object]:
    return {**goal.model_dump(), "progress_pct": goal.progress_pct}
