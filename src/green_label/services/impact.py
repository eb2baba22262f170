"""Impact statistics, badges and goals."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx
from pydantic import ValidationError

from green_label.adapters.backend_client import BackendClient, unwrap
from green_label.domain.impact import ImpactStats, UserBadge, UserGoal

DEFAULT_GOAL_TYPE = "carbon_reduction"
DEFAULT_GOAL_DESCRIPTION = "Reduce carbon footprint by 10%"
DEFAULT_GOAL_TARGET = 10

_logger = logging.getLogger(__name__)


@dataclass
class ImpactOverview:
    """Stats and badges loaded together; either may be missing."""

    stats: ImpactStats | None
    badges: list[UserBadge] = field(default_factory=list)


@dataclass
class ImpactService:
    """Reads impact statistics and badges, and creates goals."""

    backend_client: BackendClient

    async def stats(self) -> ImpactStats | None:
        """Return impact statistics, or None when unavailable."""
        try:
            payload = await self.backend_client.get_impact_stats()
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Failed to fetch impact stats: %s", exc)
            return None
        data = unwrap(payload, "stats")
        if not isinstance(data, dict):
            return None
        try:
            return ImpactStats.model_validate(data)
        except ValidationError as exc:
            _logger.warning("Invalid impact stats: %s", exc)
            return None

    async def badges(self) -> list[UserBadge]:
        """Return earned badges; empty when unavailable."""
        try:
            payload = await self.backend_client.list_badges()
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Failed to fetch badges: %s", exc)
            return []
        rows = unwrap(payload, "badges")
        if not isinstance(rows, list):
            return []
        badges = []
        for row in rows:
            try:
                badges.append(UserBadge.model_validate(row))
            except ValidationError as exc:
                _logger.warning("Skipping invalid badge: %s", exc)
        return badges

    async def overview(self) -> ImpactOverview:
        """Load stats and badges concurrently."""
        stats, badges = await asyncio.gather(self.stats(), self.badges())
        return ImpactOverview(stats=stats, badges=badges)

    async def create_goal(
        self,
        goal_type: str = DEFAULT_GOAL_TYPE,
        description: str = DEFAULT_GOAL_DESCRIPTION,
        target_value: float = DEFAULT_GOAL_TARGET,
        progress: float = 0,
    ) -> UserGoal | None:
        """Create a goal; None when the backend did not accept it.

        Returns the stored goal when the backend echoes it, else the goal as sent.
        """
        goal = UserGoal(
            type=goal_type,
            description=description,
            target_value=target_value,
            progress=progress,
        )
        try:
            payload = await self.backend_client.create_goal(
                goal.model_dump(include={"type", "description", "target_value", "progress"})
            )
        except (httpx.HTTPError, ValueError) as exc:
            _logger.warning("Failed to create goal: %s", exc)
            return None
        if not isinstance(payload, dict) or payload.get("success") is not True:
            _logger.warning("Goal was not created: %s", payload)
            return None
        data = unwrap(payload, "goal")
        if not isinstance(data, dict):
            return goal
        try:
            return UserGoal.model_validate(data)
        except ValidationError as exc:
            _logger.warning("Invalid goal in response: %s", exc)
            return goal
