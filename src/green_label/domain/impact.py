"""Models for impact statistics, goals and badges."""

from pydantic import BaseModel, Field


class UserGoal(BaseModel):
    """An eco goal with progress."""

    id: int | None = None
    type: str
    description: str
    target_value: float
    progress: float = 0
    is_completed: bool = False

    @property
    def progress_pct(self) -> float:
        """Progress toward the target, capped at 100."""
        if self.target_value <= 0:
            return 0.0
        return min(100.0, (self.progress / self.target_value) * 100)


class ImpactStats(BaseModel):
    """Aggregated impact statistics."""

    total_carbon_saved: float = 0
    weekly_report: str = ""
    active_goals: list[UserGoal] = Field(default_factory=list)
    total_baskets: int | None = None
    total_score: float | None = None
    average_score: float | str | None = None


class Badge(BaseModel):
    """Badge definition."""

    id: int
    name: str
    description: str = ""
    icon: str = ""
    criteria: str = ""


class UserBadge(BaseModel):
    """Badge earned by the user."""

    id: int
    badge: Badge
    earned_at: str
