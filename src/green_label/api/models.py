"""Request models for the view API."""

from pydantic import BaseModel, Field

from green_label.services.impact import (
    DEFAULT_GOAL_DESCRIPTION,
    DEFAULT_GOAL_TARGET,
    DEFAULT_GOAL_TYPE,
)


class BasketRequest(BaseModel):
    barcodes: list[str] = Field(default_factory=list)


class GoalRequest(BaseModel):
    type: str = DEFAULT_GOAL_TYPE
    description: str = DEFAULT_GOAL_DESCRIPTION
    target_value: float = DEFAULT_GOAL_TARGET
    progress: float = 0
