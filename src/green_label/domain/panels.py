"""Models for the optional product panels served by the backend."""

from pydantic import BaseModel, Field, field_validator


class Recommendation(BaseModel):
    """AI-suggested greener alternative."""

    name: str
    brand: str | None = None
    category: str | None = None
    why_better: str | None = None
    estimated_green_score: float | None = None
    key_benefits: list[str] = Field(default_factory=list)
    where_to_find: str | None = None
    price_comparison: str | None = None
    certifications: str | None = None

    @field_validator("key_benefits", mode="before")
    @classmethod
    def default_lists(cls, value: object) -> object:
        """Treat null lists as empty."""
        return [] if value is None else value


class RecommendationData(BaseModel):
    """Recommendations payload for a product."""

    database_products: list[dict[str, object]] = Field(default_factory=list)
    ai_suggestions: list[Recommendation] = Field(default_factory=list)
    current_score: float = 0
    improvement_tips: list[str] = Field(default_factory=list)

    @field_validator(
        "database_products", "ai_suggestions", "improvement_tips", mode="before"
    )
    @classmethod
    def default_lists(cls, value: object) -> object:
        """Treat null lists as empty."""
        return [] if value is None else value

    @field_validator("current_score", mode="before")
    @classmethod
    def default_score(cls, value: object) -> object:
        """Treat a null score as zero."""
        return 0 if value is None else value


class Macros(BaseModel):
    """Macronutrients for a product."""

    calories_kcal: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    per: str | None = None

    @field_validator("calories_kcal", "protein_g", "carbs_g", "fat_g", mode="before")
    @classmethod
    def default_amounts(cls, value: object) -> object:
        """Treat missing amounts as zero."""
        return 0.0 if value is None else value

    @property
    def basis(self) -> str:
        """Unit basis used for display."""
        return self.per or "100g"


class Recipe(BaseModel):
    """Recipe suggestion using the product."""

    title: str
    time_minutes: int | None = None
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)

    @field_validator("ingredients", "steps", mode="before")
    @classmethod
    def default_lists(cls, value: object) -> object:
        """Treat missing sections as empty."""
        return [] if value is None else value
