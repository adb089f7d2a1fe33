"""Nutrition domain models."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DiaryModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MealType(StrEnum):
    """Fixed daily meal slots."""

    MORNING = "morning"
    NOON = "noon"
    EVENING = "evening"


class NutritionRecord(DiaryModel):
    """Nutrition facts for a single meal or for the day's totals."""

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    food_items: list[str]
    health_score: float = Field(ge=0, le=100)
    summary: str


class Meal(NutritionRecord):
    """A recorded eating event bound to one slot."""

    id: str
    type: MealType
    image: str
    timestamp: float


class DailyReport(DiaryModel):
    """AI-generated narrative advice for the day."""

    title: str
    short_summary: str
    detailed_advice: str


class ChatMessage(DiaryModel):
    """Single turn of the nutrition chat transcript."""

    id: str
    role: Literal["user", "model"]
    text: str
    timestamp: float


class MacroShares(DiaryModel):
    """Percentage of total macro grams contributed by each macro."""

    protein: int
    carbs: int
    fat: int
