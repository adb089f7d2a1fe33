"""Daily aggregation of meal nutrition records."""

import math
from collections.abc import Sequence

from food_diary.domain.nutrition import MacroShares, Meal, MealType, NutritionRecord

TOTALS_SUMMARY = "today's overview"


def aggregate(meals: Sequence[Meal]) -> NutritionRecord:
    """Combine meals into the day's totals.

    Macros are summed exactly. Food items are the union of all meals' items,
    deduplicated and kept in first-seen order. The health score is the mean of
    the meals' scores rounded half-up, recomputed over the full list on every
    call so the result does not depend on the order meals were added.
    """
    calories = 0.0
    protein = 0.0
    carbs = 0.0
    fat = 0.0
    score_sum = 0.0
    food_items: dict[str, None] = {}
    for meal in meals:
        calories += meal.calories
        protein += meal.protein
        carbs += meal.carbs
        fat += meal.fat
        score_sum += meal.health_score
        for item in meal.food_items:
            food_items.setdefault(item, None)

    return NutritionRecord(
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        food_items=list(food_items),
        health_score=_mean_score(score_sum, len(meals)),
        summary=TOTALS_SUMMARY,
    )


def slot_calories(meals: Sequence[Meal], slot: MealType) -> float:
    """Return the calorie subtotal for one slot."""
    return sum((meal.calories for meal in meals if meal.type == slot), 0.0)


def macro_shares(record: NutritionRecord) -> MacroShares:
    """Return each macro's share of total macro grams as a percentage."""
    total = record.protein + record.carbs + record.fat
    if total <= 0:
        return MacroShares(protein=0, carbs=0, fat=0)
    return MacroShares(
        protein=_round_half_up(record.protein / total * 100),
        carbs=_round_half_up(record.carbs / total * 100),
        fat=_round_half_up(record.fat / total * 100),
    )


def _mean_score(score_sum: float, count: int) -> int:
    if count == 0:
        return 0
    return min(100, max(0, _round_half_up(score_sum / count)))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
