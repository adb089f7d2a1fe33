"""Pydantic models for the diary HTTP API."""

from food_diary.domain.nutrition import (
    DailyReport,
    DiaryModel,
    MacroShares,
    Meal,
    MealType,
    NutritionRecord,
)
from food_diary.domain.session import Notice, ReportStatus, SlotStatus
from food_diary.services.aggregation import macro_shares, slot_calories
from food_diary.services.session import DiarySession


class ChatRequest(DiaryModel):
    """New chat message from the user."""

    text: str


class CredentialRequest(DiaryModel):
    """Newly selected API key."""

    api_key: str


class NoticeView(DiaryModel):
    """Error notice payload."""

    message: str
    code: str | None = None


class SlotView(DiaryModel):
    """Meals and loading state for one slot."""

    slot: MealType
    status: SlotStatus
    calories: float
    meals: list[Meal]


class TotalsView(DiaryModel):
    """Day totals with breakdowns."""

    totals: NutritionRecord
    macro_shares: MacroShares
    slot_calories: dict[MealType, float]
    meal_count: int


class ReportView(DiaryModel):
    """Daily report state."""

    status: ReportStatus
    report: DailyReport | None = None


class DiaryView(DiaryModel):
    """Everything the client renders for the analyzer page."""

    meals: list[Meal]
    totals: TotalsView
    slots: list[SlotView]
    report: ReportView
    error: NoticeView | None = None


def totals_view(session: DiarySession) -> TotalsView:
    """Build the totals payload for a session."""
    meals = session.meals
    totals = session.totals()
    return TotalsView(
        totals=totals,
        macro_shares=macro_shares(totals),
        slot_calories={slot: slot_calories(meals, slot) for slot in MealType},
        meal_count=len(meals),
    )


def notice_view(notice: Notice | None) -> NoticeView | None:
    """Convert a session notice into its payload."""
    if notice is None:
        return None
    return NoticeView(message=notice.message, code=notice.code)


def diary_view(session: DiarySession) -> DiaryView:
    """Build the full diary payload for a session."""
    meals = session.meals
    return DiaryView(
        meals=list(meals),
        totals=totals_view(session),
        slots=[
            SlotView(
                slot=slot,
                status=session.slot_status(slot),
                calories=slot_calories(meals, slot),
                meals=[meal for meal in meals if meal.type == slot],
            )
            for slot in MealType
        ],
        report=ReportView(
            status=session.report_state.status,
            report=session.report_state.report,
        ),
        error=notice_view(session.error),
    )
