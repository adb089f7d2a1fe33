"""Session orchestrator holding the day's meals, report and chat."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from food_diary.domain.errors import (
    ChatBusyError,
    GatewayError,
    NoMealsError,
    ReportInProgressError,
    SlotBusyError,
)
from food_diary.domain.nutrition import (
    ChatMessage,
    DailyReport,
    Meal,
    MealType,
    NutritionRecord,
)
from food_diary.domain.session import (
    Notice,
    ReportState,
    ReportStatus,
    SlotState,
    SlotStatus,
)
from food_diary.services.aggregation import aggregate
from food_diary.services.gateway import AIGateway, text_turn
from food_diary.services.images import encode_image

_logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hi! I'm your personal nutrition advisor. Ask me about healthy eating, "
    "diet-friendly recipes, or whether the food you just analyzed suits you. "
    "What would you like to know?"
)
CHAT_FAILURE_TEMPLATE = "Chat error: {message}"
REPORT_FAILURE_TEMPLATE = "Failed to generate advice: {message}"


def _now_ms() -> float:
    return datetime.now(tz=UTC).timestamp() * 1000


@dataclass
class DiarySession:
    """State machine for one user's day of meals.

    Mutations happen only between awaits on the event loop, so no locking is
    needed. Results that come back for a slot that was reset, or a report for
    a meal set that has since changed, are discarded.
    """

    gateway: AIGateway
    clock: Callable[[], float] = _now_ms
    error: Notice | None = None
    report_state: ReportState = field(default_factory=ReportState)
    _meals: list[Meal] = field(default_factory=list)
    _slots: dict[MealType, SlotState] = field(
        default_factory=lambda: {slot: SlotState() for slot in MealType}
    )
    _transcript: list[ChatMessage] = field(default_factory=list)
    _meals_version: int = 0
    _chat_epoch: int = 0
    _chat_pending: bool = False
    _last_id: int = 0

    def __post_init__(self) -> None:
        if not self._transcript:
            self._transcript.append(self._welcome_message())

    @property
    def meals(self) -> tuple[Meal, ...]:
        """Meals in insertion order."""
        return tuple(self._meals)

    @property
    def transcript(self) -> tuple[ChatMessage, ...]:
        """Chat messages in the order they were shown."""
        return tuple(self._transcript)

    @property
    def chat_pending(self) -> bool:
        """Whether a chat reply is outstanding."""
        return self._chat_pending

    def slot_status(self, slot: MealType) -> SlotStatus:
        """Return the analysis state of a slot."""
        return self._slots[slot].status

    def totals(self) -> NutritionRecord:
        """Aggregate the current meals."""
        return aggregate(self._meals)

    async def add_meal_photo(
        self, slot: MealType, image_bytes: bytes, mime_type: str | None = None
    ) -> Meal | None:
        """Analyze a photo and record it as a meal in the given slot.

        Returns None when the result arrived after the slot was reset. Gateway
        failures are recorded as the session error and re-raised; the meal
        list is left unchanged.
        """
        state = self._slots[slot]
        if state.status is SlotStatus.LOADING:
            raise SlotBusyError(f"A photo is already being analyzed for {slot}.")
        image = encode_image(image_bytes, mime_type)
        state.status = SlotStatus.LOADING
        ticket = state.ticket
        self.error = None
        try:
            record = await self.gateway.analyze_encoded_image(image)
        except GatewayError as exc:
            if self._slot_current(slot, ticket):
                self.error = Notice(message=exc.message, code=exc.code)
            raise
        finally:
            # Also runs when the caller abandons the request.
            if self._slot_current(slot, ticket):
                self._slots[slot].status = SlotStatus.IDLE
        if not self._slot_current(slot, ticket):
            _logger.info("Discarding analysis result for reset slot %s", slot)
            return None

        meal = Meal(
            **record.model_dump(),
            id=self._next_id(),
            type=slot,
            image=image.data_url,
            timestamp=self.clock(),
        )
        self._meals.append(meal)
        self._meals_changed()
        _logger.info(
            "Meal added: slot=%s calories=%s items=%s",
            slot,
            meal.calories,
            len(meal.food_items),
        )
        return meal

    def delete_meal(self, meal_id: str) -> bool:
        """Remove one meal by id. Returns False if no meal matched."""
        for index, meal in enumerate(self._meals):
            if meal.id == meal_id:
                del self._meals[index]
                self._meals_changed()
                return True
        return False

    async def generate_report(self) -> DailyReport | None:
        """Aggregate the day's meals and request a daily report.

        Returns None if the meal set changed while the request was pending.
        """
        if self.report_state.status is ReportStatus.GENERATING:
            raise ReportInProgressError("A daily report is already being generated.")
        if not self._meals:
            raise NoMealsError("Add at least one meal before generating a report.")

        previous = self.report_state
        version = self._meals_version
        self.report_state = ReportState(status=ReportStatus.GENERATING)
        self.error = None
        try:
            report = await self.gateway.generate_daily_report(aggregate(self._meals))
        except GatewayError as exc:
            if version == self._meals_version:
                self.error = Notice(
                    message=REPORT_FAILURE_TEMPLATE.format(message=exc.message),
                    code=exc.code,
                )
            raise
        finally:
            if version == self._meals_version:
                self.report_state = previous
        if version != self._meals_version:
            _logger.info("Discarding daily report for a changed meal set")
            return None
        self.report_state = ReportState(status=ReportStatus.READY, report=report)
        return report

    async def send_chat(self, text: str) -> ChatMessage | None:
        """Send a chat message and append the model's reply to the transcript.

        The user message is shown immediately and never rolled back; failures
        are appended as a model message instead of raising. Blank input is
        ignored.
        """
        if not text.strip():
            return None
        if self._chat_pending:
            raise ChatBusyError("Wait for the current reply before sending again.")

        history = [text_turn(entry.role, entry.text) for entry in self._transcript]
        self._transcript.append(
            ChatMessage(
                id=self._next_id(), role="user", text=text, timestamp=self.clock()
            )
        )
        self._chat_pending = True
        epoch = self._chat_epoch
        try:
            reply = await self.gateway.send_chat_message(history, text)
        except GatewayError as exc:
            reply = CHAT_FAILURE_TEMPLATE.format(message=exc.message)
        finally:
            if epoch == self._chat_epoch:
                self._chat_pending = False
        if epoch != self._chat_epoch:
            return None
        message = ChatMessage(
            id=self._next_id(), role="model", text=reply, timestamp=self.clock()
        )
        self._transcript.append(message)
        return message

    def dismiss_error(self) -> None:
        """Clear the current error notice."""
        self.error = None

    def replace_gateway(self, gateway: AIGateway) -> AIGateway:
        """Use a gateway bound to a newly selected credential.

        Returns the previous gateway so its client can be closed later.
        """
        previous = self.gateway
        self.gateway = gateway
        self.error = None
        return previous

    def reset(self) -> None:
        """Start a new day, abandoning any pending requests."""
        self._meals.clear()
        self._meals_changed()
        for state in self._slots.values():
            state.status = SlotStatus.IDLE
            state.ticket += 1
        self._chat_epoch += 1
        self._chat_pending = False
        self._transcript = [self._welcome_message()]
        self.error = None

    def _meals_changed(self) -> None:
        self._meals_version += 1
        self.report_state = ReportState()

    def _slot_current(self, slot: MealType, ticket: int) -> bool:
        return self._slots[slot].ticket == ticket

    def _next_id(self) -> str:
        # Time-based, bumped when two ids land in the same millisecond.
        candidate = int(self.clock())
        self._last_id = max(candidate, self._last_id + 1)
        return str(self._last_id)

    def _welcome_message(self) -> ChatMessage:
        return ChatMessage(
            id="welcome", role="model", text=WELCOME_MESSAGE, timestamp=self.clock()
        )
