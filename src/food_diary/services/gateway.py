"""Gateway to the hosted generative model.

The gateway owns prompts, output schemas and response validation. Transport
concerns (wire format, HTTP errors) live behind the ``ModelClient`` protocol.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from food_diary.config import normalize_credential
from food_diary.domain.errors import (
    CredentialMissingError,
    EmptyResponseError,
    GatewayError,
    SchemaViolationError,
    TransportError,
)
from food_diary.domain.nutrition import DailyReport, NutritionRecord
from food_diary.services.images import EncodedImage, encode_image

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Conversation turns use the role/parts shape:
# {"role": "user" | "model", "parts": [{"text": ...} | {"inline_data": {...}}]}
Turn = dict[str, object]

CHAT_FALLBACK_REPLY = "Sorry, I couldn't get an answer this time."
MISSING_CREDENTIAL_MESSAGE = (
    "API key is missing. Select an API key before using the nutrition assistant."
)

NUTRITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "calories": {
            "type": "number",
            "description": "Total estimated calories in kcal",
        },
        "protein": {"type": "number", "description": "Total protein in grams"},
        "carbs": {
            "type": "number",
            "description": "Total carbohydrates in grams",
        },
        "fat": {"type": "number", "description": "Total fat in grams"},
        "foodItems": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of identified food items",
        },
        "healthScore": {
            "type": "number",
            "description": "Health score from 0 to 100 based on nutritional balance",
        },
        "summary": {
            "type": "string",
            "description": "A brief, encouraging summary of the nutritional value",
        },
    },
    "required": [
        "calories",
        "protein",
        "carbs",
        "fat",
        "foodItems",
        "healthScore",
        "summary",
    ],
    "additionalProperties": False,
}

REPORT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "A concise and catchy title for the daily health report",
        },
        "shortSummary": {
            "type": "string",
            "description": "A one or two sentence summary of the day's intake",
        },
        "detailedAdvice": {
            "type": "string",
            "description": (
                "Health advice and suggestions for the next day in Markdown"
            ),
        },
    },
    "required": ["title", "shortSummary", "detailedAdvice"],
    "additionalProperties": False,
}


class ModelClient(Protocol):
    """Interface for the hosted model transport."""

    async def generate_json(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        schema: dict[str, object],
        schema_name: str,
    ) -> str | None:
        """Return the JSON text produced under the given output schema."""

    async def generate_text(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str,
    ) -> str | None:
        """Return free text produced under a system instruction."""

    async def close(self) -> None:
        """Release transport resources."""


def text_turn(role: str, text: str) -> Turn:
    """Build a text-only conversation turn."""
    return {"role": role, "parts": [{"text": text}]}


@dataclass
class AIGateway:
    """Issues image analysis, report and chat requests to the model."""

    credential: str | None
    client_factory: Callable[[str], ModelClient]
    analysis_model: str
    text_model: str
    reply_language: str = "Chinese"
    _client: ModelClient | None = field(default=None, init=False, repr=False)
    _in_flight: int = field(default=0, init=False, repr=False)
    _retired: bool = field(default=False, init=False, repr=False)

    def with_credential(self, credential: str | None) -> "AIGateway":
        """Return a gateway bound to another credential."""
        return replace(self, credential=credential)

    async def analyze_image(
        self, image_bytes: bytes, mime_type: str
    ) -> NutritionRecord:
        """Estimate nutrition facts for a meal photo."""
        return await self.analyze_encoded_image(encode_image(image_bytes, mime_type))

    async def analyze_encoded_image(self, image: EncodedImage) -> NutritionRecord:
        """Estimate nutrition facts for a photo that is already base64-encoded."""
        client = self._resolve_client()
        turn: Turn = {
            "role": "user",
            "parts": [
                {"inline_data": {"mime_type": image.mime_type, "data": image.data}},
                {"text": _analysis_prompt(self.reply_language)},
            ],
        }
        raw = await self._call(
            "analyze_image",
            lambda: client.generate_json(
                model=self.analysis_model,
                contents=[turn],
                schema=NUTRITION_SCHEMA,
                schema_name="nutrition_record",
            ),
        )
        return _validate_payload(raw, NutritionRecord, action="image analysis")

    async def generate_daily_report(self, totals: NutritionRecord) -> DailyReport:
        """Write a daily health report from aggregated totals."""
        client = self._resolve_client()
        prompt = _report_prompt(totals, self.reply_language)
        raw = await self._call(
            "generate_daily_report",
            lambda: client.generate_json(
                model=self.text_model,
                contents=[text_turn("user", prompt)],
                schema=REPORT_SCHEMA,
                schema_name="daily_report",
            ),
        )
        return _validate_payload(raw, DailyReport, action="the daily report")

    async def send_chat_message(self, history: Sequence[Turn], new_message: str) -> str:
        """Send a chat message with its history and return the reply text."""
        client = self._resolve_client()
        contents = [*history, text_turn("user", new_message)]
        reply = await self._call(
            "send_chat_message",
            lambda: client.generate_text(
                model=self.text_model,
                contents=contents,
                system_instruction=_chat_instruction(self.reply_language),
            ),
        )
        if not reply or not reply.strip():
            _logger.info("Chat reply was empty; using fallback reply")
            return CHAT_FALLBACK_REPLY
        return reply

    async def aclose(self) -> None:
        """Close the transport client if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def retire(self) -> None:
        """Close the client now, or after the last in-flight call finishes."""
        self._retired = True
        if self._in_flight == 0:
            await self.aclose()

    def _resolve_client(self) -> ModelClient:
        credential = normalize_credential(self.credential)
        if credential is None:
            raise CredentialMissingError(MISSING_CREDENTIAL_MESSAGE)
        if self._client is None:
            self._client = self.client_factory(credential)
        return self._client

    async def _call(
        self, action: str, func: Callable[[], Awaitable[str | None]]
    ) -> str | None:
        self._in_flight += 1
        try:
            return await func()
        except GatewayError as exc:
            _logger.warning("Model %s failed (code=%s): %s", action, exc.code, exc)
            raise
        except Exception as exc:
            _logger.exception("Model %s failed unexpectedly", action)
            raise TransportError(str(exc) or type(exc).__name__) from exc
        finally:
            self._in_flight -= 1
            if self._retired and self._in_flight == 0:
                await self.aclose()


def _validate_payload(
    raw: str | None, model_cls: type[ModelT], *, action: str
) -> ModelT:
    """Parse a structured payload, failing on empty or malformed data."""
    if raw is None or not raw.strip():
        raise EmptyResponseError(f"The model returned no data for {action}.")
    try:
        return model_cls.model_validate_json(raw, strict=True)
    except ValidationError as exc:
        _logger.warning("Invalid model payload for %s: %s", action, exc)
        raise SchemaViolationError(
            f"The model returned malformed data for {action} "
            f"({exc.error_count()} invalid field(s))."
        ) from exc


def _analysis_prompt(language: str) -> str:
    return (
        "Act as a professional dietitian and analyze this food photo. "
        "Identify every visible food item, estimate the portion size of each, "
        "and from those portions compute total calories, protein, carbs and fat. "
        "Give a health score from 0 to 100 and a short evaluation written in "
        f"{language}. Keep the estimates consistent with everyday eating habits."
    )


def _report_prompt(totals: NutritionRecord, language: str) -> str:
    foods = ", ".join(totals.food_items) or "none"
    return (
        "Write a health report based on today's total intake:\n"
        f"- Total calories: {_fmt(totals.calories)} kcal\n"
        f"- Protein: {_fmt(totals.protein)}g, carbs: {_fmt(totals.carbs)}g, "
        f"fat: {_fmt(totals.fat)}g\n"
        f"- Foods: {foods}\n"
        f"- Average health score: {_fmt(totals.health_score)}\n"
        "Return a concise title, a one or two sentence summary, and detailed "
        "Markdown advice covering nutritional balance, likely deficiencies and "
        f"suggestions for tomorrow. Write everything in {language}."
    )


def _chat_instruction(language: str) -> str:
    return (
        "You are a professional nutritionist who gives health advice based on "
        f"dietary analysis. Always answer in {language}, in a professional and "
        "friendly tone."
    )


def _fmt(value: float) -> str:
    return f"{value:g}"
