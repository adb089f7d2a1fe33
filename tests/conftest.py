"""Shared test fixtures."""

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from food_diary.config import Settings
from food_diary.containers import AppContainer
from food_diary.domain.nutrition import Meal, MealType
from food_diary.services.gateway import AIGateway, ModelClient, Turn
from food_diary.services.session import DiarySession

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"fake-jpeg"

NUTRITION_PAYLOAD: dict[str, object] = {
    "calories": 500,
    "protein": 20,
    "carbs": 60,
    "fat": 15,
    "foodItems": ["rice", "chicken"],
    "healthScore": 80,
    "summary": "Balanced plate",
}

REPORT_PAYLOAD: dict[str, object] = {
    "title": "A steady day",
    "shortSummary": "Good protein, a little heavy on carbs.",
    "detailedAdvice": "## Tomorrow\n- Add vegetables",
}


@dataclass
class FakeModelClient(ModelClient):
    """Fake model client that records calls and returns queued replies."""

    json_replies: list[str | None | Exception] = field(default_factory=list)
    text_replies: list[str | None | Exception] = field(default_factory=list)
    gate: asyncio.Event | None = None
    calls: list[dict[str, object]] = field(default_factory=list)
    closed: bool = False

    async def generate_json(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        schema: dict[str, object],
        schema_name: str,
    ) -> str | None:
        self.calls.append(
            {
                "kind": "json",
                "model": model,
                "contents": list(contents),
                "schema_name": schema_name,
            }
        )
        return await self._reply(self.json_replies)

    async def generate_text(
        self,
        *,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str,
    ) -> str | None:
        self.calls.append(
            {
                "kind": "text",
                "model": model,
                "contents": list(contents),
                "system_instruction": system_instruction,
            }
        )
        return await self._reply(self.text_replies)

    async def close(self) -> None:
        self.closed = True

    async def _reply(self, queue: list[str | None | Exception]) -> str | None:
        if self.gate is not None:
            await self.gate.wait()
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class RecordingFactory:
    """Client factory that hands out one fake client and records credentials."""

    client: FakeModelClient = field(default_factory=FakeModelClient)
    credentials: list[str] = field(default_factory=list)

    def __call__(self, api_key: str) -> ModelClient:
        self.credentials.append(api_key)
        return self.client


def make_meal(  # noqa: PLR0913
    meal_id: str,
    *,
    calories: float = 0,
    protein: float = 0,
    carbs: float = 0,
    fat: float = 0,
    health_score: float = 0,
    food_items: list[str] | None = None,
    slot: MealType = MealType.NOON,
) -> Meal:
    return Meal(
        id=meal_id,
        type=slot,
        image="data:image/jpeg;base64,ZmFrZQ==",
        timestamp=0,
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        food_items=food_items or [],
        health_score=health_score,
        summary="meal",
    )


def nutrition_json(**overrides: object) -> str:
    return json.dumps({**NUTRITION_PAYLOAD, **overrides})


def report_json(**overrides: object) -> str:
    return json.dumps({**REPORT_PAYLOAD, **overrides})


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key", reply_language="English")


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def model_client(factory: RecordingFactory) -> FakeModelClient:
    return factory.client


@pytest.fixture
def gateway(settings: Settings, factory: RecordingFactory) -> AIGateway:
    return AIGateway(
        credential=settings.api_key,
        client_factory=factory,
        analysis_model=settings.analysis_model,
        text_model=settings.text_model,
        reply_language=settings.reply_language,
    )


@pytest.fixture
def session(gateway: AIGateway) -> DiarySession:
    return DiarySession(gateway=gateway)


@pytest.fixture
def container(settings: Settings, session: DiarySession) -> AppContainer:
    async def close_resources() -> None:
        await session.gateway.aclose()

    return AppContainer(
        settings=settings,
        session=session,
        close_resources=close_resources,
    )
