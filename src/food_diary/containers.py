"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from food_diary.adapters.openai_model_client import OpenAIModelClient
from food_diary.config import Settings, normalize_credential
from food_diary.services.gateway import AIGateway, ModelClient
from food_diary.services.session import DiarySession


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session: DiarySession
    close_resources: Callable[[], Awaitable[None]]


def build_gateway(settings: Settings) -> AIGateway:
    """Create the model gateway bound to the configured credential."""

    def client_factory(api_key: str) -> ModelClient:
        return OpenAIModelClient.create(
            api_key=api_key,
            base_url=settings.model_base_url,
            timeout=settings.request_timeout_seconds,
        )

    return AIGateway(
        credential=normalize_credential(settings.api_key),
        client_factory=client_factory,
        analysis_model=settings.analysis_model,
        text_model=settings.text_model,
        reply_language=settings.reply_language,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    session = DiarySession(gateway=build_gateway(resolved_settings))

    async def close_resources() -> None:
        await session.gateway.aclose()

    return AppContainer(
        settings=resolved_settings,
        session=session,
        close_resources=close_resources,
    )
