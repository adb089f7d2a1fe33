"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status

from food_diary.api.chat import router as chat_router
from food_diary.api.diary import router as diary_router
from food_diary.api.models import CredentialRequest
from food_diary.app_logging import configure_logging
from food_diary.config import normalize_credential
from food_diary.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if normalize_credential(app.state.container.settings.api_key) is None:
            logger.warning("No API key configured; select one via PUT /credential")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(diary_router)
    app.include_router(chat_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.put("/credential", status_code=status.HTTP_204_NO_CONTENT)
    async def select_credential(body: CredentialRequest, request: Request) -> None:
        """Bind the model gateway to a newly selected API key."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session
        previous = session.replace_gateway(
            session.gateway.with_credential(body.api_key)
        )
        # In-flight calls finish on the previous client before it is closed.
        await previous.retire()
        logger.info("API key reselected")

    return app
