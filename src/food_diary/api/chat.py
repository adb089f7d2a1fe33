"""Nutrition chat endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from food_diary.api.models import ChatRequest
from food_diary.domain.errors import ChatBusyError
from food_diary.domain.nutrition import ChatMessage

if TYPE_CHECKING:
    from food_diary.containers import AppContainer

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("")
async def get_transcript(request: Request) -> list[ChatMessage]:
    """Return the chat transcript."""
    container: AppContainer = request.app.state.container
    return list(container.session.transcript)


@router.post("")
async def send_message(body: ChatRequest, request: Request) -> ChatMessage:
    """Send a message and return the model's reply."""
    container: AppContainer = request.app.state.container
    if not body.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Message is empty."
        )
    try:
        reply = await container.session.send_chat(body.text)
    except ChatBusyError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    if reply is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The chat was reset before the reply arrived.",
        )
    return reply
