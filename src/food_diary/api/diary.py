"""Diary endpoints: meals, totals and the daily report."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from food_diary.api.models import DiaryView, TotalsView, diary_view, totals_view
from food_diary.domain.errors import (
    GatewayError,
    GatewayErrorCode,
    NoMealsError,
    ReportInProgressError,
    SlotBusyError,
)
from food_diary.domain.nutrition import DailyReport, Meal, MealType

if TYPE_CHECKING:
    from food_diary.containers import AppContainer

router = APIRouter(tags=["diary"])
logger = logging.getLogger(__name__)

_GATEWAY_STATUS = {
    GatewayErrorCode.CREDENTIAL_MISSING: status.HTTP_401_UNAUTHORIZED,
    GatewayErrorCode.CREDENTIAL_INVALID: status.HTTP_401_UNAUTHORIZED,
}


def gateway_http_error(exc: GatewayError) -> HTTPException:
    """Translate a gateway failure into an HTTP error."""
    return HTTPException(
        status_code=_GATEWAY_STATUS.get(exc.code, status.HTTP_502_BAD_GATEWAY),
        detail={"message": exc.message, "code": exc.code},
    )


def _superseded() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="The diary changed before the request finished.",
    )


@router.get("/diary")
async def get_diary(request: Request) -> DiaryView:
    """Return meals, totals, slot states, report state and error."""
    container: AppContainer = request.app.state.container
    return diary_view(container.session)


@router.get("/totals")
async def get_totals(request: Request) -> TotalsView:
    """Return the aggregated totals for the day."""
    container: AppContainer = request.app.state.container
    return totals_view(container.session)


@router.post("/meals/{slot}", status_code=status.HTTP_201_CREATED)
async def add_meal(slot: MealType, request: Request) -> Meal:
    """Analyze the uploaded photo and add it to the slot."""
    container: AppContainer = request.app.state.container
    image_bytes = await request.body()
    if not image_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Image body is empty."
        )
    try:
        meal = await container.session.add_meal_photo(
            slot, image_bytes, request.headers.get("content-type")
        )
    except SlotBusyError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    if meal is None:
        raise _superseded()
    return meal


@router.delete("/meals/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meal(meal_id: str, request: Request) -> None:
    """Delete a meal by id."""
    container: AppContainer = request.app.state.container
    if not container.session.delete_meal(meal_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


@router.post("/report")
async def generate_report(request: Request) -> DailyReport:
    """Generate the daily report from the current meals."""
    container: AppContainer = request.app.state.container
    try:
        report = await container.session.generate_report()
    except NoMealsError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except ReportInProgressError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    if report is None:
        raise _superseded()
    return report


@router.delete("/error", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_error(request: Request) -> None:
    """Dismiss the current error notice."""
    container: AppContainer = request.app.state.container
    container.session.dismiss_error()


@router.post("/session/reset")
async def reset_session(request: Request) -> DiaryView:
    """Start a new day."""
    container: AppContainer = request.app.state.container
    container.session.reset()
    logger.info("Diary session reset")
    return diary_view(container.session)
