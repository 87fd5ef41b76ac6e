"""HTTP route definitions for the unary operations."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.schemas import AcStatus, SeaLevelPressureResponse, SeaLevelPressureUpdate
from services.errors import AcStatusValidationError, ActuatorFault
from services.home import HomeService, build_default_home

logger = logging.getLogger(__name__)

router = APIRouter()


def get_home() -> HomeService:
    return build_default_home()


@router.get(
    "/ac",
    response_model=AcStatus,
    summary="GetAcStatus: read the current air-conditioner status.",
)
async def get_ac_status(home: HomeService = Depends(get_home)) -> AcStatus:
    return AcStatus.from_record(home.get_ac_status())


# Sync on purpose: FastAPI runs it in the threadpool while the actuator works.
@router.put(
    "/ac",
    response_model=AcStatus,
    summary="SetAcStatus: apply a new air-conditioner status.",
)
def set_ac_status(
    requested: AcStatus = Body(..., description="Target status."),
    home: HomeService = Depends(get_home),
) -> AcStatus:
    try:
        achieved = home.set_ac_status(requested.to_record())
    except AcStatusValidationError as exc:
        logger.info("Rejected AC status", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ActuatorFault as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Air conditioner did not accept the change: {exc}",
        ) from exc
    return AcStatus.from_record(achieved)


@router.put(
    "/atmosphere/sea-level-pressure",
    response_model=SeaLevelPressureResponse,
    summary="Change the reference pressure used for altitude readings.",
)
def set_sea_level_pressure(
    update: SeaLevelPressureUpdate,
    home: HomeService = Depends(get_home),
) -> SeaLevelPressureResponse:
    try:
        home.set_sea_level_pressure(update.hpa)
    except NotImplementedError as exc:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail=str(exc),
        ) from exc
    return SeaLevelPressureResponse(hpa=update.hpa)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(home: HomeService = Depends(get_home)) -> dict[str, object]:
    return {"status": "ok", "active_streams": home.atmosphere.active_sessions}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
