"""WebSocket binding of the ``ReadAtmosphere`` bidirectional stream.

The client sends ``AtmosphereFeatures`` JSON frames at any time; the server
answers with one ``AtmosphereReading`` JSON frame per tick once the first
selection arrived. Client errors close the socket with 1008, sensor faults
with 1011. A client disconnect just releases the session.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from app.schemas import AtmosphereFeatures, AtmosphereReading
from services.atmosphere import StreamSession
from services.errors import (
    ConfigurationError,
    InvalidFeatureMaskError,
    SensorFault,
    SessionClosedError,
)
from services.home import HomeService, build_default_home

logger = logging.getLogger(__name__)

_MAX_CLOSE_REASON = 120

router = APIRouter()


def get_home() -> HomeService:
    return build_default_home()


async def _receive_features(websocket: WebSocket, session: StreamSession) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            session.close()
            return
        raw = message.get("text") or message.get("bytes") or ""
        try:
            features = AtmosphereFeatures.model_validate_json(raw)
        except ValidationError as exc:
            session.fail(
                InvalidFeatureMaskError(
                    f"Expected AtmosphereFeatures, got invalid message ({exc.error_count()} errors)."
                )
            )
            return
        try:
            session.configure(features.to_mask())
        except SessionClosedError:
            return


async def _close(websocket: WebSocket, session: StreamSession, code: int, reason: str) -> None:
    logger.info(
        "Closing atmosphere stream",
        extra={"session_id": session.session_id, "close_code": code, "reason": reason},
    )
    if websocket.client_state is WebSocketState.CONNECTED:
        await websocket.close(code=code, reason=reason[:_MAX_CLOSE_REASON])


@router.websocket("/atmosphere")
async def read_atmosphere(websocket: WebSocket, home: HomeService = Depends(get_home)) -> None:
    await websocket.accept()
    session = home.open_atmosphere_session()
    receiver = asyncio.create_task(_receive_features(websocket, session))
    try:
        async for sample in session.readings():
            reading = AtmosphereReading.from_sample(sample)
            await websocket.send_json(reading.model_dump())
    except ConfigurationError as exc:
        await _close(websocket, session, status.WS_1008_POLICY_VIOLATION, str(exc))
    except SensorFault as exc:
        await _close(websocket, session, status.WS_1011_INTERNAL_ERROR, f"Sensor fault: {exc}")
    except WebSocketDisconnect:
        # Client vanished while a reading was being sent.
        session.close()
    finally:
        receiver.cancel()
        home.close_atmosphere_session(session)
        await asyncio.gather(receiver, return_exceptions=True)
