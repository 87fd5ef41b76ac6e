"""Feature-masked atmosphere streaming sessions."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import lru_cache
from threading import Lock
from typing import AsyncIterator, Dict, Optional, cast
from uuid import uuid4

from models.atmosphere import AtmosphereSample, FeatureMask
from peripherals.sensor import SensorAdapter, build_default_sensor
from services.errors import SensorFault, SessionClosedError, SessionNotConfiguredError
from settings import get_settings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    unconfigured = "unconfigured"
    active = "active"
    closed = "closed"


class StreamSession:
    """Server-side state of one open atmosphere stream.

    Readings start flowing only after the first ``configure`` call. Later
    masks replace the current one and take effect from the next tick.
    """

    def __init__(
        self,
        session_id: str,
        sensor: SensorAdapter,
        tick_interval: float = 1.0,
        sensor_retries: int = 0,
        configure_timeout: Optional[float] = None,
    ) -> None:
        self.session_id = session_id
        self.sensor = sensor
        self.tick_interval = tick_interval
        self.sensor_retries = sensor_retries
        self.configure_timeout = configure_timeout
        self.state = SessionState.unconfigured
        self.readings_emitted = 0
        self._mask: Optional[FeatureMask] = None
        self._error: Optional[BaseException] = None
        self._configured = asyncio.Event()
        self._closed = asyncio.Event()

    @property
    def mask(self) -> Optional[FeatureMask]:
        return self._mask

    @property
    def closed(self) -> bool:
        return self.state is SessionState.closed

    def configure(self, mask: FeatureMask) -> None:
        if self.closed:
            raise SessionClosedError(f"Session {self.session_id} is closed.")
        self._mask = mask
        self.state = SessionState.active
        self._configured.set()
        logger.info(
            "Feature mask updated",
            extra={"session_id": self.session_id, "mask": mask, "state": self.state},
        )

    def close(self) -> None:
        if self.closed:
            return
        self.state = SessionState.closed
        self._closed.set()
        self._configured.set()
        logger.debug("Session closed", extra={"session_id": self.session_id})

    def fail(self, error: BaseException) -> None:
        """Close the session so that ``readings`` raises ``error``."""
        if self.closed:
            return
        self._error = error
        self.close()

    async def readings(self) -> AsyncIterator[AtmosphereSample]:
        if not await self._wait_for_configuration():
            self._raise_pending_error()
            return

        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while not self.closed:
            mask = cast(FeatureMask, self._mask)
            try:
                sample = await self._read(mask)
            except SensorFault as exc:
                logger.error(
                    "Sensor fault; terminating session",
                    extra={"session_id": self.session_id, "reason": str(exc)},
                )
                self.fail(exc)
                break
            if self.closed:
                break
            self.readings_emitted += 1
            yield sample.masked(mask)

            next_tick += self.tick_interval
            delay = next_tick - loop.time()
            if delay < 0:
                logger.info(
                    "Tick overran by %.3fs; restarting schedule",
                    -delay,
                    extra={"session_id": self.session_id},
                )
                next_tick = loop.time()
                delay = 0.0
            if await self._wait_closed(delay):
                break
        self._raise_pending_error()

    async def _wait_for_configuration(self) -> bool:
        try:
            await asyncio.wait_for(self._configured.wait(), self.configure_timeout)
        except asyncio.TimeoutError:
            error = SessionNotConfiguredError(
                f"No feature mask received within {self.configure_timeout:g}s."
            )
            self.fail(error)
            raise error from None
        return not self.closed

    async def _wait_closed(self, delay: float) -> bool:
        try:
            await asyncio.wait_for(self._closed.wait(), delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _read(self, mask: FeatureMask) -> AtmosphereSample:
        attempt = 1
        while True:
            try:
                return await asyncio.to_thread(self.sensor.read, mask)
            except SensorFault as exc:
                if attempt > self.sensor_retries:
                    raise
                logger.warning(
                    "Sensor read failed; retrying",
                    extra={"session_id": self.session_id, "attempt": attempt, "reason": str(exc)},
                )
                attempt += 1

    def _raise_pending_error(self) -> None:
        if self._error is not None:
            raise self._error


class AtmosphereService:
    """Owns the open stream sessions; the sensor is shared between them."""

    def __init__(
        self,
        sensor: SensorAdapter,
        tick_interval: float = 1.0,
        sensor_retries: int = 0,
        configure_timeout: Optional[float] = None,
    ) -> None:
        self.sensor = sensor
        self.tick_interval = tick_interval
        self.sensor_retries = sensor_retries
        self.configure_timeout = configure_timeout
        self._sessions: Dict[str, StreamSession] = {}
        self._sessions_lock = Lock()

    @property
    def active_sessions(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

    def open_session(self) -> StreamSession:
        session = StreamSession(
            session_id=str(uuid4()),
            sensor=self.sensor,
            tick_interval=self.tick_interval,
            sensor_retries=self.sensor_retries,
            configure_timeout=self.configure_timeout,
        )
        with self._sessions_lock:
            self._sessions[session.session_id] = session
            count = len(self._sessions)
        logger.info(
            "Atmosphere session opened",
            extra={"session_id": session.session_id, "active_sessions": count},
        )
        return session

    def close_session(self, session: StreamSession) -> None:
        session.close()
        with self._sessions_lock:
            self._sessions.pop(session.session_id, None)
            count = len(self._sessions)
        logger.info(
            "Atmosphere session released",
            extra={
                "session_id": session.session_id,
                "readings_emitted": session.readings_emitted,
                "active_sessions": count,
            },
        )

    def shutdown(self) -> None:
        with self._sessions_lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()


@lru_cache
def build_default_atmosphere_service() -> AtmosphereService:
    settings = get_settings()
    return AtmosphereService(
        sensor=build_default_sensor(),
        tick_interval=settings.tick_interval,
        sensor_retries=settings.sensor_retries,
        configure_timeout=settings.configure_timeout,
    )
