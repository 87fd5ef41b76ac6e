from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from threading import Lock
from typing import List, Optional

from models.climate import AcStatus
from peripherals.sanyo import format_frame, sanyo_frame, trigger_for_change
from services.errors import ActuatorFault

logger = logging.getLogger(__name__)


class ActuatorAdapter(ABC):
    """Synchronous access to the air-conditioner unit."""

    @abstractmethod
    def apply(self, status: AcStatus) -> AcStatus:
        """Drive the unit to ``status`` and return the state it actually reached."""

    @abstractmethod
    def read(self) -> AcStatus:
        """Return the state the unit is believed to be in."""


class MockAirConditioner(ActuatorAdapter):
    """Simulated Sanyo unit controlled over IR.

    IR is one-way, so the achieved state is the state whose frame was sent.
    Frames are kept in ``sent_frames`` instead of being pulsed out of a GPIO pin.
    """

    def __init__(self, initial: Optional[AcStatus] = None) -> None:
        self._status = initial or AcStatus()
        self.sent_frames: List[bytes] = []
        self._lock = Lock()

    def apply(self, status: AcStatus) -> AcStatus:
        with self._lock:
            trigger = trigger_for_change(self._status, status)
            if trigger is None:
                return self._status
            try:
                frame = sanyo_frame(status.mode, status.temperature, trigger)
            except ValueError as exc:
                raise ActuatorFault(str(exc)) from exc
            self.sent_frames.append(frame)
            self._status = status
        logger.debug(
            "Sent %s frame: %s",
            trigger.value,
            format_frame(frame),
            extra={"powered": status.powered, "mode": status.mode, "temperature": status.temperature},
        )
        return status

    def read(self) -> AcStatus:
        with self._lock:
            return self._status


@lru_cache
def build_default_actuator() -> ActuatorAdapter:
    return MockAirConditioner()
