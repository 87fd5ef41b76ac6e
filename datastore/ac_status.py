from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from pydantic import ValidationError

from app.schemas import AcStatus as AcStatusMessage
from models.climate import AcMode, AcStatus
from peripherals.air_conditioner import ActuatorAdapter, build_default_actuator
from services.errors import AcStatusValidationError, ActuatorFault
from settings import get_settings

logger = logging.getLogger(__name__)


class AcStatusStore:
    """The single shared AC status record.

    ``_apply_lock`` serialises writers, adapter I/O included. ``_lock`` only
    guards the reference swap, so readers never wait on the adapter and always
    see a whole record.
    """

    def __init__(
        self,
        actuator: ActuatorAdapter,
        temperature_min: int = 16,
        temperature_max: int = 30,
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.actuator = actuator
        self.temperature_min = temperature_min
        self.temperature_max = temperature_max
        self.persistence_path = persistence_path
        self._lock = Lock()
        self._apply_lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
        self._status = self._reconcile()

    def get(self) -> AcStatus:
        with self._lock:
            return self._status

    def set(self, new: AcStatus) -> AcStatus:
        self.validate(new)
        with self._apply_lock:
            try:
                achieved = self.actuator.apply(new)
            except ActuatorFault as exc:
                logger.error(
                    "AC apply failed; keeping previous status",
                    extra={"reason": str(exc), "mode": new.mode, "temperature": new.temperature},
                )
                raise
            with self._lock:
                self._status = achieved
            self._persist(achieved)
        logger.info(
            "AC status updated",
            extra={
                "powered": achieved.powered,
                "mode": achieved.mode,
                "temperature": achieved.temperature,
            },
        )
        return achieved

    def validate(self, status: AcStatus) -> None:
        if not isinstance(status.powered, bool):
            raise AcStatusValidationError("powered must be a boolean.")
        try:
            AcMode(status.mode)
        except ValueError as exc:
            raise AcStatusValidationError(f"Unknown AC mode {status.mode!r}.") from exc
        if isinstance(status.temperature, bool) or not isinstance(status.temperature, int):
            raise AcStatusValidationError("temperature must be an integer.")
        if not self.temperature_min <= status.temperature <= self.temperature_max:
            raise AcStatusValidationError(
                f"temperature {status.temperature} outside supported range "
                f"{self.temperature_min}-{self.temperature_max}."
            )

    def _reconcile(self) -> AcStatus:
        persisted = self._load_from_disk()
        if persisted is None:
            return self.actuator.read()
        logger.info(
            "Restoring persisted AC status",
            extra={
                "powered": persisted.powered,
                "mode": persisted.mode,
                "temperature": persisted.temperature,
            },
        )
        return self.actuator.apply(persisted)

    def _persist(self, status: AcStatus) -> None:
        if not self.persistence_path:
            return
        payload = AcStatusMessage.from_record(status).model_dump(mode="json")
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            # The unit already runs the new status; only the restart copy is stale.
            logger.error(
                "Could not persist AC status to %s",
                self.persistence_path,
                extra={"reason": str(exc)},
            )

    def _load_from_disk(self) -> Optional[AcStatus]:
        if not self.persistence_path or not self.persistence_path.exists():
            return None

        try:
            data = json.loads(self.persistence_path.read_text() or "{}")
            record = AcStatusMessage.model_validate(data).to_record()
        except (OSError, json.JSONDecodeError, ValidationError):
            logger.warning("Ignoring unreadable AC state file %s", self.persistence_path)
            return None

        try:
            self.validate(record)
        except AcStatusValidationError as exc:
            logger.warning("Ignoring persisted AC status", extra={"reason": str(exc)})
            return None
        return record


@lru_cache
def build_default_store(path: Optional[str] = None) -> AcStatusStore:
    settings = get_settings()
    state_path = settings.ac_state_path if path is None else path
    return AcStatusStore(
        actuator=build_default_actuator(),
        temperature_min=settings.ac_temperature_min,
        temperature_max=settings.ac_temperature_max,
        persistence_path=Path(state_path) if state_path else None,
    )
