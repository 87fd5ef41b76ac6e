from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TICK_INTERVAL_ENV = "MATTORI_TICK_INTERVAL"
_CONFIGURE_TIMEOUT_ENV = "MATTORI_CONFIGURE_TIMEOUT"
_SENSOR_RETRIES_ENV = "MATTORI_SENSOR_RETRIES"
_TEMPERATURE_MIN_ENV = "MATTORI_AC_TEMPERATURE_MIN"
_TEMPERATURE_MAX_ENV = "MATTORI_AC_TEMPERATURE_MAX"
_SEA_LEVEL_PRESSURE_ENV = "MATTORI_SEA_LEVEL_PRESSURE"
_AC_STATE_PATH_ENV = "MATTORI_AC_STATE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    tick_interval: float
    configure_timeout: Optional[float]
    sensor_retries: int
    ac_temperature_min: int
    ac_temperature_max: int
    sea_level_pressure: float
    ac_state_path: Optional[str]
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timeout(name: str, default: Optional[float]) -> Optional[float]:
    """Zero disables the timeout; negative or garbage values keep the default."""
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if parsed == 0:
        return None
    return parsed if parsed > 0 else default


def _read_int(name: str, default: int, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    temperature_min = _read_int(_TEMPERATURE_MIN_ENV, 16)
    temperature_max = _read_int(_TEMPERATURE_MAX_ENV, 30)
    if temperature_max < temperature_min:
        temperature_min, temperature_max = 16, 30
    return Settings(
        tick_interval=_read_positive_float(_TICK_INTERVAL_ENV, 1.0),
        configure_timeout=_read_timeout(_CONFIGURE_TIMEOUT_ENV, 30.0),
        sensor_retries=_read_int(_SENSOR_RETRIES_ENV, 0),
        ac_temperature_min=temperature_min,
        ac_temperature_max=temperature_max,
        sea_level_pressure=_read_positive_float(_SEA_LEVEL_PRESSURE_ENV, 1013.25),
        ac_state_path=_read_optional_env(_AC_STATE_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
    )
