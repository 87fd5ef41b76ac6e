from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections import Counter
from functools import lru_cache
from threading import Lock
from typing import Optional

from models.atmosphere import AtmosphereSample, FeatureMask
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_SEA_LEVEL_PRESSURE = 1013.25


def altitude_from_pressure(pressure: float, sea_level_pressure: float) -> float:
    """Barometric altitude in metres for a pressure in hPa."""
    return 44330.0 * (1.0 - (pressure / sea_level_pressure) ** 0.1903)


class SensorAdapter(ABC):
    """Synchronous access to the atmosphere sensor group."""

    @abstractmethod
    def read(self, mask: FeatureMask) -> AtmosphereSample:
        """Read the fields selected by ``mask``; raise ``SensorFault`` on failure."""

    def set_sea_level_pressure(self, hpa: float) -> None:
        raise NotImplementedError("This sensor does not support a sea level reference.")


class MockAtmosphereSensor(SensorAdapter):
    """Simulated BME280-style sensor drifting around indoor conditions.

    Only the raw channels a mask needs are sampled, and each sample is counted
    in ``channel_reads`` so callers can verify no unnecessary reads happen.
    The instance is safe to share between threads.
    """

    def __init__(
        self,
        sea_level_pressure: float = DEFAULT_SEA_LEVEL_PRESSURE,
        seed: Optional[int] = None,
        temperature: float = 22.0,
        pressure: float = 1008.0,
        humidity: float = 45.0,
    ) -> None:
        self.sea_level_pressure = sea_level_pressure
        self.channel_reads: Counter[str] = Counter()
        self._random = random.Random(seed)
        self._temperature = temperature
        self._pressure = pressure
        self._humidity = humidity
        self._lock = Lock()

    def read(self, mask: FeatureMask) -> AtmosphereSample:
        with self._lock:
            temperature = pressure = humidity = altitude = None
            if mask.needs_temperature_channel:
                temperature = self._sample_temperature()
            if mask.needs_pressure_channel:
                pressure = self._sample_pressure()
            if mask.needs_humidity_channel:
                humidity = self._sample_humidity()
            if mask.altitude and pressure is not None:
                altitude = altitude_from_pressure(pressure, self.sea_level_pressure)

        return AtmosphereSample(
            temperature=temperature if mask.temperature else None,
            pressure=pressure if mask.pressure else None,
            humidity=humidity if mask.humidity else None,
            altitude=altitude,
        )

    def set_sea_level_pressure(self, hpa: float) -> None:
        if hpa <= 0:
            raise ValueError("Sea level pressure must be positive.")
        with self._lock:
            self.sea_level_pressure = hpa
        logger.info("Sea level pressure changed to %.2f hPa", hpa)

    def _sample_temperature(self) -> float:
        self.channel_reads["temperature"] += 1
        self._temperature = self._drift(self._temperature, 0.05, -10.0, 45.0)
        return self._temperature

    def _sample_pressure(self) -> float:
        self.channel_reads["pressure"] += 1
        self._pressure = self._drift(self._pressure, 0.1, 900.0, 1080.0)
        return self._pressure

    def _sample_humidity(self) -> float:
        self.channel_reads["humidity"] += 1
        self._humidity = self._drift(self._humidity, 0.2, 5.0, 95.0)
        return self._humidity

    def _drift(self, value: float, step: float, low: float, high: float) -> float:
        return min(high, max(low, value + self._random.uniform(-step, step)))


@lru_cache
def build_default_sensor(sea_level_pressure: Optional[float] = None) -> SensorAdapter:
    settings = get_settings()
    reference = settings.sea_level_pressure if sea_level_pressure is None else sea_level_pressure
    return MockAtmosphereSensor(sea_level_pressure=reference)
