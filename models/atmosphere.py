"""Atmosphere domain models shared by the sensor adapter and the streaming engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class FeatureMask:
    """Client-selected subset of atmosphere fields to report."""

    temperature: bool = False
    pressure: bool = False
    humidity: bool = False
    altitude: bool = False

    @classmethod
    def all(cls) -> "FeatureMask":
        return cls(temperature=True, pressure=True, humidity=True, altitude=True)

    # Pressure and humidity compensation both need the raw temperature, and
    # altitude is derived from pressure.
    @property
    def needs_temperature_channel(self) -> bool:
        return self.temperature or self.needs_pressure_channel or self.needs_humidity_channel

    @property
    def needs_pressure_channel(self) -> bool:
        return self.pressure or self.altitude

    @property
    def needs_humidity_channel(self) -> bool:
        return self.humidity

    def __str__(self) -> str:
        enabled = [
            name
            for name in ("temperature", "pressure", "humidity", "altitude")
            if getattr(self, name)
        ]
        return ",".join(enabled) or "none"


@dataclass(frozen=True, slots=True)
class AtmosphereSample:
    """One sensor reading; ``None`` marks a field that was not requested."""

    temperature: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    altitude: Optional[float] = None

    def masked(self, mask: FeatureMask) -> "AtmosphereSample":
        """Drop every field the mask does not select."""
        return AtmosphereSample(
            temperature=self.temperature if mask.temperature else None,
            pressure=self.pressure if mask.pressure else None,
            humidity=self.humidity if mask.humidity else None,
            altitude=self.altitude if mask.altitude else None,
        )
