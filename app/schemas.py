"""Pydantic schemas for the wire messages of ``proto/mattori_home.proto``.

Messages follow the proto3 JSON mapping: field names are unchanged, enum
values are written as names and accepted as names or numbers, and readings
are narrowed to single precision.
"""

from __future__ import annotations

import struct
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from models.atmosphere import AtmosphereSample, FeatureMask
from models.climate import AcMode
from models.climate import AcStatus as AcStatusRecord

UINT32_MAX = 2**32 - 1


def _as_float32(value: float | None) -> float:
    if value is None:
        return 0.0
    return struct.unpack("<f", struct.pack("<f", value))[0]


class AtmosphereFeatures(BaseModel):
    """Feature selection sent by the client on the atmosphere stream."""

    model_config = ConfigDict(extra="forbid")

    temperature: bool = False
    pressure: bool = False
    humidity: bool = False
    altitude: bool = False

    def to_mask(self) -> FeatureMask:
        return FeatureMask(
            temperature=self.temperature,
            pressure=self.pressure,
            humidity=self.humidity,
            altitude=self.altitude,
        )


class AtmosphereReading(BaseModel):
    """One reading; fields that were not requested carry ``0.0``."""

    temperature: float = 0.0
    pressure: float = 0.0
    humidity: float = 0.0
    altitude: float = 0.0

    @classmethod
    def from_sample(cls, sample: AtmosphereSample) -> "AtmosphereReading":
        return cls(
            temperature=_as_float32(sample.temperature),
            pressure=_as_float32(sample.pressure),
            humidity=_as_float32(sample.humidity),
            altitude=_as_float32(sample.altitude),
        )


class AcStatusParam(BaseModel):
    """Empty request of ``GetAcStatus``."""


class AcStatus(BaseModel):
    """Air-conditioner status as carried by ``GetAcStatus`` and ``SetAcStatus``."""

    model_config = ConfigDict(extra="forbid")

    powered: bool = False
    mode: AcMode = AcMode.AUTO
    temperature: int = Field(default=0, ge=0, le=UINT32_MAX)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode_from_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return AcMode[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown AC mode {value!r}.") from exc
        return value

    @field_serializer("mode")
    def _mode_to_name(self, mode: AcMode) -> str:
        return mode.name

    @classmethod
    def from_record(cls, record: AcStatusRecord) -> "AcStatus":
        return cls(powered=record.powered, mode=record.mode, temperature=record.temperature)

    def to_record(self) -> AcStatusRecord:
        return AcStatusRecord(powered=self.powered, mode=self.mode, temperature=self.temperature)


class SeaLevelPressureUpdate(BaseModel):
    """Reference pressure used to derive altitude."""

    hpa: float = Field(..., gt=0, description="Sea level pressure in hPa.")


class SeaLevelPressureResponse(BaseModel):
    hpa: float
