"""Air-conditioner domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class AcMode(IntEnum):
    """Operating modes, numbered as on the wire."""

    AUTO = 0
    WARM = 1
    DRY = 2
    COOL = 3
    FAN = 4


@dataclass(frozen=True, slots=True)
class AcStatus:
    """Snapshot of the AC unit; temperature is in whole degrees Celsius."""

    powered: bool = False
    mode: AcMode = AcMode.AUTO
    temperature: int = 0
