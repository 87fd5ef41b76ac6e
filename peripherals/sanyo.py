"""Sanyo air-conditioner IR frames (AEHA format, 17 data bytes)."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from models.climate import AcMode, AcStatus

SANYO_TEMPERATURE_MIN = 16
SANYO_TEMPERATURE_MAX = 30

# Positions 5, 6, 8 and 16 are filled per frame.
_BASE_FRAME = (64, 0, 20, 128, 67, None, None, 64, None, 0, 104, 0, 0, 1, 0, 0, None)


class SanyoTrigger(Enum):
    ADJUST = "adjust"
    OFF = "off"
    ON = "on"


def _temperature_index(temperature: int) -> int:
    if not SANYO_TEMPERATURE_MIN <= temperature <= SANYO_TEMPERATURE_MAX:
        raise ValueError(
            f"Temperature {temperature} outside Sanyo range "
            f"{SANYO_TEMPERATURE_MIN}-{SANYO_TEMPERATURE_MAX}."
        )
    return temperature - SANYO_TEMPERATURE_MIN


def sanyo_frame(mode: AcMode, temperature: int, trigger: SanyoTrigger) -> bytes:
    """Build the data bytes the unit expects for ``trigger``.

    The mode does not change the frame on the supported models; it is accepted
    so callers always describe the full target state.
    """
    index = _temperature_index(temperature)

    if trigger is SanyoTrigger.ADJUST:
        command, checksum_offset = 132, 1
    elif trigger is SanyoTrigger.OFF:
        command, checksum_offset = 133, 0
    else:
        command, checksum_offset = 134, 3

    if index <= 3:
        checksum = 60 + index * 2
    elif index >= 12:
        checksum = 54 + (index - 12) * 2
    else:
        checksum = 53 + (index - 4) * 2

    frame = list(_BASE_FRAME)
    frame[5] = command
    frame[6] = 24 + index * 2
    frame[8] = 3 if trigger is SanyoTrigger.OFF else 35
    frame[16] = checksum + checksum_offset
    return bytes(frame)


def trigger_for_change(previous: AcStatus, target: AcStatus) -> Optional[SanyoTrigger]:
    """Pick the frame that moves the unit from ``previous`` to ``target``."""
    if previous.powered != target.powered:
        return SanyoTrigger.ON if target.powered else SanyoTrigger.OFF
    if previous.mode != target.mode or previous.temperature != target.temperature:
        return SanyoTrigger.ADJUST
    return None


def format_frame(frame: bytes) -> str:
    return ", ".join(f"0x{byte:02X}" for byte in frame)
