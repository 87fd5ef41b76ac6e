"""Unit tests for the shared AC status store."""

from __future__ import annotations

import json
import threading
from typing import List

import pytest

from datastore.ac_status import AcStatusStore
from models.climate import AcMode, AcStatus
from peripherals.air_conditioner import ActuatorAdapter, MockAirConditioner
from services.errors import AcStatusValidationError, ActuatorFault


class RecordingActuator(ActuatorAdapter):
    def __init__(self, initial: AcStatus | None = None) -> None:
        self.status = initial or AcStatus()
        self.applied: List[AcStatus] = []

    def apply(self, status: AcStatus) -> AcStatus:
        self.applied.append(status)
        self.status = status
        return status

    def read(self) -> AcStatus:
        return self.status


class RoundingActuator(RecordingActuator):
    """Hardware that only supports even temperatures."""

    def apply(self, status: AcStatus) -> AcStatus:
        achieved = AcStatus(status.powered, status.mode, status.temperature // 2 * 2)
        return super().apply(achieved)


class BrokenActuator(RecordingActuator):
    def apply(self, status: AcStatus) -> AcStatus:
        raise ActuatorFault("IR transmitter unavailable")


class BlockingActuator(RecordingActuator):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def apply(self, status: AcStatus) -> AcStatus:
        self.entered.set()
        assert self.release.wait(timeout=5)
        return super().apply(status)


def test_initial_status_is_read_from_actuator() -> None:
    initial = AcStatus(powered=True, mode=AcMode.DRY, temperature=25)
    store = AcStatusStore(actuator=RecordingActuator(initial))

    assert store.get() == initial


def test_default_status_is_off_auto_zero() -> None:
    store = AcStatusStore(actuator=MockAirConditioner())

    assert store.get() == AcStatus(powered=False, mode=AcMode.AUTO, temperature=0)


def test_set_then_get_returns_applied_status() -> None:
    actuator = RecordingActuator()
    store = AcStatusStore(actuator=actuator)
    requested = AcStatus(powered=True, mode=AcMode.COOL, temperature=22)

    result = store.set(requested)

    assert result == requested
    assert store.get() == requested
    assert actuator.applied == [requested]


def test_set_returns_adapter_achieved_status() -> None:
    store = AcStatusStore(actuator=RoundingActuator())

    result = store.set(AcStatus(powered=True, mode=AcMode.WARM, temperature=23))

    assert result.temperature == 22
    assert store.get() == result


@pytest.mark.parametrize("temperature", [0, 15, 31, 100])
def test_out_of_range_temperature_is_rejected_without_side_effects(temperature: int) -> None:
    actuator = RecordingActuator()
    store = AcStatusStore(actuator=actuator, temperature_min=16, temperature_max=30)
    before = store.get()

    with pytest.raises(AcStatusValidationError):
        store.set(AcStatus(powered=True, mode=AcMode.COOL, temperature=temperature))

    assert store.get() == before
    assert actuator.applied == []


def test_bounds_are_inclusive() -> None:
    store = AcStatusStore(actuator=RecordingActuator(), temperature_min=16, temperature_max=30)

    assert store.set(AcStatus(True, AcMode.COOL, 16)).temperature == 16
    assert store.set(AcStatus(True, AcMode.COOL, 30)).temperature == 30


def test_unknown_mode_is_rejected() -> None:
    store = AcStatusStore(actuator=RecordingActuator())

    with pytest.raises(AcStatusValidationError):
        store.set(AcStatus(powered=True, mode=7, temperature=22))  # type: ignore[arg-type]


def test_actuator_fault_keeps_previous_status() -> None:
    initial = AcStatus(powered=False, mode=AcMode.FAN, temperature=20)
    store = AcStatusStore(actuator=BrokenActuator(initial))

    with pytest.raises(ActuatorFault):
        store.set(AcStatus(powered=True, mode=AcMode.COOL, temperature=22))

    assert store.get() == initial


def test_get_is_not_blocked_by_slow_apply() -> None:
    actuator = BlockingActuator()
    store = AcStatusStore(actuator=actuator)
    before = store.get()
    requested = AcStatus(powered=True, mode=AcMode.COOL, temperature=24)

    worker = threading.Thread(target=store.set, args=(requested,))
    worker.start()
    try:
        assert actuator.entered.wait(timeout=5)
        assert store.get() == before
    finally:
        actuator.release.set()
        worker.join(timeout=5)

    assert store.get() == requested


def test_concurrent_sets_never_produce_a_hybrid() -> None:
    store = AcStatusStore(actuator=RecordingActuator())
    submitted = [
        AcStatus(powered=index % 2 == 0, mode=AcMode(index % 5), temperature=16 + index)
        for index in range(12)
    ]
    start = threading.Barrier(len(submitted))

    def submit(status: AcStatus) -> None:
        start.wait()
        store.set(status)

    threads = [threading.Thread(target=submit, args=(status,)) for status in submitted]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert store.get() in submitted


def test_status_persists_and_is_restored(tmp_path) -> None:
    path = tmp_path / "ac.json"
    store = AcStatusStore(actuator=RecordingActuator(), persistence_path=path)
    requested = AcStatus(powered=True, mode=AcMode.COOL, temperature=22)

    store.set(requested)

    payload = json.loads(path.read_text())
    assert payload == {"mode": "COOL", "powered": True, "temperature": 22}

    actuator = RecordingActuator()
    restored = AcStatusStore(actuator=actuator, persistence_path=path)
    assert restored.get() == requested
    assert actuator.applied == [requested]


def test_corrupt_state_file_falls_back_to_actuator(tmp_path) -> None:
    path = tmp_path / "ac.json"
    path.write_text("{not json")
    initial = AcStatus(powered=False, mode=AcMode.DRY, temperature=18)

    store = AcStatusStore(actuator=RecordingActuator(initial), persistence_path=path)

    assert store.get() == initial


def test_out_of_range_persisted_status_is_ignored(tmp_path) -> None:
    path = tmp_path / "ac.json"
    path.write_text(json.dumps({"powered": True, "mode": "COOL", "temperature": 40}))
    actuator = RecordingActuator()

    store = AcStatusStore(actuator=actuator, persistence_path=path)

    assert store.get() == AcStatus()
    assert actuator.applied == []


def test_unwritable_state_file_keeps_set_successful(tmp_path) -> None:
    state_dir = tmp_path / "ac.json"
    state_dir.mkdir()
    actuator = RecordingActuator()
    store = AcStatusStore(actuator=actuator, persistence_path=state_dir)
    requested = AcStatus(powered=True, mode=AcMode.COOL, temperature=22)

    result = store.set(requested)

    assert result == requested
    assert store.get() == requested
    assert actuator.applied == [requested]
    assert state_dir.is_dir()
