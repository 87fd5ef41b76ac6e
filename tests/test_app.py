import time
from typing import Iterator

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.ac_status import AcStatusStore, build_default_store
from models.atmosphere import AtmosphereSample, FeatureMask
from models.climate import AcStatus
from peripherals.air_conditioner import ActuatorAdapter, MockAirConditioner, build_default_actuator
from peripherals.sensor import MockAtmosphereSensor, SensorAdapter, build_default_sensor
from services.atmosphere import AtmosphereService, build_default_atmosphere_service
from services.errors import ActuatorFault, SensorFault
from services.home import HomeService, build_default_home


class DeadSensor(SensorAdapter):
    def read(self, mask: FeatureMask) -> AtmosphereSample:
        raise SensorFault("no response from 0x76")


class FixedSensor(SensorAdapter):
    """Reports fixed values and has no sea level reference."""

    def read(self, mask: FeatureMask) -> AtmosphereSample:
        return AtmosphereSample(temperature=21.1, pressure=1001.3, humidity=48.2, altitude=100.0)


class JammedAirConditioner(ActuatorAdapter):
    def apply(self, status: AcStatus) -> AcStatus:
        raise ActuatorFault("IR LED driver failed")

    def read(self) -> AcStatus:
        return AcStatus()


@pytest.fixture
def home() -> HomeService:
    return HomeService(
        store=AcStatusStore(actuator=MockAirConditioner(), temperature_min=16, temperature_max=30),
        atmosphere=AtmosphereService(sensor=MockAtmosphereSensor(seed=11), tick_interval=0.01),
    )


@pytest.fixture
def api_client(home: HomeService, monkeypatch) -> Iterator[TestClient]:
    def build_test_home() -> HomeService:
        return home

    build_test_home.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_home", build_test_home)
    monkeypatch.setattr("app.api.build_default_home", build_test_home)
    monkeypatch.setattr("app.stream.build_default_home", build_test_home)

    app = create_app()
    with TestClient(app) as client:
        yield client


def _wait_for_release(home: HomeService, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if home.atmosphere.active_sessions == 0:
            return
        time.sleep(0.01)
    pytest.fail(f"{home.atmosphere.active_sessions} stream sessions still open")


def test_lifespan_shuts_down_home_and_clears_cache() -> None:
    app = create_app()

    with TestClient(app) as client:
        home_during = build_default_home()
        client.put("/ac", json={"powered": True, "mode": "COOL", "temperature": 22})

    home_after = build_default_home()
    try:
        assert home_after is not home_during
        assert home_after.store is not home_during.store
        assert home_after.store.actuator is not home_during.store.actuator
        assert home_after.atmosphere.sensor is not home_during.atmosphere.sensor
        assert home_after.get_ac_status() == AcStatus()
    finally:
        home_after.shutdown()
        for factory in (
            build_default_home,
            build_default_atmosphere_service,
            build_default_store,
            build_default_actuator,
            build_default_sensor,
        ):
            factory.cache_clear()


def test_get_ac_status_returns_default(api_client: TestClient) -> None:
    response = api_client.get("/ac")

    assert response.status_code == 200
    assert response.json() == {"powered": False, "mode": "AUTO", "temperature": 0}


def test_set_then_get_ac_status(api_client: TestClient) -> None:
    requested = {"powered": True, "mode": "COOL", "temperature": 22}

    response = api_client.put("/ac", json=requested)

    assert response.status_code == 200
    assert response.json() == requested
    assert api_client.get("/ac").json() == requested


def test_set_accepts_numeric_mode(api_client: TestClient) -> None:
    response = api_client.put("/ac", json={"powered": True, "mode": 4, "temperature": 20})

    assert response.status_code == 200
    assert response.json()["mode"] == "FAN"


def test_out_of_range_temperature_is_bad_request(api_client: TestClient) -> None:
    before = api_client.get("/ac").json()

    response = api_client.put("/ac", json={"powered": True, "mode": "COOL", "temperature": 45})

    assert response.status_code == 400
    assert "outside supported range" in response.json()["detail"]
    assert api_client.get("/ac").json() == before


@pytest.mark.parametrize("mode", ["TURBO", 9])
def test_unknown_mode_is_rejected(api_client: TestClient, mode) -> None:
    response = api_client.put("/ac", json={"powered": True, "mode": mode, "temperature": 22})

    assert response.status_code == 422


def test_actuator_fault_is_service_unavailable(api_client: TestClient, home: HomeService) -> None:
    home.store.actuator = JammedAirConditioner()

    response = api_client.put("/ac", json={"powered": True, "mode": "COOL", "temperature": 22})

    assert response.status_code == 503
    assert api_client.get("/ac").json()["powered"] is False


def test_stream_temperature_only(api_client: TestClient, home: HomeService) -> None:
    with api_client.websocket_connect("/atmosphere") as ws:
        ws.send_json({"temperature": True, "pressure": False, "humidity": False, "altitude": False})
        readings = [ws.receive_json() for _ in range(3)]

    for reading in readings:
        assert reading["temperature"] != 0.0
        assert reading["pressure"] == 0.0
        assert reading["humidity"] == 0.0
        assert reading["altitude"] == 0.0
    _wait_for_release(home)


def test_stream_mask_can_be_replaced(api_client: TestClient, home: HomeService) -> None:
    home.atmosphere.sensor = FixedSensor()

    with api_client.websocket_connect("/atmosphere") as ws:
        ws.send_json({"temperature": True})
        assert ws.receive_json()["temperature"] != 0.0
        ws.send_json({"humidity": True})
        # Readings already in flight may still use the old mask.
        for _ in range(50):
            reading = ws.receive_json()
            if reading["humidity"] != 0.0:
                break
        else:
            pytest.fail("mask update never took effect")
        assert reading["temperature"] == 0.0

    _wait_for_release(home)


def test_stream_values_are_single_precision(api_client: TestClient, home: HomeService) -> None:
    home.atmosphere.sensor = FixedSensor()

    with api_client.websocket_connect("/atmosphere") as ws:
        ws.send_json({"pressure": True})
        reading = ws.receive_json()

    assert reading["pressure"] == pytest.approx(1001.3, abs=1e-4)
    assert reading["pressure"] != 1001.3


def test_disconnect_without_mask_releases_session(api_client: TestClient, home: HomeService) -> None:
    with api_client.websocket_connect("/atmosphere"):
        deadline = time.monotonic() + 2.0
        while home.atmosphere.active_sessions == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert home.atmosphere.active_sessions == 1

    _wait_for_release(home)


def test_sensor_fault_closes_stream_with_server_error(
    api_client: TestClient, home: HomeService
) -> None:
    home.atmosphere.sensor = DeadSensor()

    with api_client.websocket_connect("/atmosphere") as ws:
        ws.send_json({"temperature": True})
        with pytest.raises(WebSocketDisconnect) as info:
            ws.receive_json()

    assert info.value.code == 1011
    _wait_for_release(home)


def test_invalid_mask_closes_stream_with_client_error(
    api_client: TestClient, home: HomeService
) -> None:
    with api_client.websocket_connect("/atmosphere") as ws:
        ws.send_text("temperature please")
        with pytest.raises(WebSocketDisconnect) as info:
            ws.receive_json()

    assert info.value.code == 1008
    _wait_for_release(home)


def test_missing_mask_times_out_with_client_error(
    api_client: TestClient, home: HomeService
) -> None:
    home.atmosphere.configure_timeout = 0.05

    with api_client.websocket_connect("/atmosphere") as ws:
        with pytest.raises(WebSocketDisconnect) as info:
            ws.receive_json()

    assert info.value.code == 1008
    _wait_for_release(home)


def test_set_sea_level_pressure(api_client: TestClient, home: HomeService) -> None:
    response = api_client.put("/atmosphere/sea-level-pressure", json={"hpa": 1020.5})

    assert response.status_code == 200
    assert response.json() == {"hpa": 1020.5}
    assert home.atmosphere.sensor.sea_level_pressure == 1020.5  # type: ignore[attr-defined]


def test_sea_level_pressure_unsupported_sensor(api_client: TestClient, home: HomeService) -> None:
    home.atmosphere.sensor = FixedSensor()

    response = api_client.put("/atmosphere/sea-level-pressure", json={"hpa": 1020.5})

    assert response.status_code == 501


def test_health_reports_open_streams(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "active_streams": 0}
