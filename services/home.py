"""Home service façade behind the ``mattori_home.Home`` operations."""

from __future__ import annotations

from functools import lru_cache

from datastore.ac_status import AcStatusStore, build_default_store
from models.climate import AcStatus
from services.atmosphere import AtmosphereService, StreamSession, build_default_atmosphere_service


class HomeService:
    """Binds the AC status store and the atmosphere sessions to the RPC surface."""

    def __init__(self, store: AcStatusStore, atmosphere: AtmosphereService) -> None:
        self.store = store
        self.atmosphere = atmosphere

    def get_ac_status(self) -> AcStatus:
        return self.store.get()

    def set_ac_status(self, status: AcStatus) -> AcStatus:
        """Validate and apply ``status``; returns what the unit reached."""
        return self.store.set(status)

    def open_atmosphere_session(self) -> StreamSession:
        return self.atmosphere.open_session()

    def close_atmosphere_session(self, session: StreamSession) -> None:
        self.atmosphere.close_session(session)

    def set_sea_level_pressure(self, hpa: float) -> None:
        self.atmosphere.sensor.set_sea_level_pressure(hpa)

    def shutdown(self) -> None:
        """Close every open stream during application shutdown."""
        self.atmosphere.shutdown()


@lru_cache
def build_default_home() -> HomeService:
    """Factory that wires the service with the default simulated peripherals."""
    return HomeService(store=build_default_store(), atmosphere=build_default_atmosphere_service())
