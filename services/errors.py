"""Domain error taxonomy resolved by the HTTP/WebSocket layer."""

from __future__ import annotations


class AcStatusValidationError(ValueError):
    """Requested AC status is out of range or malformed; nothing was changed."""


class ConfigurationError(ValueError):
    """A stream session was used without a valid feature selection."""


class SessionNotConfiguredError(ConfigurationError):
    """No feature mask arrived before the configuration deadline."""


class InvalidFeatureMaskError(ConfigurationError):
    """The client sent something that is not a feature mask."""


class SessionClosedError(RuntimeError):
    """Operation on a stream session that has already been closed."""


class AdapterFault(RuntimeError):
    """Hardware or driver failure reported by a peripheral adapter."""


class SensorFault(AdapterFault):
    pass


class ActuatorFault(AdapterFault):
    pass
