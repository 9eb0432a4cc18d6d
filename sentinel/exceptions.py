"""
Sentinel exceptions

Small hierarchy so the run loop can tell sensor and thermostat failures apart.
"""


class SentinelError(Exception):
    """Base exception for Sentinel."""

    pass


class InvalidInputError(SentinelError, ValueError):
    """A temperature or time handed to the decision engine is unusable."""

    pass


class SensorError(SentinelError):
    """Room temperature could not be read, even after a retry."""

    pass


class ThermostatError(SentinelError):
    """Login or command against the remote thermostat service failed."""

    pass
