"""Value types shared by the decision engine and its collaborators."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Literal, Optional

# Temperatures are compared at 1e-4 °C so configured two-decimal limits tie exactly
PRECISION_DIGITS = 4


class Mode(str, Enum):
    """Thermostat mode, valued as the remote service expects it."""
    HEAT = "HEAT"
    COOL = "COOL"
    OFF = "OFF"


@dataclass(frozen=True)
class TemperatureRange:
    """Desired room temperature band in °C."""
    lower: float
    upper: float

    def __post_init__(self):
        if not self.lower < self.upper:
            raise ValueError(
                f"Temperature range lower limit ({self.lower}) must be below upper limit ({self.upper})"
            )

    @property
    def median(self) -> float:
        return round((self.lower + self.upper) / 2, PRECISION_DIGITS)


@dataclass(frozen=True)
class Setting:
    """A hold setting to push to the thermostat."""
    mode: Mode
    temperature: float

    @property
    def display_temperature(self) -> str:
        """Temperature with one fractional digit, e.g. '22.0'. Halves round up (20.15 -> '20.2')."""
        exact = Decimal(str(round(self.temperature, PRECISION_DIGITS)))
        return str(exact.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    def __str__(self) -> str:
        return f"{self.display_temperature}|{self.mode.value}"


@dataclass(frozen=True)
class PersistedState:
    """Last adjustment as recorded after the previous successful actuation.

    All three fields are written together, so either all are set or none are.
    """
    last_adjustment_mode: Optional[Mode] = None
    last_adjustment_time: Optional[float] = None  # Unix time
    current_hold_temperature: Optional[float] = None


DecisionReason = Literal["adjust", "lockout", "no_change", "initial"]


@dataclass(frozen=True)
class Decision:
    """Outcome of one evaluation, with the inputs that led to it."""
    mode: Mode
    temp_range: TemperatureRange
    minutes_since_last_adjustment: float
    setting: Optional[Setting]
    reason: DecisionReason
