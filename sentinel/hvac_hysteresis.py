"""HVAC mode hysteresis decision helper."""

from typing import Optional, Tuple

from .models import PRECISION_DIGITS, Mode, TemperatureRange


def get_dead_band(temp_range: TemperatureRange, tolerable_deviance: float) -> Tuple[float, float]:
    """Return (lower, upper) edges of the band where an idle HVAC stays off."""
    median = temp_range.median
    return (
        round(median - tolerable_deviance, PRECISION_DIGITS),
        round(median + tolerable_deviance, PRECISION_DIGITS),
    )


def get_mode(
    *,
    room_temp_c: float,
    last_mode: Optional[Mode],
    temp_range: TemperatureRange,
    tolerable_deviance: float,
) -> Mode:
    """Decide the next HVAC mode for the room temperature.

    While heating or cooling, the unit keeps running until the room reaches
    the median of the range (a tie turns it off). While off, or when the last
    mode is unknown, the room may drift within +/- tolerable_deviance of the
    median before heat or cool is engaged.
    """
    median = temp_range.median

    if last_mode == Mode.HEAT:
        return Mode.OFF if room_temp_c >= median else Mode.HEAT

    if last_mode == Mode.COOL:
        return Mode.OFF if room_temp_c <= median else Mode.COOL

    lower, upper = get_dead_band(temp_range, tolerable_deviance)

    if room_temp_c < lower:
        return Mode.HEAT

    if room_temp_c > upper:
        return Mode.COOL

    return Mode.OFF
