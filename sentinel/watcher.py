"""
Thermostat Watcher

Plays the role of a person watching the room thermometer and deciding what,
if anything, to change on the thermostat's hold setting.

The thermostat only offers a hold temperature and a mode, so heating and
cooling are induced by bumping the hold setting INCREMENT degrees past the
current one and retracted by moving it back:

  HEAT: hold + increment      COOL: hold - increment
  OFF after HEAT: hold - increment, OFF after COOL: hold + increment

Mode selection (see hvac_hysteresis.get_mode):
  running (last HEAT/COOL): keep going until the room reaches the median
  idle (last OFF/unknown):  stay off within median +/- tolerable deviance

Lockout: the same active mode is not re-issued until the equipment has had
time_for_effect minutes to move the room temperature.

Everything here is pure: time, room temperature and persisted state come in,
a Setting (or None for "no change") goes out.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from .config import ThresholdsConfig
from .exceptions import InvalidInputError
from .hvac_hysteresis import get_mode
from .models import Decision, Mode, PersistedState, Setting, TemperatureRange

logger = logging.getLogger(__name__)

# Reported when no adjustment time is known: no lockout in effect
NO_LAST_ADJUSTMENT_MINUTES = 999


def _require_finite(name: str, value: float):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a finite number, got {value!r}")


class Watcher:
    """Decides the thermostat's next hold setting."""

    def __init__(self, thresholds: ThresholdsConfig):
        self.thresholds = thresholds

        start = thresholds.exception_period_start
        end = thresholds.exception_period_end
        if not (0 <= start <= end <= 24):
            raise ValueError(f"Exception period must satisfy 0 <= start <= end <= 24, got [{start}, {end})")

        self.standard_range = TemperatureRange(thresholds.desired_minimum_c, thresholds.desired_maximum_c)
        self.exception_range = TemperatureRange(
            thresholds.exception_desired_minimum_c,
            thresholds.exception_desired_maximum_c,
        )

    # --- Limit calculator ---

    def compute_range(self, hour: int) -> TemperatureRange:
        """Desired range for the hour of day (0-23)."""
        if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
            raise InvalidInputError(f"hour must be an integer in 0..23, got {hour!r}")

        if self.thresholds.exception_period_start <= hour < self.thresholds.exception_period_end:
            return self.exception_range
        return self.standard_range

    # --- Mode selector ---

    def select_mode(
        self,
        room_temperature: float,
        last_mode: Optional[Mode],
        temp_range: TemperatureRange,
    ) -> Mode:
        _require_finite("room_temperature", room_temperature)
        return get_mode(
            room_temp_c=room_temperature,
            last_mode=last_mode,
            temp_range=temp_range,
            tolerable_deviance=self.thresholds.tolerable_deviance_c,
        )

    # --- Lockout tracker ---

    @staticmethod
    def minutes_since_last_adjustment(last_adjustment_time: Optional[float], now: datetime) -> float:
        """Minutes elapsed since the last physical adjustment.

        Returns NO_LAST_ADJUSTMENT_MINUTES when the time of the last adjustment
        is unknown.
        """
        if last_adjustment_time is None:
            return NO_LAST_ADJUSTMENT_MINUTES
        return (now.timestamp() - last_adjustment_time) / 60

    # --- Setting builder ---

    def build_setting(
        self,
        mode: Mode,
        current_hold: float,
        last_mode: Optional[Mode],
        minutes_since_last: float,
    ) -> Optional[Setting]:
        """Turn the selected mode into a concrete hold setting.

        Returns None when nothing needs to change: the HVAC is already off, or
        the same active mode was issued too recently to have taken effect.
        """
        _require_finite("current_hold", current_hold)
        increment = self.thresholds.increment_c

        if mode == Mode.OFF:
            if last_mode is None:
                # Unknown history: assert OFF without touching the temperature
                return Setting(Mode.OFF, current_hold)
            if last_mode == Mode.HEAT:
                return Setting(Mode.OFF, current_hold - increment)
            if last_mode == Mode.COOL:
                return Setting(Mode.OFF, current_hold + increment)
            return None

        if mode == Mode.HEAT:
            if last_mode == Mode.HEAT and minutes_since_last < self.thresholds.time_for_effect_heat_minutes:
                return None
            return Setting(Mode.HEAT, current_hold + increment)

        if last_mode == Mode.COOL and minutes_since_last < self.thresholds.time_for_effect_cool_minutes:
            return None
        return Setting(Mode.COOL, current_hold - increment)

    # --- Entry points ---

    def evaluate(
        self,
        current_hold: float,
        room_temperature: float,
        now: datetime,
        state: PersistedState,
    ) -> Decision:
        """Run the full decision and report why it came out the way it did."""
        _require_finite("current_hold", current_hold)
        _require_finite("room_temperature", room_temperature)

        temp_range = self.compute_range(now.hour)
        last_mode = state.last_adjustment_mode
        mode = self.select_mode(room_temperature, last_mode, temp_range)
        minutes = self.minutes_since_last_adjustment(state.last_adjustment_time, now)
        setting = self.build_setting(mode, current_hold, last_mode, minutes)

        if setting is not None:
            reason = "adjust"
        elif mode == last_mode and mode != Mode.OFF:
            reason = "lockout"
        else:
            reason = "no_change"

        logger.debug(
            f"Evaluated room={room_temperature} hold={current_hold} last={last_mode} "
            f"range=[{temp_range.lower}, {temp_range.upper}] mode={mode.value} "
            f"minutes_since_last={minutes:.1f} -> {reason}"
        )

        return Decision(
            mode=mode,
            temp_range=temp_range,
            minutes_since_last_adjustment=minutes,
            setting=setting,
            reason=reason,
        )

    def decide(
        self,
        current_hold: float,
        room_temperature: float,
        now: datetime,
        state: PersistedState,
    ) -> Optional[Setting]:
        """New hold setting for this run, or None when no actuation is required."""
        return self.evaluate(current_hold, room_temperature, now, state).setting

    def initial_setting(self, room_temperature: float, now: datetime) -> Setting:
        """First-run setting when the thermostat's hold temperature is unknown.

        Seeds the hold at the median of the current range, bumped by the
        increment when heating or cooling is needed.
        """
        _require_finite("room_temperature", room_temperature)

        temp_range = self.compute_range(now.hour)
        mode = self.select_mode(room_temperature, None, temp_range)
        median = temp_range.median

        if mode == Mode.HEAT:
            return Setting(Mode.HEAT, median + self.thresholds.increment_c)
        if mode == Mode.COOL:
            return Setting(Mode.COOL, median - self.thresholds.increment_c)
        return Setting(Mode.OFF, median)
