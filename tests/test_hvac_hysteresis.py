"""Unit tests for HVAC mode hysteresis decisions."""

from sentinel.hvac_hysteresis import get_dead_band, get_mode
from sentinel.models import Mode, TemperatureRange

STANDARD = TemperatureRange(19.80, 20.50)  # median 20.15
EVENING = TemperatureRange(19.80, 20.30)  # median 20.05


def _mode(temp_c, last_mode, temp_range=STANDARD):
    return get_mode(
        room_temp_c=temp_c,
        last_mode=last_mode,
        temp_range=temp_range,
        tolerable_deviance=0.35,
    )


def test_dead_band_edges_are_exact():
    assert get_dead_band(STANDARD, 0.35) == (19.80, 20.50)
    assert get_dead_band(EVENING, 0.35) == (19.70, 20.40)


def test_heat_keeps_running_below_median():
    assert _mode(20.14, Mode.HEAT) == Mode.HEAT
    # Far below the dead band is still just "keep heating"
    assert _mode(15.0, Mode.HEAT) == Mode.HEAT


def test_heat_stops_at_median():
    assert _mode(STANDARD.median, Mode.HEAT) == Mode.OFF
    assert _mode(20.20, Mode.HEAT) == Mode.OFF


def test_cool_keeps_running_above_median():
    assert _mode(20.16, Mode.COOL) == Mode.COOL


def test_cool_stops_at_median():
    assert _mode(STANDARD.median, Mode.COOL) == Mode.OFF
    assert _mode(19.0, Mode.COOL) == Mode.OFF


def test_running_hvac_ignores_dead_band():
    # Heating never flips straight to cooling, and vice versa
    assert _mode(25.0, Mode.HEAT) == Mode.OFF
    assert _mode(15.0, Mode.COOL) == Mode.OFF


def test_off_stays_off_inside_dead_band():
    for temp_c in (19.80, 19.95, 20.15, 20.30, 20.50):
        assert _mode(temp_c, Mode.OFF) == Mode.OFF


def test_off_heats_below_dead_band():
    assert _mode(19.79, Mode.OFF) == Mode.HEAT
    assert _mode(19.30, Mode.OFF) == Mode.HEAT


def test_off_cools_above_dead_band():
    assert _mode(20.51, Mode.OFF) == Mode.COOL


def test_unknown_last_mode_uses_dead_band():
    assert _mode(20.00, None) == Mode.OFF
    assert _mode(19.00, None) == Mode.HEAT
    assert _mode(21.00, None) == Mode.COOL


def test_evening_range_upper_edge():
    assert _mode(20.40, Mode.OFF, EVENING) == Mode.OFF
    assert _mode(20.45, Mode.OFF, EVENING) == Mode.COOL
