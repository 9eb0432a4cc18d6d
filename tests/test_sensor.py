"""Unit tests for the room temperature sensor reader."""

import asyncio
import sys

import pytest

from sentinel.config import SensorConfig
from sentinel.exceptions import SensorError
from sentinel.sensor import TemperatureSensor


class ScriptedSensor(TemperatureSensor):
    """Sensor whose raw reads come from a list."""

    def __init__(self, config, readings):
        super().__init__(config)
        self.readings = list(readings)
        self.reads = 0

    async def _read_raw(self):
        self.reads += 1
        return self.readings.pop(0)


def _config(**overrides):
    values = {"calibration_offset_c": -1.5, "retry_delay_seconds": 0}
    values.update(overrides)
    return SensorConfig(**values)


def test_reading_is_calibrated():
    sensor = ScriptedSensor(_config(), [21.5])

    assert asyncio.run(sensor.read_c()) == pytest.approx(20.0)
    assert sensor.reads == 1


def test_failed_read_is_retried_once():
    sensor = ScriptedSensor(_config(), [None, 21.0])

    assert asyncio.run(sensor.read_c()) == pytest.approx(19.5)
    assert sensor.reads == 2


def test_two_failed_reads_raise():
    sensor = ScriptedSensor(_config(), [None, None, 21.0])

    with pytest.raises(SensorError):
        asyncio.run(sensor.read_c())
    assert sensor.reads == 2


def test_command_output_is_parsed():
    sensor = TemperatureSensor(_config(command=[sys.executable, "-c", "print('21.75')"]))

    assert asyncio.run(sensor.read_c()) == pytest.approx(20.25)


@pytest.mark.parametrize("script", [
    "print('0')",
    "print('n/a')",
    "print('nan')",
    "import sys; sys.exit(1)",
])
def test_bad_command_output_is_a_failed_read(script):
    sensor = TemperatureSensor(_config(command=[sys.executable, "-c", script]))

    assert asyncio.run(sensor._read_raw()) is None


def test_missing_command_is_a_failed_read():
    sensor = TemperatureSensor(_config(command=["/nonexistent/temperv14", "-c"]))

    with pytest.raises(SensorError):
        asyncio.run(sensor.read_c())
