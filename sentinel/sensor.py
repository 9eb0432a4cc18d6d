"""
Room temperature sensor.

Reads a USB thermometer through its command-line tool (temperv14 by default),
which prints the temperature in °C. The tool prints nothing, or 0, when it
cannot talk to the device, so a zero reading counts as a failure.
"""

import asyncio
import logging
import math
from typing import Optional

from .config import SensorConfig
from .exceptions import SensorError

logger = logging.getLogger(__name__)


class TemperatureSensor:
    """Reads the room temperature, retrying once after a delay."""

    def __init__(self, config: SensorConfig):
        self.config = config

    async def _read_raw(self) -> Optional[float]:
        """Run the sensor command once. Returns None on any failure."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.config.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            logger.warning(f"Sensor command could not be started: {e}")
            return None

        if proc.returncode != 0:
            logger.warning(f"Sensor command exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}")
            return None

        output = stdout.decode(errors="replace").strip()
        try:
            value = float(output)
        except ValueError:
            logger.warning(f"Sensor returned unreadable output: {output!r}")
            return None

        if value == 0 or not math.isfinite(value):
            logger.warning(f"Sensor returned {value}, treating as a failed read")
            return None

        return value

    async def read_c(self) -> float:
        """Calibrated room temperature in °C.

        Raises:
            SensorError: if the sensor fails twice in a row.
        """
        raw = await self._read_raw()

        if raw is None:
            logger.info(f"Retrying sensor read in {self.config.retry_delay_seconds}s")
            await asyncio.sleep(self.config.retry_delay_seconds)
            raw = await self._read_raw()

            if raw is None:
                raise SensorError(
                    "There was a problem getting the current temperature from the sensor "
                    f"even after a retry {self.config.retry_delay_seconds} seconds later"
                )

        temp_c = raw + self.config.calibration_offset_c
        logger.debug(f"Room temperature: raw={raw} calibrated={temp_c:.2f}")
        return temp_c
