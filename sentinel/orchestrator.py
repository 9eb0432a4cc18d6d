"""
Sentinel Orchestrator

One scheduled run (cron, systemd timer) of thermostat control:
- Read the room temperature (USB sensor, one retry)
- Load the last adjustment from the database
- Decide the new hold setting (Watcher)
- Push it to the thermostat portal
- Persist the new adjustment only once the thermostat accepted it

The scheduler must not start a run while the previous one is still going.
"""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import load_config, Config, LoggingConfig
from .database import Database
from .exceptions import SensorError, ThermostatError
from .models import Setting
from .sensor import TemperatureSensor
from .thermostat_client import ThermostatClient
from .watcher import Watcher

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs one control cycle."""

    def __init__(self, config: Config, dry_run: bool = False):
        self.config = config
        self.dry_run = dry_run

        self.watcher = Watcher(config.thresholds)
        self.sensor = TemperatureSensor(config.sensor)
        self.thermostat = ThermostatClient(config.thermostat)
        self.db = Database(config.storage.db_path)

    async def _apply(self, setting: Setting, now: datetime) -> bool:
        """Send the setting to the thermostat and record it. Returns True on success."""
        if self.dry_run:
            logger.info(f"DRY RUN: would set thermostat to {setting}")
            return True

        try:
            await self.thermostat.change_hold_setting(setting)
        except ThermostatError as e:
            message = f"There was a problem changing your thermostat's hold setting: {e}"
            logger.error(message)
            self.db.log_error(message)
            return False

        # Only a confirmed change becomes the new last adjustment
        self.db.save_adjustment(setting, now.timestamp())
        return True

    async def run_once(self, now: Optional[datetime] = None) -> Optional[Setting]:
        """Run one control cycle.

        Returns the setting that was applied, or None when nothing changed
        (no change needed, lockout, or a failure that was logged).
        """
        now = now or datetime.now()
        try:
            return await self._run_cycle(now)
        except Exception as e:
            message = f"Thermostat control run failed: {e!r}"
            logger.error(message)
            self.db.log_error(message)
            return None

    async def _run_cycle(self, now: datetime) -> Optional[Setting]:
        try:
            room_temp = await self.sensor.read_c()
        except SensorError as e:
            logger.error(str(e))
            self.db.log_error(str(e))
            return None

        state = self.db.load_state()
        hold = state.current_hold_temperature

        if hold is None:
            # Hold temperature unknown (first run): start from the middle of the range
            setting = self.watcher.initial_setting(room_temp, now)
            if not await self._apply(setting, now):
                return None

            message = (
                f"INITIAL SETTING... Room Temperature: {room_temp:.2f}"
                f"... Thermostat hold setting set to: {setting}"
            )
            logger.info(message)
            if not self.dry_run:
                self.db.log_activity(message, room_temp_c=room_temp, setting=setting, reason="initial")
            return setting

        decision = self.watcher.evaluate(hold, room_temp, now, state)

        if decision.setting is None:
            current_mode = state.last_adjustment_mode.value if state.last_adjustment_mode else "Current mode unknown"
            detail = "lockout in effect" if decision.reason == "lockout" else "No change is necessary"
            message = (
                f"Room Temperature: {room_temp:.2f} Current Hold: {hold:.1f}|{current_mode}"
                f"... {detail} ({decision.minutes_since_last_adjustment:.1f} min since last adjustment)"
            )
            logger.info(message)
            if not self.dry_run:
                self.db.log_activity(message, room_temp_c=room_temp, hold_temp_c=hold, reason=decision.reason)
            return None

        if not await self._apply(decision.setting, now):
            return None

        message = (
            f"Room Temperature: {room_temp:.2f} Current Hold Temperature: {hold:.1f}"
            f" ... Thermostat hold setting changed to: {decision.setting}"
        )
        logger.info(message)
        if not self.dry_run:
            self.db.log_activity(
                message,
                room_temp_c=room_temp,
                hold_temp_c=hold,
                setting=decision.setting,
                reason=decision.reason,
            )
        return decision.setting

    async def close(self):
        await self.thermostat.close()


def setup_logging(config: LoggingConfig):
    """Log to stdout, and to a rotating file when one is configured."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(config.file, maxBytes=512_000, backupCount=3))

    logging.basicConfig(
        level=config.level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


async def main(config_path: str = "config.yaml", dry_run: bool = False) -> Optional[Setting]:
    """Run one control cycle."""
    config = load_config(config_path)
    setup_logging(config.logging)

    orchestrator = Orchestrator(config, dry_run=dry_run)
    try:
        return await orchestrator.run_once()
    finally:
        await orchestrator.close()
