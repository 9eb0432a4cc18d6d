"""Unit tests for one orchestrated control cycle."""

import asyncio
from datetime import datetime, timedelta

from sentinel.config import Config, LoggingConfig, SensorConfig, StorageConfig, ThermostatConfig, ThresholdsConfig
from sentinel.database import Database
from sentinel.exceptions import SensorError, ThermostatError
from sentinel.models import Mode, PersistedState, Setting
from sentinel.orchestrator import Orchestrator
from sentinel.watcher import Watcher

NOON = datetime(2024, 1, 15, 12, 0, 0)


class FakeSensor:
    def __init__(self, temp_c=None, error=None):
        self.temp_c = temp_c
        self.error = error

    async def read_c(self):
        if self.error:
            raise self.error
        return self.temp_c


class FakeThermostat:
    def __init__(self, error=None):
        self.error = error
        self.settings: list[Setting] = []

    async def change_hold_setting(self, setting):
        if self.error:
            raise self.error
        self.settings.append(setting)

    async def close(self):
        pass


def _build_orchestrator(tmp_path, temp_c=20.0, sensor_error=None, thermostat_error=None, dry_run=False):
    orchestrator = Orchestrator.__new__(Orchestrator)
    orchestrator.config = Config(
        thermostat=ThermostatConfig(username="user", password="secret", thermostat_ids=[12345]),
        sensor=SensorConfig(),
        thresholds=ThresholdsConfig(),
        storage=StorageConfig(db_path=str(tmp_path / "sentinel.db")),
        logging=LoggingConfig(),
    )
    orchestrator.dry_run = dry_run
    orchestrator.watcher = Watcher(orchestrator.config.thresholds)
    orchestrator.sensor = FakeSensor(temp_c, sensor_error)
    orchestrator.thermostat = FakeThermostat(thermostat_error)
    orchestrator.db = Database(tmp_path / "sentinel.db")
    return orchestrator


def _run(orchestrator, now=NOON):
    return asyncio.run(orchestrator.run_once(now=now))


def test_first_run_seeds_median_and_persists(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, temp_c=20.0)

    setting = _run(orchestrator)

    assert setting == Setting(Mode.OFF, 20.15)
    assert orchestrator.thermostat.settings == [setting]
    assert orchestrator.db.load_state() == PersistedState(
        last_adjustment_mode=Mode.OFF,
        last_adjustment_time=NOON.timestamp(),
        current_hold_temperature=20.2,
    )
    activity = orchestrator.db.get_activity()[0]
    assert activity["reason"] == "initial"
    assert activity["setpoint"] == 20.2
    assert "set to: 20.2|OFF" in activity["message"]


def test_heat_then_lockout_then_bump(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, temp_c=19.30)
    orchestrator.db.save_adjustment(Setting(Mode.OFF, 20.0), timestamp=(NOON - timedelta(hours=1)).timestamp())

    assert _run(orchestrator) == Setting(Mode.HEAT, 22.0)

    # Still cold 5 minutes later: the furnace has not had time to act
    assert _run(orchestrator, NOON + timedelta(minutes=5)) is None
    assert orchestrator.db.get_activity()[0]["reason"] == "lockout"

    # Still cold after 10 minutes: bump further
    assert _run(orchestrator, NOON + timedelta(minutes=10)) == Setting(Mode.HEAT, 24.0)

    # Warm enough: retract
    orchestrator.sensor.temp_c = 20.20
    assert _run(orchestrator, NOON + timedelta(minutes=20)) == Setting(Mode.OFF, 22.0)

    assert orchestrator.thermostat.settings == [
        Setting(Mode.HEAT, 22.0),
        Setting(Mode.HEAT, 24.0),
        Setting(Mode.OFF, 22.0),
    ]
    assert orchestrator.db.load_state().last_adjustment_mode == Mode.OFF


def test_no_change_is_logged_and_not_persisted(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, temp_c=20.10)
    adjusted_at = (NOON - timedelta(hours=1)).timestamp()
    orchestrator.db.save_adjustment(Setting(Mode.OFF, 20.0), timestamp=adjusted_at)

    assert _run(orchestrator) is None

    assert orchestrator.thermostat.settings == []
    assert orchestrator.db.load_state().last_adjustment_time == adjusted_at
    activity = orchestrator.db.get_activity()[0]
    assert activity["reason"] == "no_change"
    assert "No change is necessary" in activity["message"]


def test_sensor_failure_ends_run(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, sensor_error=SensorError("no reading"))

    assert _run(orchestrator) is None

    assert orchestrator.thermostat.settings == []
    assert orchestrator.db.load_state() == PersistedState()
    assert orchestrator.db.get_errors()[0]["message"] == "no reading"


def test_thermostat_failure_does_not_persist(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, temp_c=19.0, thermostat_error=ThermostatError("portal down"))
    orchestrator.db.save_adjustment(Setting(Mode.OFF, 20.0), timestamp=(NOON - timedelta(hours=1)).timestamp())
    before = orchestrator.db.load_state()

    assert _run(orchestrator) is None

    assert orchestrator.db.load_state() == before
    assert "portal down" in orchestrator.db.get_errors()[0]["message"]
    assert orchestrator.db.get_activity() == []


def test_unexpected_failure_is_logged_and_not_persisted(tmp_path):
    error = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
    orchestrator = _build_orchestrator(tmp_path, temp_c=19.0, thermostat_error=error)
    orchestrator.db.save_adjustment(Setting(Mode.OFF, 20.0), timestamp=(NOON - timedelta(hours=1)).timestamp())
    before = orchestrator.db.load_state()

    assert _run(orchestrator) is None

    assert orchestrator.db.load_state() == before
    assert "UnicodeDecodeError" in orchestrator.db.get_errors()[0]["message"]
    assert orchestrator.db.get_activity() == []


def test_dry_run_touches_nothing(tmp_path):
    orchestrator = _build_orchestrator(tmp_path, temp_c=19.0, dry_run=True)
    orchestrator.db.save_adjustment(Setting(Mode.OFF, 20.0), timestamp=(NOON - timedelta(hours=1)).timestamp())
    before = orchestrator.db.load_state()

    assert _run(orchestrator) == Setting(Mode.HEAT, 22.0)

    assert orchestrator.thermostat.settings == []
    assert orchestrator.db.load_state() == before
    assert orchestrator.db.get_activity() == []
