"""Configuration loader for Sentinel thermostat control."""

import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ThermostatConfig:
    username: str
    password: str
    thermostat_ids: list[int]
    base_url: str = "https://controlyourthermostat.ca/"
    login_path: str = "servlet/LoginController"
    adjust_path: str = "spring/stars/consumer/thermostat/manual"
    request_timeout_seconds: float = 30
    off_resend_delay_seconds: float = 8  # The service sometimes ignores the first OFF
    verify_ssl: bool = True


@dataclass
class SensorConfig:
    command: list[str] = field(default_factory=lambda: ["sudo", "temperv14", "-c"])
    calibration_offset_c: float = -1.56  # Added to every raw reading
    retry_delay_seconds: float = 10


@dataclass(frozen=True)
class ThresholdsConfig:
    increment_c: float = 2.0  # Hold setting bump that triggers heating or cooling
    tolerable_deviance_c: float = 0.35  # +/- from the median where an idle HVAC stays off
    desired_minimum_c: float = 19.80
    desired_maximum_c: float = 20.50

    # Narrower range for [start, end) hours of the day
    exception_period_start: int = 18
    exception_period_end: int = 19
    exception_desired_minimum_c: float = 19.80
    exception_desired_maximum_c: float = 20.30

    # Minutes the furnace / air conditioner gets to move the room temperature
    time_for_effect_heat_minutes: float = 10
    time_for_effect_cool_minutes: float = 15


@dataclass
class StorageConfig:
    db_path: str = "data/sentinel.db"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None  # Rotating log file in addition to stdout


@dataclass
class Config:
    thermostat: ThermostatConfig
    sensor: SensorConfig
    thresholds: ThresholdsConfig
    storage: StorageConfig
    logging: LoggingConfig


def load_config(path: str = "config.yaml") -> Config:
    """Load configuration from YAML file."""
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if "thermostat" not in data:
        raise ValueError(f"Config file {path} has no 'thermostat' section")

    return Config(
        thermostat=ThermostatConfig(**data["thermostat"]),
        sensor=SensorConfig(**(data.get("sensor") or {})),
        thresholds=ThresholdsConfig(**(data.get("thresholds") or {})),
        storage=StorageConfig(**(data.get("storage") or {})),
        logging=LoggingConfig(**(data.get("logging") or {})),
    )
