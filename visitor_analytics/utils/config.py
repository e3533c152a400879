"""Configuration management for visitor analytics.

Loads and validates the YAML configuration file holding the weather source,
data location and logging settings.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class WeatherConfig:
    """Configuration for the Open-Meteo weather source."""

    base_url: str = "https://archive-api.open-meteo.com/v1/archive"
    latitude: float = 52.37
    longitude: float = 4.89
    timezone: str = "Europe/Amsterdam"
    timeout: float = 10.0
    cache_ttl: int = 3600
    cache_maxsize: int = 256
    enabled: bool = True

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout}")


@dataclass
class DataConfig:
    """Configuration for the visitor records export."""

    records_path: Optional[str] = None


@dataclass
class LoggingConfig:
    """Configuration for application logging."""

    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""

    weather: WeatherConfig = field(default_factory=WeatherConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(raw: dict, name: str, cls: type):
    values = raw.get(name) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(
            f"Unknown keys in config section '{name}': {', '.join(sorted(unknown))}"
        )
    return cls(**values)


def load_config(config_path: str) -> AppConfig:
    """Load application configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Populated AppConfig instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file contains invalid YAML.
        ValueError: If a section is malformed or holds unknown keys.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        logger.warning("Empty config file, using defaults")
        return AppConfig()

    config = AppConfig(
        weather=_section(raw, "weather", WeatherConfig),
        data=_section(raw, "data", DataConfig),
        logging=_section(raw, "logging", LoggingConfig),
    )

    logger.info("Configuration loaded from %s", config_path)
    return config
