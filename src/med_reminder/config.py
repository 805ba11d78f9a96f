"""Configuration loader for the medication reminder service.

Reads settings either from environment variables (optionally seeded from a
``.env`` file) or from a YAML/JSON config file, and provides typed access to
all settings. Configuration is validated once at startup and is immutable
afterwards.
"""

from __future__ import annotations

import datetime
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from med_reminder.due_window import VALID_DAYS, resolve_timezone

logger = logging.getLogger(__name__)

ENV_SOURCE = "env"
FILE_SOURCES = ("yaml", "json", "file")
DEFAULT_CONFIG_PATH = "./config.yaml"
DEFAULT_DB_PATH = "./meds_reminder.db"
DEFAULT_INTERVAL_MINUTES = 30
DEFAULT_HEALTH_PORT = 8080

VALID_FREQUENCIES = ("daily", "weekly")


class ConfigError(ValueError):
    """Configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Medication:
    """A single recurring medication reminder.

    Attributes:
        name: Unique identifier (store key and button correlation key).
        hour: Local hour (24h) at which the reminder becomes due.
        frequency: Recurrence -- daily or weekly.
        day: Weekday name, required when frequency is weekly.
    """

    name: str = ""
    hour: int = 0
    frequency: str = "daily"
    day: str = ""

    @property
    def is_weekly(self) -> bool:
        return self.frequency.lower() == "weekly"


@dataclass(frozen=True)
class SlackConfig:
    """Slack credentials and delivery target."""

    bot_token: str = ""
    app_token: str = ""
    channel_id: str = ""
    user_id_to_ping: str = ""


@dataclass(frozen=True)
class ReminderConfig:
    """Top-level reminder service configuration."""

    slack: SlackConfig = field(default_factory=SlackConfig)
    reminder_interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    medications: tuple[Medication, ...] = ()
    db_path: str = DEFAULT_DB_PATH
    timezone: str = "UTC"
    health_port: int = DEFAULT_HEALTH_PORT

    @property
    def reminder_interval(self) -> datetime.timedelta:
        """The poll interval as a timedelta."""
        return datetime.timedelta(minutes=self.reminder_interval_minutes)

    @property
    def location(self) -> datetime.tzinfo:
        """The configured timezone, falling back to UTC if it cannot load."""
        return resolve_timezone(self.timezone)

    def medication(self, name: str) -> Medication | None:
        """Return the configured medication with this name, or None."""
        for med in self.medications:
            if med.name == name:
                return med
        return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(cfg: ReminderConfig) -> ReminderConfig:
    """Validate a config, returning it with defaults filled in.

    Raises:
        ConfigError: On the first invalid setting found.
    """
    if not cfg.slack.bot_token:
        raise ConfigError("Slack bot token is required")
    if not cfg.slack.app_token:
        raise ConfigError("Slack app-level token is required for Socket Mode")
    if not cfg.slack.channel_id:
        raise ConfigError("Slack channel ID is required")
    if not _is_int(cfg.reminder_interval_minutes):
        raise ConfigError(
            "reminder interval must be a whole number of minutes, "
            f"got {cfg.reminder_interval_minutes!r}"
        )
    if cfg.reminder_interval_minutes < 1:
        raise ConfigError("reminder interval must be at least 1 minute")
    if not _is_int(cfg.health_port) or not 0 <= cfg.health_port <= 65535:
        raise ConfigError(
            "health port must be an integer between 0 and 65535, "
            f"got {cfg.health_port!r}"
        )
    if not cfg.medications:
        raise ConfigError("at least one medication is required")

    seen: set[str] = set()
    medications = []
    for i, med in enumerate(cfg.medications, start=1):
        if not med.name:
            raise ConfigError(f"medication #{i} has no name")
        if med.name in seen:
            raise ConfigError(f"medication {med.name} is configured twice")
        seen.add(med.name)
        if not _is_int(med.hour) or not 0 <= med.hour <= 23:
            raise ConfigError(
                f"medication {med.name} has invalid hour: {med.hour} "
                "(must be between 0 and 23)"
            )

        frequency = str(med.frequency or "daily").lower()
        if frequency not in VALID_FREQUENCIES:
            raise ConfigError(
                f"medication {med.name} has invalid frequency: {med.frequency} "
                "(must be 'daily' or 'weekly')"
            )
        if frequency == "weekly":
            if not med.day:
                raise ConfigError(
                    f"medication {med.name} has weekly frequency but no day specified"
                )
            if not isinstance(med.day, str) or med.day.lower() not in VALID_DAYS:
                raise ConfigError(
                    f"medication {med.name} has invalid day: {med.day}"
                )
        medications.append(
            Medication(name=med.name, hour=med.hour, frequency=frequency, day=med.day)
        )

    timezone = cfg.timezone or "UTC"
    _check_timezone(timezone)

    return ReminderConfig(
        slack=cfg.slack,
        reminder_interval_minutes=cfg.reminder_interval_minutes,
        medications=tuple(medications),
        db_path=cfg.db_path or DEFAULT_DB_PATH,
        timezone=timezone,
        health_port=cfg.health_port,
    )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_timezone(name: str) -> None:
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"invalid timezone: {name} - {exc}") from exc


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def _build_sub(cls: type, data: dict[str, Any] | None) -> Any:
    """Build a frozen dataclass from a dict, ignoring unknown keys."""
    if data is None:
        return cls()
    valid = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in valid}
    return cls(**filtered)


def _int_env(key: str, default: int) -> int:
    raw = os.environ.get(key, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"invalid {key}: {raw!r}") from exc


def load_env_config() -> ReminderConfig:
    """Load configuration from environment variables.

    A ``.env`` file in the working directory is loaded first if present;
    variables already set in the environment win. Medications are read from
    numbered variables ``MED_1_NAME``, ``MED_1_HOUR``, ``MED_1_FREQUENCY``,
    ``MED_1_DAY``, ... until the first missing name.

    Raises:
        ConfigError: If a value cannot be parsed or validation fails.
    """
    if not load_dotenv():
        logger.debug("No .env file loaded, using process environment only")

    slack = SlackConfig(
        bot_token=os.environ.get("SLACK_BOT_TOKEN", ""),
        app_token=os.environ.get("SLACK_APP_TOKEN", ""),
        channel_id=os.environ.get("SLACK_CHANNEL_ID", ""),
        user_id_to_ping=os.environ.get("SLACK_USER_ID_TO_PING", ""),
    )

    medications: list[Medication] = []
    i = 1
    while True:
        name = os.environ.get(f"MED_{i}_NAME", "")
        if not name:
            break
        hour_key = f"MED_{i}_HOUR"
        if not os.environ.get(hour_key):
            logger.warning("No hour found for %s, skipping this medication", name)
            i += 1
            continue
        hour = _int_env(hour_key, 0)
        frequency = os.environ.get(f"MED_{i}_FREQUENCY", "") or "daily"
        day = ""
        if frequency.lower() == "weekly":
            day = os.environ.get(f"MED_{i}_DAY", "")
        medications.append(
            Medication(name=name, hour=hour, frequency=frequency, day=day)
        )
        logger.info(
            "Loaded medication: %s, hour: %d, frequency: %s, day: %s",
            name,
            hour,
            frequency,
            day,
        )
        i += 1

    cfg = ReminderConfig(
        slack=slack,
        reminder_interval_minutes=_int_env(
            "REMINDER_INTERVAL_MINUTES", DEFAULT_INTERVAL_MINUTES
        ),
        medications=tuple(medications),
        db_path=os.environ.get("DB_PATH", "") or DEFAULT_DB_PATH,
        timezone=os.environ.get("TIMEZONE", "") or "UTC",
        health_port=_int_env("HEALTH_PORT", DEFAULT_HEALTH_PORT),
    )
    cfg = validate_config(cfg)
    logger.info("Loaded %d medications from environment variables", len(medications))
    return cfg


def load_file_config(config_path: Path) -> ReminderConfig:
    """Load configuration from a YAML (or JSON) file.

    Expected layout::

        slack:
          bot_token: xoxb-...
          app_token: xapp-...
          channel_id: C0123
        reminder_interval_minutes: 30
        timezone: Europe/Berlin
        medications:
          - {name: Morning Pill, hour: 8}
          - {name: Vitamin D, hour: 9, frequency: weekly, day: monday}

    Args:
        config_path: Path to the config file.

    Raises:
        ConfigError: If the file cannot be read or parsed, or validation fails.
    """
    try:
        raw = yaml.safe_load(config_path.read_text())
    except OSError as exc:
        raise ConfigError(f"failed to read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {config_path} is not a mapping")

    medications: list[Medication] = []
    meds_raw = raw.get("medications")
    if isinstance(meds_raw, list):
        for entry in meds_raw:
            if isinstance(entry, dict):
                medications.append(_build_sub(Medication, entry))

    defaults = ReminderConfig()
    slack_raw = raw.get("slack")
    cfg = ReminderConfig(
        slack=_build_sub(SlackConfig, slack_raw if isinstance(slack_raw, dict) else None),
        reminder_interval_minutes=raw.get(
            "reminder_interval_minutes", defaults.reminder_interval_minutes
        ),
        medications=tuple(medications),
        db_path=raw.get("db_path", defaults.db_path),
        timezone=raw.get("timezone", defaults.timezone),
        health_port=raw.get("health_port", defaults.health_port),
    )
    return validate_config(cfg)


def load_config() -> ReminderConfig:
    """Load configuration from the source named by ``CONFIG_SOURCE``.

    ``env`` (default) reads environment variables; ``yaml``/``json``/``file``
    reads the file at ``CONFIG_PATH`` (default ``./config.yaml``).
    """
    source = os.environ.get("CONFIG_SOURCE", "") or ENV_SOURCE
    if source.lower() in FILE_SOURCES:
        path = Path(os.environ.get("CONFIG_PATH", "") or DEFAULT_CONFIG_PATH)
        return load_file_config(path)
    return load_env_config()
