from __future__ import annotations

"""Configuration loader for the TrueBeats converter."""

import os
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import tomllib


DEFAULT_RAW_DIRECTORY = "."
DEFAULT_PROCESSED_DIRECTORY = "data"
DEFAULT_OUTPUT_DIRECTORY = "output"
DEFAULT_HISTORICAL_START = date(2002, 1, 1)
DEFAULT_HISTORICAL_END = date(2021, 2, 1)
DEFAULT_HISTORY_SUFFIX = "200001_20210131"

HISTORICAL_ENV_VAR = "PROCESS_HISTORICAL_DATA"
DEPLOYMENT_DATE_ENV_VAR = "TRUEBEATS_DEPLOYMENT_DATE"

_CONFIG_CACHE: dict[str, Any] | None = None


def load_config() -> dict[str, Any]:
    """Load configuration from the repository root config file.

    Args:
        None

    Returns:
        dict[str, Any]: Parsed configuration values.
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE
    config_path = Path(__file__).resolve().parents[1] / "config.toml"
    _CONFIG_CACHE = (
        tomllib.loads(config_path.read_text(encoding="utf-8")) if config_path.exists() else {}
    )
    return _CONFIG_CACHE


def get_directories() -> tuple[Path, Path, Path]:
    """Return the raw, processed (existing) and output data directories.

    Args:
        None

    Returns:
        tuple[Path, Path, Path]: Raw, existing and output directories.
    """
    directories = _section("directories")
    return (
        Path(_coerce_str(directories.get("raw"), DEFAULT_RAW_DIRECTORY)),
        Path(_coerce_str(directories.get("processed"), DEFAULT_PROCESSED_DIRECTORY)),
        Path(_coerce_str(directories.get("output"), DEFAULT_OUTPUT_DIRECTORY)),
    )


def get_historical_date_range() -> tuple[date, date]:
    """Return the inclusive date range replayed in historical mode.

    Args:
        None

    Returns:
        tuple[date, date]: Start and end dates.
    """
    historical = _section("historical")
    start = _coerce_date(historical.get("start_date"), DEFAULT_HISTORICAL_START)
    end = _coerce_date(historical.get("end_date"), DEFAULT_HISTORICAL_END)
    return start, end


def get_history_file_suffix() -> str:
    """Return the date-range suffix used in the vendor history file names."""
    return _coerce_str(_section("historical").get("file_suffix"), DEFAULT_HISTORY_SUFFIX)


def is_historical_requested() -> bool:
    """Return True when the environment asks for historical processing."""
    return os.getenv(HISTORICAL_ENV_VAR, "").strip().lower() == "true"


def get_deployment_date() -> date:
    """Return the live processing date from the environment, defaulting to today (UTC).

    Raises:
        ValueError: When the variable is set but not formatted as ``yyyymmdd``.
    """
    raw = os.getenv(DEPLOYMENT_DATE_ENV_VAR, "").strip()
    if not raw:
        return datetime.now(UTC).date()
    return datetime.strptime(raw, "%Y%m%d").date()


def _section(name: str) -> dict[str, Any]:
    config = load_config()
    section = config.get(name, {}) if isinstance(config, dict) else {}
    return section if isinstance(section, dict) else {}


def _coerce_str(value: object, default: str) -> str:
    """Coerce a value to a non-empty string with a default fallback."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_date(value: object, default: date) -> date:
    """Coerce a value to a date with a default fallback.

    Args:
        value (object): TOML date or ISO ``yyyy-mm-dd`` string.
        default (date): Default to return on error.

    Returns:
        date: Parsed date or default.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return default
    return default
