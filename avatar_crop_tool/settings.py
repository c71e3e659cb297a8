"""
Settings persistence: load, save, and validate user settings.

Settings are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  A missing, corrupt or invalid
file falls back to defaults.  The API URL and token can be overridden
from the environment; the token is never written to disk.  This module
is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"api_url": ..., "output_diameter": 256, ...}}
"""

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path

from avatar_crop_tool.config import OUTPUT_DIAMETER, ENV_API_URL, ENV_API_TOKEN, config_dir

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

OUTPUT_DIAMETER_MIN = 32
OUTPUT_DIAMETER_MAX = 1024


@dataclass
class Settings:
    api_url: str | None = None
    output_diameter: int = OUTPUT_DIAMETER
    last_directory: str | None = None
    # Environment only, never persisted
    api_url_override: str | None = None
    api_token: str | None = None

    @property
    def effective_api_url(self) -> str | None:
        return self.api_url_override or self.api_url

    def to_json(self) -> dict:
        data = asdict(self)
        del data["api_url_override"]
        del data["api_token"]
        return data


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict as stored on disk.

    Returns a list of error strings (empty means valid).
    """
    if not isinstance(data, dict):
        return ["Settings must be an object"]

    errors: list[str] = []

    api_url = data.get("api_url")
    if api_url is not None:
        if not isinstance(api_url, str) or not api_url.strip():
            errors.append("api_url must be a non-empty string or null")
        elif not api_url.startswith(("http://", "https://")):
            errors.append("api_url must start with http:// or https://")

    diameter = data.get("output_diameter", OUTPUT_DIAMETER)
    # bool is an int subclass; reject it explicitly
    if not isinstance(diameter, int) or isinstance(diameter, bool):
        errors.append("output_diameter must be an integer")
    elif not OUTPUT_DIAMETER_MIN <= diameter <= OUTPUT_DIAMETER_MAX:
        errors.append(
            f"output_diameter must be between {OUTPUT_DIAMETER_MIN} and {OUTPUT_DIAMETER_MAX}"
        )

    last_dir = data.get("last_directory")
    if last_dir is not None and not isinstance(last_dir, str):
        errors.append("last_directory must be a string or null")

    unknown = set(data) - {"api_url", "output_diameter", "last_directory"}
    if unknown:
        errors.append(f"unknown keys: {', '.join(sorted(unknown))}")

    return errors


def _apply_environment(settings: Settings) -> Settings:
    env_url = os.environ.get(ENV_API_URL)
    if env_url:
        settings.api_url_override = env_url
    env_token = os.environ.get(ENV_API_TOKEN)
    if env_token:
        settings.api_token = env_token
    return settings


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> Settings:
    """
    Load settings from disk, then apply environment overrides.

    Falls back to defaults if the file is missing, corrupt, or invalid.
    """
    path = _settings_path()

    if not path.exists():
        logger.debug("No settings found at %s, using defaults", path)
        return _apply_environment(Settings())

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings (%s), using defaults", exc)
        return _apply_environment(Settings())

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION:
        logger.warning("Settings version mismatch or invalid format, using defaults")
        return _apply_environment(Settings())

    data = raw.get("settings")
    errors = validate_settings(data)
    if errors:
        logger.warning("Invalid settings in %s: %s", path, "; ".join(errors))
        return _apply_environment(Settings())

    settings = Settings(
        api_url=data.get("api_url"),
        output_diameter=data.get("output_diameter", OUTPUT_DIAMETER),
        last_directory=data.get("last_directory"),
    )
    logger.info("Loaded settings from %s", path)
    return _apply_environment(settings)


def save_settings(settings: Settings) -> None:
    """
    Validate and write settings to disk.

    Raises ValueError if the settings are invalid.  Write errors are
    logged, not raised.
    """
    data = settings.to_json()
    errors = validate_settings(data)
    if errors:
        raise ValueError("; ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": data}
    path = _settings_path()
    try:
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Saved settings to %s", path)
    except OSError as exc:
        logger.error("Could not write settings to %s: %s", path, exc)
