"""Load stationbar settings from ``.env``, a JSON settings file and the environment.

Values are resolved in three layers, later layers winning:

1. ``DEFAULT_SETTINGS`` below
2. the JSON file at ``STATIONBAR_SETTINGS`` (default
   ``~/.config/stationbar/settings.json``)
3. ``STATIONBAR_<KEY>`` environment variables, including anything
   :func:`dotenv.load_dotenv` pulled in from a ``.env`` file
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

from dotenv import load_dotenv

from logger_utils import setup_logger

logger = setup_logger(__name__)

ENV_PREFIX = "STATIONBAR_"
SETTINGS_PATH = os.path.join(
    os.path.expanduser("~"), ".config", "stationbar", "settings.json"
)

DEFAULT_SETTINGS: dict[str, Any] = {
    "username": None,
    "password": None,
    "api_url": "https://radio.example.com/api/v1",
    "control_proxy": None,
    "disable_secure_login": False,
    "request_timeout": 30.0,
    "enable_scrobbling": False,
    "lastfm_user": None,
    "lastfm_password": None,
    "lastfm_api_key": None,
    "lastfm_api_secret": None,
    "lastfm_session_key": None,
    "scrobble_percent": 50,
    "poll_timeout": 1.0,
    "decoder": "ffmpeg",
    "sink_command": "aplay -q -t raw -f S16_LE -r {rate} -c {channels}",
}


@dataclass(frozen=True)
class Settings:
    username: str | None
    password: str | None
    api_url: str
    control_proxy: str | None
    disable_secure_login: bool
    request_timeout: float
    enable_scrobbling: bool
    lastfm_user: str | None
    lastfm_password: str | None
    lastfm_api_key: str | None
    lastfm_api_secret: str | None
    lastfm_session_key: str | None
    scrobble_percent: int
    poll_timeout: float
    decoder: str
    sink_command: str


def _coerce(key: str, raw: Any) -> Any:
    """Convert ``raw`` to the type of ``DEFAULT_SETTINGS[key]``."""

    default = DEFAULT_SETTINGS[key]
    if raw is None:
        return default
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}
    if isinstance(default, int):
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid integer for %s: %r", key, raw)
            return default
    if isinstance(default, float):
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid number for %s: %r", key, raw)
            return default
    if isinstance(raw, str) and not raw.strip():
        return default
    return raw


def read_settings_file(path: str) -> dict[str, Any]:
    """Return the JSON object stored at ``path`` or an empty dict."""

    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Could not read settings file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.error("Settings file %s does not hold a JSON object", path)
        return {}
    unknown = set(data) - set(DEFAULT_SETTINGS)
    if unknown:
        logger.warning("Unknown settings ignored: %s", ", ".join(sorted(unknown)))
    return {k: v for k, v in data.items() if k in DEFAULT_SETTINGS}


def load_settings(
    path: str | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """Build :class:`Settings` from defaults, the settings file and env vars."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    if path is None:
        path = environ.get(ENV_PREFIX + "SETTINGS", SETTINGS_PATH)

    merged = {**DEFAULT_SETTINGS, **read_settings_file(path)}
    for key in DEFAULT_SETTINGS:
        env_value = environ.get(ENV_PREFIX + key.upper())
        if env_value is not None:
            merged[key] = env_value

    values = {f.name: _coerce(f.name, merged.get(f.name)) for f in fields(Settings)}
    return Settings(**values)
