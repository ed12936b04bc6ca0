"""Settings for HostelPulse: config.yaml for the property list and tuning, .env for secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from hostelpulse.errors import ConfigError

CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "HOSTELPULSE_CONFIG"
DEFAULT_DIRECT_MARKERS = ["website", "sitio web"]


def _find_project_root() -> Path:
    """Nearest ancestor of this package holding config.yaml, else the cwd."""
    here = Path(__file__).resolve()
    for parent in list(here.parents)[:10]:
        if (parent / CONFIG_FILE).exists():
            return parent
    return Path.cwd()


PROJECT_ROOT = _find_project_root()


def config_path() -> Path:
    """``$HOSTELPULSE_CONFIG`` when set, else config.yaml at the project root."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else PROJECT_ROOT / CONFIG_FILE


def _check_properties(raw: Any) -> None:
    if raw is None:
        return
    if not isinstance(raw, list):
        raise ConfigError("'properties' must be a list of {name, id} entries")
    names = set()
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("id"):
            raise ConfigError(f"Property entry needs a name and an id: {entry!r}")
        if entry["name"] in names:
            raise ConfigError(f"Duplicate property name: {entry['name']}")
        names.add(entry["name"])


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Read and sanity-check a settings file. An empty file gives empty settings."""
    path = path or config_path()
    if not path.exists():
        raise ConfigError(f"{CONFIG_FILE} not found at {path}")
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    _check_properties(data.get("properties"))
    return data


def reload(path: Path | None = None) -> dict[str, Any]:
    """Re-read settings in place; modules holding ``settings`` see the new values."""
    fresh = load_settings(path)
    settings.clear()
    settings.update(fresh)
    return settings


def get_env(key: str, default: str | None = None) -> str | None:
    """Environment lookup that treats an empty value (``KEY=`` in .env) as unset."""
    return os.environ.get(key) or default


def get_database_url() -> str:
    """``DATABASE_URL``, defaulting to hostelpulse.db at the project root."""
    return get_env("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'hostelpulse.db'}")


def get_properties() -> dict[str, str]:
    """Return the configured properties as ``{display name: Cloudbeds id}``.

    Order follows config.yaml, which is also the batch fetch order.
    """
    return {
        str(prop["name"]): str(prop["id"])
        for prop in settings.get("properties") or []
    }


def get_direct_booking_markers() -> list[str]:
    markers = settings.get("direct_booking_markers") or DEFAULT_DIRECT_MARKERS
    return [m.lower() for m in markers]


def get_section(name: str) -> dict[str, Any]:
    """Return a top-level config section, or an empty dict."""
    return settings.get(name) or {}


load_dotenv(PROJECT_ROOT / ".env")
settings: dict[str, Any] = load_settings()
