from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from typing import Any

from platformdirs import user_config_dir

APP_NAME = "tokenfetch"
CONFIG_FILENAME = "config.toml"
ENV_CONFIG_PATH = "TOKENFETCH_CONFIG"
DEFAULT_BASE_URL = "http://provider.cluster.local"


class ConfigError(Exception):
    """Config file exists but cannot be used."""


@dataclass
class AppConfig:
    base_url: str = ""
    username: str = ""
    timeout_s: float | None = None


def config_path() -> str:
    override = os.getenv(ENV_CONFIG_PATH, "").strip()
    if override:
        return override
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def default_config() -> AppConfig:
    return AppConfig(base_url="", username="", timeout_s=None)


def _parse_timeout(value: Any, path: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{path}: timeout_s must be a number")
    if value <= 0:
        raise ConfigError(f"{path}: timeout_s must be positive")
    return float(value)


def from_toml(data: dict[str, Any], *, path: str = CONFIG_FILENAME) -> AppConfig:
    # Passwords are never read from disk.
    return AppConfig(
        base_url=str(data.get("base_url") or "").strip(),
        username=str(data.get("username") or "").strip(),
        timeout_s=_parse_timeout(data.get("timeout_s"), path),
    )


def _read(path: str) -> dict[str, Any] | None:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"failed to read {path}: {e}") from e


def load_config() -> AppConfig:
    path = config_path()
    data = _read(path)
    if data is None:
        return default_config()
    return from_toml(data, path=path)


def apply_profile(cfg: AppConfig, profile: str | None) -> AppConfig:
    if not profile:
        return cfg
    path = config_path()
    data = _read(path) or {}
    profiles_raw = data.get("profiles") or {}
    prof = profiles_raw.get(profile) if isinstance(profiles_raw, dict) else None
    if not isinstance(prof, dict):
        raise ConfigError(f"{path}: profile {profile!r} not found")

    overlay = from_toml(prof, path=path)
    return AppConfig(
        base_url=overlay.base_url or cfg.base_url,
        username=overlay.username or cfg.username,
        timeout_s=overlay.timeout_s if overlay.timeout_s is not None else cfg.timeout_s,
    )
