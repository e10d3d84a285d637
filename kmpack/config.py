"""Build configuration and environment file support for kmpack.

Priority order for every configuration key:
  1. KMPACK_* environment variable (possibly loaded from a .env file)
  2. the key in <project-dir>/.kmpack/settings.json
  3. the key in ~/.kmpack/settings.json
  4. the built-in default

Tool paths may be bare command names (resolved on PATH) or absolute paths.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import dotenv

from kmpack.constants import DEFAULT_ICON_SIZE
from kmpack.settings import KMPACK_DIR, get_global_kmpack_dir, load_settings

logger = logging.getLogger(__name__)

# settings key -> (environment variable, default)
_TOOL_KEYS = {
    "file_path": ("KMPACK_FILE", "file"),
    "plutil_path": ("KMPACK_PLUTIL", "plutil"),
    "plistbuddy_path": ("KMPACK_PLISTBUDDY", "/usr/libexec/PlistBuddy"),
    "identify_path": ("KMPACK_IDENTIFY", "identify"),
    "zip_path": ("KMPACK_ZIP", "zip"),
}
_ICON_SIZE_KEY = ("icon_size", "KMPACK_ICON_SIZE")
_STRICT_KEY = ("strict", "KMPACK_STRICT")

_TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BuildConfig:
    """Immutable configuration for a single build run."""

    file_path: str = "file"
    plutil_path: str = "plutil"
    plistbuddy_path: str = "/usr/libexec/PlistBuddy"
    identify_path: str = "identify"
    zip_path: str = "zip"
    icon_size: int = DEFAULT_ICON_SIZE
    strict: bool = False


def load_env_file(project_dir: Path | None = None) -> None:
    """Load environment variables from a .env file, if one is found.

    Search order:
      1. <project-dir>/.kmpack/.env
      2. <project-dir>/.env
      3. ~/.kmpack/.env

    Variables already set in the environment are not overwritten.
    """
    candidates: list[Path] = []

    if project_dir:
        candidates.append(project_dir / KMPACK_DIR / ".env")
        candidates.append(project_dir / ".env")

    candidates.append(get_global_kmpack_dir() / ".env")

    for candidate in candidates:
        if candidate.is_file():
            logger.debug("Loading environment from %s", candidate)
            # override=False means existing env vars are not overwritten
            dotenv.load_dotenv(candidate, override=False)
            break


def _lookup(settings: dict[str, Any], key: str, env_var: str) -> Any:
    value = os.environ.get(env_var)
    if value and value.strip():
        return value.strip()
    return settings.get(key)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_icon_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        logger.warning(
            "Ignoring invalid icon_size %r, using %d", value, DEFAULT_ICON_SIZE
        )
        return DEFAULT_ICON_SIZE
    if size <= 0:
        logger.warning(
            "Ignoring non-positive icon_size %d, using %d", size, DEFAULT_ICON_SIZE
        )
        return DEFAULT_ICON_SIZE
    return size


def load_config(project_dir: Path | None = None, strict: bool | None = None) -> BuildConfig:
    """Resolve the BuildConfig for a project.

    ``strict`` from the command line wins over both the environment and settings.
    """
    load_env_file(project_dir)
    settings = load_settings(project_dir)

    tool_paths: dict[str, str] = {}
    for key, (env_var, default) in _TOOL_KEYS.items():
        value = _lookup(settings, key, env_var)
        tool_paths[key] = str(value).strip() if value else default

    size_value = _lookup(settings, *_ICON_SIZE_KEY)
    icon_size = (
        DEFAULT_ICON_SIZE if size_value is None else _as_icon_size(size_value)
    )

    if strict is None:
        strict = _as_bool(_lookup(settings, *_STRICT_KEY) or False)

    config = BuildConfig(icon_size=icon_size, strict=strict, **tool_paths)
    logger.debug("Resolved build config: %s", config)
    return config


def config_keys() -> list[str]:
    """The keys `config set` accepts, one per BuildConfig field."""
    return [f.name for f in fields(BuildConfig)]


def parse_setting(key: str, value: str) -> Any:
    """Convert a command line value into what is stored in settings.json.

    Raises ValueError for keys no BuildConfig field reads and for values the
    field cannot use.
    """
    if key not in config_keys():
        raise ValueError(
            f"Unknown key '{key}'. Valid keys: {', '.join(config_keys())}"
        )
    if key == _ICON_SIZE_KEY[0]:
        try:
            size = int(value)
        except ValueError:
            size = 0
        if size <= 0:
            raise ValueError(f"icon_size must be a positive integer, got '{value}'")
        return size
    if key == _STRICT_KEY[0]:
        return _as_bool(value)
    return value.strip()
