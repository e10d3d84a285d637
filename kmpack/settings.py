"""Settings storage for kmpack.

Global settings are persisted to ~/.kmpack/settings.json. A project may carry
its own overrides in <project-dir>/.kmpack/settings.json.
"""

import json
import os
from pathlib import Path
from typing import Any

from kmpack.constants import APP_NAME

KMPACK_DIR = f".{APP_NAME}"


def get_global_kmpack_dir() -> Path:
    """Return the global kmpack config directory (~/.kmpack/)."""
    home = Path(os.path.expanduser("~"))
    return home / KMPACK_DIR


def get_global_settings_path() -> Path:
    """Return the path to the global settings file (~/.kmpack/settings.json)."""
    return get_global_kmpack_dir() / "settings.json"


def get_local_settings_path(project_dir: Path) -> Path:
    """Return the path to the local settings file (<project-dir>/.kmpack/settings.json)."""
    return project_dir / KMPACK_DIR / "settings.json"


def load_settings(project_dir: Path | None = None) -> dict[str, Any]:
    """Load settings by merging global settings with project-specific overrides.

    If project_dir is provided, local settings in <project-dir>/.kmpack/settings.json
    override global settings in ~/.kmpack/settings.json.
    """
    settings = load_global_settings()

    if project_dir:
        local_settings = load_local_settings(project_dir)
        settings.update(local_settings)

    return settings


def load_global_settings() -> dict[str, Any]:
    """Load settings from the global settings file (~/.kmpack/settings.json)."""
    return _load_file(get_global_settings_path())


def load_local_settings(project_dir: Path) -> dict[str, Any]:
    """Load settings from a local settings file (<project-dir>/.kmpack/settings.json)."""
    return _load_file(get_local_settings_path(project_dir))


def _load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8")
        result = json.loads(content)
    except (json.JSONDecodeError, OSError):
        return {}
    # A settings file holding a bare list or scalar is as good as empty.
    if not isinstance(result, dict):
        return {}
    return result


def save_settings(settings: dict[str, Any]) -> None:
    """Persist settings to the global settings file (~/.kmpack/settings.json).

    The CLI only ever manages global settings. Project overrides are edited
    by hand in the project directory.
    """
    path = get_global_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(settings, indent=2) + "\n",
        encoding="utf-8",
    )
