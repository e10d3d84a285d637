"""Project directory detection for kmpack.

A plug-in project directory holds a bundle folder of the same name:

  My Action/
    My Action/
      Keyboard Maestro Action.plist
      Icon.png
      run.applescript

The archive is written next to the bundle folder, inside the project directory.
"""

import logging
from pathlib import Path
from typing import Optional

from kmpack.constants import MANIFEST_NAME

logger = logging.getLogger(__name__)


def is_project_dir(path: Path) -> bool:
    """True if path contains a same-named bundle folder holding a manifest."""
    return (path / path.name / MANIFEST_NAME).is_file()


def find_project_dir(start_path: Optional[Path] = None) -> Path:
    """
    Search upwards from start_path for a plug-in project directory.
    Returns start_path (resolved) if no project directory is found, so that
    the build can report precisely which artifact is missing.
    """
    current = (start_path or Path.cwd()).resolve()

    for parent in [current, *current.parents]:
        if is_project_dir(parent):
            if parent != current:
                logger.debug("Found project directory %s above %s", parent, current)
            return parent

    return current
