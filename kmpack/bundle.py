from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kmpack.constants import (
    ARCHIVE_SUFFIX,
    FILENAME_PART_RE,
    ICON_NAME,
    MANIFEST_NAME,
)
from kmpack.errors import InvalidExtension, InvalidFilename


@dataclass(frozen=True)
class BundleLocation:
    project_dir: Path   # holds the bundle; the archive is written here
    name: str           # basename of project_dir, also the bundle folder name
    source_dir: Path
    manifest_path: Path
    icon_path: Path

    @classmethod
    def from_project_dir(cls, project_dir: Path) -> "BundleLocation":
        project_dir = project_dir.resolve()
        name = project_dir.name
        source_dir = project_dir / name
        return cls(
            project_dir=project_dir,
            name=name,
            source_dir=source_dir,
            manifest_path=source_dir / MANIFEST_NAME,
            icon_path=source_dir / ICON_NAME,
        )

    @property
    def archive_name(self) -> str:
        return archive_name_for(self.name)


def archive_name_for(name: str) -> str:
    """Archive file name: the bundle name with every space removed, plus .zip."""
    return name.replace(" ", "") + ARCHIVE_SUFFIX


def split_script_name(script: str) -> tuple[str, str]:
    """
    Split a referenced script into (filename, extension) on the last dot.

    Only the final path component is considered. A name without a dot yields
    the whole name for both parts, which is how the plug-in loader sees it.
    """
    filename = Path(script).name
    if "." not in filename:
        return filename, filename
    base, _, extension = filename.rpartition(".")
    return base, extension


def filename_ok(part: str) -> bool:
    return FILENAME_PART_RE.fullmatch(part) is not None


def validate_script_name(script: str) -> tuple[str, str]:
    """Return (filename, extension) or raise InvalidFilename / InvalidExtension."""
    base, extension = split_script_name(script)
    if not filename_ok(base):
        raise InvalidFilename(base)
    if not filename_ok(extension):
        raise InvalidExtension(extension)
    return base, extension
