"""
Wrappers around the external tools kmpack delegates to.

Each wrapper owns the command line of its tool and the parsing of its output,
so the pipeline only ever sees typed values:

1.  **PlistTool** (`file`, `plutil`, `PlistBuddy`): format detection, in-place
    conversion to XML, lint, and single key lookup.
2.  **ImageTool** (ImageMagick `identify`): image format and pixel dimensions.
3.  **Archiver** (`zip`): recursive archive of the bundle folder.

Tool failures that leave no usable output raise `ToolError`; the pipeline
decides which check that failure belongs to.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from kmpack.config import BuildConfig
from kmpack.errors import ToolError

logger = logging.getLogger(__name__)


class PlistFormat(str, Enum):
    BINARY = "binary"
    XML = "xml"
    OTHER = "other"


def tool_available(command: str) -> bool:
    """True if command is an executable on PATH or an executable path."""
    return shutil.which(command) is not None


def run_tool(
    cmd: list[str], cwd: Optional[Path] = None
) -> "subprocess.CompletedProcess[str]":
    """Run a tool to completion and return its result, whatever the exit code."""
    logger.debug("Running %s", cmd)
    try:
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
    except OSError as e:
        raise ToolError(cmd[0], str(e)) from e
    logger.debug("%s exited with %d", cmd[0], result.returncode)
    if result.stderr:
        logger.debug("%s stderr: %s", cmd[0], result.stderr.strip())
    return result


def _output_text(result: "subprocess.CompletedProcess[str]") -> str:
    return "\n".join(
        part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
    )


def parse_file_description(description: str) -> PlistFormat:
    """Map the one-line `file --brief` description onto a PlistFormat.

    `file` reports "Apple binary property list" for binary plists and
    "XML 1.0 document text, ..." (or "XML 1.0 document, ...") for XML ones.
    """
    if "binary" in description.lower():
        return PlistFormat.BINARY
    if "XML" in description:
        return PlistFormat.XML
    return PlistFormat.OTHER


def strip_path_prefix(line: str, path: Path) -> str:
    """Drop the leading "<path>:" that plutil puts in front of every message."""
    prefix = f"{path}:"
    if line.startswith(prefix):
        return line[len(prefix):].strip()
    return line.strip()


class PlistTool:
    def __init__(self, file_path: str, plutil_path: str, plistbuddy_path: str):
        self.file_path = file_path
        self.plutil_path = plutil_path
        self.plistbuddy_path = plistbuddy_path

    @property
    def missing_validation_tool(self) -> Optional[str]:
        """
        Format detection, conversion and lint need both `plutil` and `file`.
        Returns the first of them that cannot be found, or None.
        """
        for command in (self.plutil_path, self.file_path):
            if not tool_available(command):
                return command
        return None

    @property
    def can_read_keys(self) -> bool:
        return tool_available(self.plistbuddy_path)

    def detect_format(self, path: Path) -> PlistFormat:
        result = run_tool([self.file_path, "--brief", str(path)])
        if result.returncode != 0:
            raise ToolError("file", _output_text(result) or f"exit {result.returncode}")
        description = result.stdout.strip()
        logger.debug("file reports %s as %r", path, description)
        return parse_file_description(description)

    def convert_to_xml(self, path: Path) -> None:
        """Rewrite the plist at path in place using the XML encoding."""
        result = run_tool([self.plutil_path, "-convert", "xml1", str(path)])
        if result.returncode != 0:
            raise ToolError("plutil", _output_text(result) or f"exit {result.returncode}")

    def lint(self, path: Path) -> list[str]:
        """Return plutil's error messages for path; an empty list means valid."""
        result = run_tool([self.plutil_path, "-lint", str(path)])
        if result.returncode == 0:
            return []

        errors = [
            strip_path_prefix(line, path)
            for line in _output_text(result).splitlines()
            if line.strip()
        ]
        return errors or [f"plutil -lint exited with {result.returncode}"]

    def get_value(self, path: Path, key: str) -> Optional[str]:
        """Return the string value of a top-level key, or None if it is absent."""
        result = run_tool([self.plistbuddy_path, "-c", f"Print :{key}", str(path)])
        if result.returncode != 0:
            # PlistBuddy reports a missing entry as a nonzero exit
            logger.debug("PlistBuddy could not read %s: %s", key, _output_text(result))
            return None
        value = result.stdout.strip()
        return value or None


class ImageTool:
    def __init__(self, identify_path: str):
        self.identify_path = identify_path

    @property
    def available(self) -> bool:
        return tool_available(self.identify_path)

    def _identify(self, path: Path, fmt: str) -> str:
        # [0] restricts multi-frame images to their first frame
        result = run_tool(
            [self.identify_path, "-ping", "-format", fmt, f"{path}[0]"]
        )
        if result.returncode != 0:
            raise ToolError("identify", _output_text(result) or f"exit {result.returncode}")
        return result.stdout.strip()

    def identify_format(self, path: Path) -> str:
        return self._identify(path, "%m")

    def identify_dimensions(self, path: Path) -> tuple[int, int]:
        output = self._identify(path, "%w %h")
        parts = output.split()
        if len(parts) != 2:
            raise ToolError("identify", f"unexpected dimensions output {output!r}")
        try:
            return int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ToolError(
                "identify", f"unexpected dimensions output {output!r}"
            ) from e


class Archiver:
    def __init__(self, zip_path: str):
        self.zip_path = zip_path

    def archive(
        self,
        project_dir: Path,
        name: str,
        archive_name: str,
        excludes: Iterable[str] = (),
    ) -> Path:
        """
        Zip project_dir/name recursively into project_dir/archive_name.
        Entries are stored as "<name>/..." and files matching any exclude name
        are left out at every depth.
        """
        archive_path = project_dir / archive_name
        # zip updates an existing archive in place; start from scratch instead
        if archive_path.exists():
            logger.debug("Removing stale archive %s", archive_path)
            archive_path.unlink()

        cmd = [self.zip_path, "-r", "-q", archive_name, name]
        patterns = [f"*/{exclude}" for exclude in excludes]
        if patterns:
            cmd.append("-x")
            cmd.extend(patterns)

        result = run_tool(cmd, cwd=project_dir)
        if result.returncode != 0:
            raise ToolError("zip", _output_text(result) or f"exit {result.returncode}")
        return archive_path


@dataclass(frozen=True)
class Toolbox:
    plist: PlistTool
    image: ImageTool
    archiver: Archiver

    @classmethod
    def from_config(cls, config: BuildConfig) -> "Toolbox":
        return cls(
            plist=PlistTool(
                file_path=config.file_path,
                plutil_path=config.plutil_path,
                plistbuddy_path=config.plistbuddy_path,
            ),
            image=ImageTool(identify_path=config.identify_path),
            archiver=Archiver(zip_path=config.zip_path),
        )
