"""The validate-and-package pipeline for Keyboard Maestro plug-in actions.

Stages run in a fixed order and the first failing stage raises a BuildError,
which aborts the run. A stage whose optional tool is missing is skipped with a
warning instead; the report then flags the run as reduced assurance. Strict
mode turns those skips into ToolUnavailable failures.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from kmpack.bundle import BundleLocation, validate_script_name
from kmpack.config import BuildConfig
from kmpack.console import Console
from kmpack.constants import ICON_FORMAT, METADATA_EXCLUDES, SCRIPT_KEY
from kmpack.errors import (
    ArchiveError,
    ConversionFailed,
    InvalidIconDimensions,
    InvalidIconFormat,
    ManifestSyntaxError,
    MissingArtifact,
    MissingScriptKey,
    ScriptFileMissing,
    ToolError,
    ToolUnavailable,
    UnsupportedPlatform,
)
from kmpack.tools import PlistFormat, Toolbox

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    PASSED = "passed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageOutcome:
    stage: str
    status: StageStatus
    message: str


@dataclass(frozen=True)
class BuildReport:
    location: BundleLocation
    outcomes: tuple[StageOutcome, ...]
    archive_path: Optional[Path] = None

    @property
    def skipped(self) -> list[StageOutcome]:
        return [o for o in self.outcomes if o.status == StageStatus.SKIPPED]

    @property
    def reduced_assurance(self) -> bool:
        """True when at least one check was skipped for lack of a tool."""
        return bool(self.skipped)


@dataclass(frozen=True)
class BuildContext:
    """Everything a stage may read. Stages never mutate it."""

    location: BundleLocation
    config: BuildConfig
    tools: Toolbox
    console: Console
    platform: str = sys.platform

    @classmethod
    def create(
        cls,
        project_dir: Path,
        config: BuildConfig,
        console: Optional[Console] = None,
        tools: Optional[Toolbox] = None,
        platform: Optional[str] = None,
    ) -> "BuildContext":
        return cls(
            location=BundleLocation.from_project_dir(project_dir),
            config=config,
            tools=tools or Toolbox.from_config(config),
            console=console or Console(),
            platform=platform or sys.platform,
        )


def _passed(stage: str, message: str) -> StageOutcome:
    return StageOutcome(stage=stage, status=StageStatus.PASSED, message=message)


def _skip(context: BuildContext, stage: str, reason: str, tool: str) -> StageOutcome:
    if context.config.strict:
        raise ToolUnavailable(tool, f"{reason} ({tool} not found, strict mode)")
    context.console.warning(reason)
    logger.info("Skipping %s check: %s", stage, reason)
    return StageOutcome(stage=stage, status=StageStatus.SKIPPED, message=reason)


# -------------------------
# Stages
# -------------------------


def check_platform(context: BuildContext) -> StageOutcome:
    if not context.platform.startswith("darwin"):
        raise UnsupportedPlatform(context.platform)
    context.console.success("All good, continue")
    return _passed("platform", context.platform)


def report_paths(context: BuildContext) -> StageOutcome:
    loc = context.location
    context.console.debug(f"Source directory is: {loc.name}")
    context.console.debug(f"Full source path is: {loc.source_dir}")
    context.console.debug(f"Plist file is: {loc.manifest_path}")
    return _passed("paths", str(loc.source_dir))


def check_artifacts(context: BuildContext) -> StageOutcome:
    loc = context.location
    if not loc.manifest_path.exists():
        raise MissingArtifact("Plist")
    if not loc.icon_path.exists():
        raise MissingArtifact("Icon")
    return _passed("artifacts", "Plist and Icon present")


def check_manifest_format(context: BuildContext, convert: bool = True) -> StageOutcome:
    """Ensure the manifest is XML, converting a binary one in place when allowed."""
    console = context.console
    manifest = context.location.manifest_path
    console.debug("Checking plist file format...")

    try:
        fmt = context.tools.plist.detect_format(manifest)
    except ToolError as e:
        raise ConversionFailed(e.details) from e

    if fmt == PlistFormat.BINARY:
        if not convert:
            console.warning("Binary plist, build will convert it to XML")
            return _passed("manifest-format", "binary plist left unconverted")
        console.warning("Binary plist, will attempt to convert")
        try:
            context.tools.plist.convert_to_xml(manifest)
        except ToolError as e:
            raise ConversionFailed(e.details) from e
        console.success("Conversion good, continue")
        return _passed("manifest-format", "converted binary plist to XML")

    if fmt == PlistFormat.XML:
        console.success("Plist is XML, continue")
        return _passed("manifest-format", "XML plist")

    # Anything else is left for the lint to judge
    logger.info("Unrecognised plist format for %s", manifest)
    return _passed("manifest-format", "unrecognised format, deferred to lint")


def check_manifest_syntax(context: BuildContext) -> StageOutcome:
    context.console.debug("checking the plist file for syntax errors...")
    errors = context.tools.plist.lint(context.location.manifest_path)
    if errors:
        raise ManifestSyntaxError(errors)
    context.console.success("No syntax errors, continue")
    return _passed("manifest-syntax", "plutil -lint OK")


def require_image_tool(context: BuildContext) -> None:
    image = context.tools.image
    if not image.available:
        raise ToolUnavailable(
            image.identify_path, "Please install imagemagick - identify"
        )


def check_icon_format(context: BuildContext) -> StageOutcome:
    context.console.debug("Checking Icon file type...")
    try:
        fmt = context.tools.image.identify_format(context.location.icon_path)
    except ToolError as e:
        raise InvalidIconFormat(e.details or "unknown", ICON_FORMAT) from e
    if fmt != ICON_FORMAT:
        raise InvalidIconFormat(fmt, ICON_FORMAT)
    context.console.success("PNG file, continue")
    return _passed("icon-format", fmt)


def check_icon_dimensions(context: BuildContext) -> StageOutcome:
    console = context.console
    size = context.config.icon_size
    console.debug("Checking Icon file dimensions...")

    width, height = context.tools.image.identify_dimensions(context.location.icon_path)
    console.debug(f"Icon width: {width}")
    console.debug(f"Icon height: {height}")

    if width != size or height != size:
        raise InvalidIconDimensions(width, height, size)
    console.success("Correct dimensions, continue")
    return _passed("icon-dimensions", f"{width}x{height}")


def check_script_reference(context: BuildContext) -> StageOutcome:
    console = context.console
    loc = context.location

    script = context.tools.plist.get_value(loc.manifest_path, SCRIPT_KEY)
    if not script:
        raise MissingScriptKey(SCRIPT_KEY)

    console.debug(f"Script: {script}")
    console.debug(f"Checking {script} exists...")
    # Only files under source_dir end up in the archive
    script_path = (loc.source_dir / script).resolve()
    if not script_path.is_relative_to(loc.source_dir) or not script_path.exists():
        raise ScriptFileMissing(script)

    filename, extension = validate_script_name(script)
    console.debug(f"extension: {extension}")
    console.debug(f"filename: {filename}")
    console.success("Filename is fine.")
    return _passed("script", script)


def create_archive(context: BuildContext) -> tuple[StageOutcome, Path]:
    loc = context.location
    context.console.debug(f"zip filename: {loc.archive_name}")
    try:
        archive_path = context.tools.archiver.archive(
            loc.project_dir, loc.name, loc.archive_name, METADATA_EXCLUDES
        )
    except ToolError as e:
        raise ArchiveError(e.details) from e
    context.console.header("Zipped and completed.")
    return _passed("archive", str(archive_path)), archive_path


# -------------------------
# Driver
# -------------------------


def run(context: BuildContext, package: bool = True) -> BuildReport:
    """
    Run every check in order and, when package is set, build the archive.

    Raises the first BuildError encountered. With package unset the manifest
    is never rewritten and no archive is produced.
    """
    tools = context.tools
    outcomes: list[StageOutcome] = []

    outcomes.append(check_platform(context))
    outcomes.append(report_paths(context))
    outcomes.append(check_artifacts(context))

    missing = tools.plist.missing_validation_tool
    if missing is None:
        outcomes.append(check_manifest_format(context, convert=package))
        outcomes.append(check_manifest_syntax(context))
    else:
        outcomes.append(_skip(context, "manifest", "Cannot validate plist", missing))

    require_image_tool(context)
    outcomes.append(check_icon_format(context))
    outcomes.append(check_icon_dimensions(context))

    if tools.plist.can_read_keys:
        outcomes.append(check_script_reference(context))
    else:
        outcomes.append(
            _skip(
                context,
                "script",
                "PlistBuddy missing, cannot double check script name",
                tools.plist.plistbuddy_path,
            )
        )

    archive_path = None
    if package:
        outcome, archive_path = create_archive(context)
        outcomes.append(outcome)

    return BuildReport(
        location=context.location,
        outcomes=tuple(outcomes),
        archive_path=archive_path,
    )
