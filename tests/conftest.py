"""Shared fixtures: an isolated home directory, bundle projects and fake tools."""

import os
import zipfile
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from kmpack.constants import ICON_NAME, MANIFEST_NAME
from kmpack.errors import ToolError
from kmpack.tools import PlistFormat, Toolbox

_MANIFEST_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
	<key>Name</key>
	<string>{name}</string>
	<key>Script</key>
	<string>{script}</string>
</dict>
</plist>
"""


class FakePlistTool:
    def __init__(self) -> None:
        self.file_path = "file"
        self.plutil_path = "plutil"
        self.plistbuddy_path = "/usr/libexec/PlistBuddy"
        self.missing_validation_tool: Optional[str] = None
        self.can_read_keys = True
        self.format = PlistFormat.XML
        self.lint_errors: list[str] = []
        self.values: dict[str, str] = {"Script": "run.applescript"}
        self.convert_error: Optional[str] = None
        self.converted: list[Path] = []

    def detect_format(self, path: Path) -> PlistFormat:
        return self.format

    def convert_to_xml(self, path: Path) -> None:
        if self.convert_error:
            raise ToolError("plutil", self.convert_error)
        self.converted.append(path)
        self.format = PlistFormat.XML

    def lint(self, path: Path) -> list[str]:
        return list(self.lint_errors)

    def get_value(self, path: Path, key: str) -> Optional[str]:
        return self.values.get(key)


class FakeImageTool:
    def __init__(self) -> None:
        self.identify_path = "identify"
        self.available = True
        self.format = "PNG"
        self.dimensions = (64, 64)

    def identify_format(self, path: Path) -> str:
        return self.format

    def identify_dimensions(self, path: Path) -> tuple[int, int]:
        return self.dimensions


class FakeArchiver:
    """Writes a real zip with the same entry layout as `zip -r`."""

    def __init__(self) -> None:
        self.zip_path = "zip"
        self.fail_with: Optional[str] = None
        self.calls: list[tuple[Path, str, str, tuple[str, ...]]] = []

    def archive(
        self, project_dir: Path, name: str, archive_name: str, excludes: Iterable[str] = ()
    ) -> Path:
        excludes = tuple(excludes)
        self.calls.append((project_dir, name, archive_name, excludes))
        if self.fail_with:
            raise ToolError("zip", self.fail_with)

        archive_path = project_dir / archive_name
        with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zipf:
            for root, dirs, files in os.walk(project_dir / name):
                for file in sorted(files):
                    if file in excludes:
                        continue
                    file_path = Path(root) / file
                    zipf.write(file_path, file_path.relative_to(project_dir))
        return archive_path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep ~/.kmpack and KMPACK_* variables of the developer out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in list(os.environ):
        if var.startswith("KMPACK_"):
            monkeypatch.delenv(var)
    return home


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating <tmp>/<name>/<name>/ with manifest, icon and script."""

    def _make(
        name: str = "MyAction",
        *,
        script: str = "run.applescript",
        manifest: bool = True,
        icon: bool = True,
        script_file: bool = True,
        ds_store: bool = True,
    ) -> Path:
        project = tmp_path / name
        source = project / name
        source.mkdir(parents=True)
        if manifest:
            (source / MANIFEST_NAME).write_text(
                _MANIFEST_TEMPLATE.format(name=name, script=script), encoding="utf-8"
            )
        if icon:
            (source / ICON_NAME).write_bytes(b"\x89PNG\r\n\x1a\n")
        if script_file:
            (source / script).write_text('display dialog "hi"\n', encoding="utf-8")
        if ds_store:
            (source / ".DS_Store").write_bytes(b"\x00\x00\x00\x01Bud1")
        return project

    return _make


@pytest.fixture
def toolbox() -> Toolbox:
    return Toolbox(plist=FakePlistTool(), image=FakeImageTool(), archiver=FakeArchiver())
