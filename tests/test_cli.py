import json
import sys
import zipfile
from pathlib import Path
from typing import Callable
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from kmpack.main import cli
from kmpack.tools import Toolbox


@pytest.fixture
def fake_darwin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "platform", "darwin")


def _invoke(toolbox: Toolbox, args: list[str]):
    runner = CliRunner()
    with patch("kmpack.pipeline.Toolbox.from_config", return_value=toolbox):
        return runner.invoke(cli, args)


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "kmpack" in result.output
    assert "build" in result.output
    assert "check" in result.output
    assert "config" in result.output


@pytest.mark.usefixtures("fake_darwin")
def test_build_valid_bundle(make_project: Callable[..., Path], toolbox: Toolbox) -> None:
    project = make_project("MyAction")

    result = _invoke(toolbox, ["build", str(project)])

    assert result.exit_code == 0, result.output
    assert "Zipped and completed." in result.output
    archive = project / "MyAction.zip"
    assert archive.exists()
    with zipfile.ZipFile(archive) as zipf:
        names = zipf.namelist()
    assert "MyAction/run.applescript" in names
    assert not any(n.endswith(".DS_Store") for n in names)


@pytest.mark.usefixtures("fake_darwin")
def test_no_arguments_builds_current_directory(
    make_project: Callable[..., Path],
    toolbox: Toolbox,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    project = make_project("MyAction")
    monkeypatch.chdir(project)

    result = _invoke(toolbox, [])

    assert result.exit_code == 0, result.output
    assert (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_project_dir_without_subcommand(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("My Action")

    result = _invoke(toolbox, [str(project)])

    assert result.exit_code == 0, result.output
    assert (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_wrong_icon_dimensions(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction")
    toolbox.image.dimensions = (128, 128)

    result = _invoke(toolbox, ["build", str(project)])

    assert result.exit_code == 1
    assert "Error: Incorrect Icon file dimensions" in result.output
    assert not (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_script_name_with_space(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction", script="run script.txt")
    toolbox.plist.values = {"Script": "run script.txt"}

    result = _invoke(toolbox, ["build", str(project)])

    assert result.exit_code == 1
    assert "filename contains invalid characters" in result.output
    assert not (project / "MyAction.zip").exists()


def test_build_refuses_other_platforms(
    make_project: Callable[..., Path],
    toolbox: Toolbox,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys, "platform", "linux")
    project = make_project("MyAction")

    result = _invoke(toolbox, ["build", str(project)])

    assert result.exit_code == 1
    assert "only runs on macOS" in result.output


@pytest.mark.usefixtures("fake_darwin")
def test_reduced_assurance_warning(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction")
    toolbox.plist.can_read_keys = False

    result = _invoke(toolbox, ["build", str(project)])

    assert result.exit_code == 0, result.output
    assert "PlistBuddy missing" in result.output
    assert "Reduced assurance: skipped script check(s)" in result.output


@pytest.mark.usefixtures("fake_darwin")
def test_strict_flag(make_project: Callable[..., Path], toolbox: Toolbox) -> None:
    project = make_project("MyAction")
    toolbox.plist.missing_validation_tool = "plutil"

    result = _invoke(toolbox, ["build", "--strict", str(project)])

    assert result.exit_code == 1
    assert "strict mode" in result.output
    assert not (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_check_does_not_package(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction")

    result = _invoke(toolbox, ["check", str(project)])

    assert result.exit_code == 0, result.output
    assert "All checks passed." in result.output
    assert toolbox.archiver.calls == []
    assert not (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_quiet_hides_progress(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction")

    result = _invoke(toolbox, ["--quiet", "build", str(project)])

    assert result.exit_code == 0, result.output
    assert "Checking Icon file type" not in result.output
    assert (project / "MyAction.zip").exists()


def test_config_set_get_list(isolated_home: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "list"])
    assert result.exit_code == 0
    assert "icon_size: 64" in result.output
    assert "plistbuddy_path: /usr/libexec/PlistBuddy" in result.output
    assert "strict: False" in result.output

    result = runner.invoke(cli, ["config", "set", "icon_size", "128"])
    assert result.exit_code == 0
    assert "Set global icon_size to 128" in result.output
    stored = json.loads((isolated_home / ".kmpack" / "settings.json").read_text())
    assert stored == {"icon_size": 128}

    result = runner.invoke(cli, ["config", "set", "identify_path", "/opt/bin/identify"])
    assert result.exit_code == 0

    result = runner.invoke(cli, ["config", "get", "identify_path"])
    assert result.exit_code == 0
    assert "/opt/bin/identify" in result.output

    result = runner.invoke(cli, ["config", "get", "missing"])
    assert "Key 'missing' not found." in result.output

    result = runner.invoke(cli, ["config", "list"])
    assert "icon_size: 128" in result.output


def test_config_shows_environment_overrides(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KMPACK_ZIP", "/opt/bin/zip")
    monkeypatch.setenv("KMPACK_STRICT", "yes")
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "get", "zip_path"])
    assert result.exit_code == 0
    assert result.output.strip() == "/opt/bin/zip"

    result = runner.invoke(cli, ["config", "list"])
    assert "zip_path: /opt/bin/zip" in result.output
    assert "strict: True" in result.output


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (["icon_sise", "32"], "Unknown key 'icon_sise'"),
        (["icon_size", "large"], "icon_size must be a positive integer"),
        (["icon_size", "0"], "icon_size must be a positive integer"),
    ],
)
def test_config_set_rejects_unusable_settings(
    isolated_home: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    args: list[str],
    message: str,
) -> None:
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "set", *args])

    assert result.exit_code == 2
    assert message in result.output
    assert not (isolated_home / ".kmpack" / "settings.json").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_strict_before_default_command(
    make_project: Callable[..., Path],
    toolbox: Toolbox,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    project = make_project("MyAction")
    monkeypatch.chdir(project)
    toolbox.plist.missing_validation_tool = "plutil"

    result = _invoke(toolbox, ["--strict"])

    assert result.exit_code == 1, result.output
    assert "strict mode" in result.output
    assert not (project / "MyAction.zip").exists()


@pytest.mark.usefixtures("fake_darwin")
def test_strict_with_project_dir_and_no_subcommand(
    make_project: Callable[..., Path], toolbox: Toolbox
) -> None:
    project = make_project("MyAction")
    toolbox.plist.missing_validation_tool = "file"

    result = _invoke(toolbox, ["--strict", str(project)])

    assert result.exit_code == 1, result.output
    assert "(file not found, strict mode)" in result.output
