"""Tests for the nvs command line."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import SAMPLE_INDEX, MockDistServer
from nvs_cli.cli import build_parser, main
from nvs_core import NvsApp


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, dist_server: MockDistServer) -> MockDistServer:
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("NVS_TIMEOUT", "NVS_INSECURE", "NVS_VERIFY_CHECKSUMS", "NVS_POINTER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NVS_MIRROR", dist_server.url)
    dist_server.add_json("/index.json", SAMPLE_INDEX)
    return dist_server


def test_parser_aliases() -> None:
    parser = build_parser()
    args = parser.parse_args(["rm", "18.17.0"])
    assert args.command == "rm"
    assert args.version == "18.17.0"
    args = parser.parse_args(["--no-verify", "install", "20", "--os", "windows", "--force"])
    assert args.verify_checksums == "false"
    assert args.target_os == "windows"
    assert args.force is True


def test_install_list_use_current(
    cli_env: MockDistServer, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    descriptor = NvsApp(root=tmp_path / "scratch", env={}).describe("20.1.0")
    cli_env.publish_release(tmp_path, "20.1.0", descriptor.filename, descriptor.archive_format)

    assert main(["install", "20"]) == 0
    out = capsys.readouterr().out
    assert "[nvs:install] installed 20.1.0" in out

    assert main(["current"]) == 0
    assert "[nvs:current] no version currently selected" in capsys.readouterr().out

    assert main(["use", "20"]) == 0
    assert "[nvs:use] now using Node.js 20.1.0" in capsys.readouterr().out

    assert main(["ls"]) == 0
    assert "[nvs:list] * 20.1.0 (current)" in capsys.readouterr().out

    assert main(["current"]) == 0
    assert "[nvs:current] 20.1.0" in capsys.readouterr().out


def test_errors_map_to_exit_code(cli_env: MockDistServer, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["use", "16.0.0"]) == 1
    assert "[nvs:use] error: version 16.0.0 is not installed" in capsys.readouterr().out

    assert main(["install", "99"]) == 1
    assert "[nvs:install] error: version '99' not found" in capsys.readouterr().out


def test_uninstall_missing_is_not_an_error(cli_env: MockDistServer, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["uninstall", "1.2.3"]) == 0
    assert "not installed" in capsys.readouterr().out


def test_ls_remote(cli_env: MockDistServer, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["ls-remote", "--lts"]) == 0
    out = capsys.readouterr().out
    assert "[nvs:ls-remote] v18.17.0 (LTS: Hydrogen)" in out
    assert "v20.1.0" not in out


def test_invalid_timeout_reports_error(cli_env: MockDistServer, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--timeout", "soon", "list"]) == 1
    assert "[nvs] error: timeout must be a number" in capsys.readouterr().out


def test_bad_arch_reports_error(cli_env: MockDistServer, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["install", "18.17.0", "--arch", "arm/v7"]) == 1
    assert "[nvs:install] error: unsupported architecture: 'arm/v7'" in capsys.readouterr().out
