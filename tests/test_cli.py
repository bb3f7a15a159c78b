from __future__ import annotations

import logging
import threading
from pathlib import Path

import pytest
from click.testing import CliRunner

from pxenet.cli import main
from pxenet.db import DEFAULTS
from pxenet.menu import default_catalog
from pxenet.server import BootServer, get_active_server

from .helpers import populate_http_root


@pytest.fixture
def runner() -> CliRunner:
    env = {key: None for key in DEFAULTS}
    env.update({f"PXENET_{key}": None for key in DEFAULTS})
    return CliRunner(env=env)


def test_render_prints_script(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "render"])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("#!ipxe\n")
    assert "set base-url http://10.0.0.5" in result.output


def test_render_uses_server_address_option(runner: CliRunner, tmp_path: Path) -> None:
    out = tmp_path / "boot.ipxe"
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "--server-address", "10.9.8.7",
                                  "render", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "set base-url http://10.9.8.7" in out.read_text(encoding="utf-8")


def test_check_fails_until_files_exist(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "check"])
    assert result.exit_code == 1
    assert "FAILED" in result.output

    populate_http_root(tmp_path / "http_root", default_catalog())
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "check"])
    assert result.exit_code == 0, result.output
    assert "OK: 4 targets" in result.output


def test_init_then_render_from_catalog_file(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "init"])
    assert result.exit_code == 0, result.output
    for name in ("http_root", "tftp_root", "state", "catalog.toml", "config.toml"):
        assert (tmp_path / name).exists(), name
    assert 'CATALOG_FILE = "catalog.toml"' in (tmp_path / "config.toml").read_text(encoding="utf-8")

    catalog = tmp_path / "catalog.toml"
    catalog.write_text(catalog.read_text(encoding="utf-8").replace(
        'title = "Select an operating system"', 'title = "Lab boot"'), encoding="utf-8")
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "render"])
    assert "menu Lab boot" in result.output

    result = runner.invoke(main, ["--config-dir", str(tmp_path), "init"])
    assert "Keeping existing" in result.output


def test_invalid_config_is_a_clean_error(runner: CliRunner, tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text('SERVER_ADDRESS = "nope"\n', encoding="utf-8")
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "render"])
    assert result.exit_code == 1
    assert "SERVER_ADDRESS" in result.output


DISABLED = {"ENABLE_DHCP": "false", "ENABLE_TFTP": "false", "ENABLE_HTTP": "false"}


@pytest.fixture
def isolated_boot(monkeypatch: pytest.MonkeyPatch):
    """Undo the process-wide state a boot sequence leaves behind."""
    monkeypatch.setattr("pxenet.boot.boot._STATE", None)
    monkeypatch.setattr("pxenet.db.db.DB_FILE", None)
    logger = logging.getLogger("pxenet")
    handlers, propagate, level = list(logger.handlers), logger.propagate, logger.level
    yield
    for handler in logger.handlers[:]:
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.propagate, logger.level = propagate, level


def test_serve_runs_until_interrupted(runner: CliRunner, tmp_path: Path,
                                      monkeypatch: pytest.MonkeyPatch, isolated_boot) -> None:
    seen = {}
    original_wait = BootServer.wait

    def wait_once(self, event=None):
        seen["running"] = self.running
        seen["active"] = get_active_server() is self
        done = threading.Event()
        done.set()
        original_wait(self, done)

    monkeypatch.setattr(BootServer, "wait", wait_once)
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "serve"], env=DISABLED)
    assert result.exit_code == 0, result.output
    assert "Boot complete" in result.output
    assert seen == {"running": True, "active": True}
    assert get_active_server() is None
    assert (tmp_path / "state").is_dir()


def test_serve_reports_bad_config(runner: CliRunner, tmp_path: Path, isolated_boot) -> None:
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "serve"],
                           env={"HTTP_PORT": "http"})
    assert result.exit_code == 1
    assert "[FAILED]" in result.output


def test_console_runs_commands_until_exit(runner: CliRunner, tmp_path: Path, isolated_boot) -> None:
    result = runner.invoke(main, ["--config-dir", str(tmp_path), "console", "--no-serve"],
                           input="menu-list\nexit\n")
    assert result.exit_code == 0, result.output
    assert "win-amd64" in result.output
    assert get_active_server() is None
