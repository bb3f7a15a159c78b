from __future__ import annotations

from pathlib import Path

from pxenet.db import get_client, load_config, set_database_path
from pxenet.menu import default_catalog, dump_catalog_toml, render_script
from pxenet.net.dhcp import ProxyResponder
from pxenet.server import BootServer, default_responders, ensure_roots, record_answer

from .helpers import pxe_request

DISABLED = {"ENABLE_DHCP": "false", "ENABLE_TFTP": "false", "ENABLE_HTTP": "false"}


def test_default_responders_follow_config(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path, environ={"SERVER_ADDRESS": "192.168.7.1", "HTTP_PORT": "8080"})
    rules = default_responders(config)
    assert [(r.architecture, r.user_class, r.boot_file) for r in rules] == [
        (7, None, "ipxe.efi"),
        (0, None, "undionly.kpxe"),
        (None, "iPXE", "http://192.168.7.1:8080/boot.ipxe"),
    ]
    assert {r.redirect_to for r in rules} == {"192.168.7.1"}


def test_services_follow_enable_flags(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path, environ={"ENABLE_TFTP": "no"})
    server = BootServer(config, default_catalog(config.base_url))
    assert [name for name, _factory in server.services()] == ["dhcp", "http"]


def test_start_stop_with_everything_disabled(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path, environ=DISABLED)
    server = BootServer(config, default_catalog(config.base_url))
    assert server.start() == []
    assert server.running
    assert server.status() == []
    server.stop()
    assert not server.running


def test_render_and_reload(tmp_path: Path) -> None:
    catalog_file = tmp_path / "catalog.toml"
    catalog_file.write_text(dump_catalog_toml(default_catalog("http://10.0.0.5")), encoding="utf-8")
    config = load_config(cwd=tmp_path, environ={"CATALOG_FILE": "catalog.toml"})
    server = BootServer(config, default_catalog(config.base_url))
    assert server.render() == render_script(server.catalog)

    text = catalog_file.read_text(encoding="utf-8").replace("Debian installer", "Debian 12")
    catalog_file.write_text(text, encoding="utf-8")
    server.reload_catalog()
    assert "item debian Debian 12" in server.render()


def test_answers_are_recorded(tmp_path: Path) -> None:
    set_database_path(tmp_path / "clients.db")
    config = load_config(cwd=tmp_path, environ={})
    answer = ProxyResponder(default_responders(config)).answer(pxe_request(arch=0))
    record_answer(answer)

    row = get_client("52:54:00:12:34:56")
    assert row["architecture"] == 0
    assert row["boot_file"] == "undionly.kpxe"
    assert row["server"] == "10.0.0.5"


def test_ensure_roots(tmp_path: Path) -> None:
    config = load_config(cwd=tmp_path, environ={})
    created = ensure_roots(config)
    assert set(created) == {config.http_root, config.tftp_root, config.state_dir}
    assert ensure_roots(config) == []
