from __future__ import annotations

from pathlib import Path

import pytest

from pxenet.commands import REGISTRY, CommandRegistry, CommandResult, command
from pxenet.interface import bind_args, build_usage, handle_line, load_commands, suggest


@pytest.fixture(scope="module", autouse=True)
def commands() -> None:
    load_commands()


@pytest.fixture(autouse=True)
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for key in ("SERVER_ADDRESS", "HTTP_PORT", "BASE_URL", "CATALOG_FILE"):
        monkeypatch.delenv(key, raising=False)
        monkeypatch.delenv(f"PXENET_{key}", raising=False)
    return tmp_path


def _sample(name: str, count: int = 1, *, verbose: bool = False) -> tuple:
    return name, count, verbose


def test_bind_args_coerces_by_annotation() -> None:
    assert bind_args(_sample, ["x", "3", "verbose=yes"]) == (("x", 3), {"verbose": True})
    assert bind_args(_sample, ["x"]) == (("x",), {})
    assert bind_args(_sample, ["count=2", "name=y"]) == ((), {"count": 2, "name": "y"})


@pytest.mark.parametrize("tokens", [[], ["x", "1", "2"], ["x", "bogus=1"], ["x", "many"]])
def test_bind_args_errors(tokens: list[str]) -> None:
    with pytest.raises(TypeError):
        bind_args(_sample, tokens)


def test_build_usage() -> None:
    assert build_usage("sample", _sample) == "sample <name> [count] [verbose=...]"


def test_registry_rejects_collisions() -> None:
    registry = CommandRegistry()

    @command(name="one", aliases=["o"], registry=registry)
    def one() -> CommandResult:
        return CommandResult(message="1")

    assert registry.get("O").name == "one"
    with pytest.raises(ValueError):
        command(name="o", registry=registry)(lambda: None)
    assert registry.unregister("o")
    assert registry.get("one") is None


def test_groups_are_loaded() -> None:
    categories = REGISTRY.categories()
    assert {"menu", "server", "dhcp"} <= set(categories)
    assert "iPXE" in REGISTRY.get_category_description("menu")
    help_text = handle_line("help")
    assert "menu" in help_text and "dhcp" in help_text


def test_menu_list_and_script() -> None:
    listing = handle_line("menu-list")
    assert "win-amd64" in listing and "http://10.0.0.5" in listing
    script = handle_line("menu-script")
    assert script.startswith("#!ipxe")


def test_menu_script_to_file(workdir: Path) -> None:
    assert handle_line("menu-script out.ipxe").startswith("Wrote")
    assert (workdir / "out.ipxe").read_text(encoding="utf-8").startswith("#!ipxe")


def test_menu_check_reports_missing_files() -> None:
    out = handle_line("menu-check")
    assert out.startswith("[error]")
    assert "wimboot" in out


def test_dhcp_rules_order() -> None:
    out = handle_line("dhcp-rules")
    assert out.index("ipxe.efi") < out.index("undionly.kpxe") < out.index("boot.ipxe")


def test_dhcp_decode_shows_answer() -> None:
    from .helpers import pxe_request

    packet = pxe_request(arch=7, user_class=b"iPXE").encode()
    out = handle_line(f"dhcp-decode {packet.hex()}")
    assert "52:54:00:12:34:56" in out
    assert "http://10.0.0.5/boot.ipxe" in out
    assert handle_line("dhcp-decode zz").startswith("[error]")


def test_dhcp_clients_lists_or_reports_none() -> None:
    out = handle_line("dhcp-clients")
    assert out == "No PXE clients seen yet." or "MAC" in out


def test_chaining() -> None:
    out = handle_line("menu-script && dhcp-rules")
    assert out.startswith("#!ipxe") and "undionly.kpxe" in out

    out = handle_line("no-such-command && menu-script")
    assert out.startswith("Unknown command") and "#!ipxe" not in out

    out = handle_line("no-such-command || server-status")
    assert "Boot server is not running." in out

    assert handle_line("&& menu-list").startswith("[error] Syntax")


def test_unknown_command_suggests() -> None:
    assert "Did you mean: menu-list" in handle_line("menu-lst")


def test_completion() -> None:
    assert "menu-list" in suggest("menu-l")
    assert suggest("help dh") == ["dhcp", "dhcp-clients", "dhcp-decode", "dhcp-forget", "dhcp-rules"]
    assert "ubuntu" in suggest("menu-check ub")
    assert "remote=" in suggest("menu-check re")
