from __future__ import annotations

import pytest

from pxenet.errors import CatalogError
from pxenet.menu import (
    FAILED_MESSAGE,
    BootCatalog,
    BootTarget,
    check_script,
    default_catalog,
    render_script,
)


@pytest.fixture
def script() -> str:
    return render_script(default_catalog("http://10.0.0.5"))


def _section(script: str, label: str) -> list[str]:
    lines = script.splitlines()
    start = lines.index(f":{label}") + 1
    body = []
    for line in lines[start:]:
        if line.startswith(":"):
            break
        if line:
            body.append(line)
    return body


def test_header_and_base_url(script: str) -> None:
    lines = script.splitlines()
    assert lines[0] == "#!ipxe"
    assert "set base-url http://10.0.0.5" in lines
    assert "console --picture ${base-url}/background.png ||" in lines
    assert script.endswith("\n")


def test_each_menu_item_has_exactly_one_label(script: str) -> None:
    lines = script.splitlines()
    items = [l.split()[1] for l in _section(script, "start")
             if l.startswith("item ") and not l.startswith("item --")]
    assert items == ["win-amd64", "win-x86", "ubuntu", "debian", "shell"]
    for item in items:
        assert lines.count(f":{item}") == 1


def test_menu_loop(script: str) -> None:
    start = _section(script, "start")
    assert start[0] == "menu Select an operating system"
    assert start[-2:] == ["choose target || goto start", "goto ${target}"]


def test_wimboot_section(script: str) -> None:
    assert _section(script, "win-x86") == [
        "imgfree",
        "echo Booting Windows Setup (32-bit)",
        "set arch x86",
        "kernel ${base-url}/wimboot || goto failed",
        "initrd -n install.bat ${base-url}/install.bat || goto failed",
        "initrd -n winpeshl.ini ${base-url}/winpeshl.ini || goto failed",
        "initrd -n BCD ${base-url}/winpe/${arch}/Boot/BCD || goto failed",
        "initrd -n boot.sdi ${base-url}/winpe/${arch}/Boot/boot.sdi || goto failed",
        "initrd -n boot.wim ${base-url}/winpe/${arch}/sources/boot.wim || goto failed",
        "boot || goto failed",
    ]


def test_linux_cmdline_references_iso_by_url(script: str) -> None:
    kernel = _section(script, "ubuntu")[3]
    assert kernel == ("kernel ${base-url}/ubuntu/vmlinuz initrd=initrd ip=dhcp boot=casper "
                      "url=${base-url}/ubuntu/ubuntu.iso || goto failed")


def test_failed_boot_reaches_shell_then_menu(script: str) -> None:
    assert _section(script, "failed") == [f"echo {FAILED_MESSAGE}", "shell", "goto start"]
    assert _section(script, "shell")[-2:] == ["shell", "goto start"]


def test_every_fetch_falls_back_to_failed(script: str) -> None:
    for line in script.splitlines():
        if line.split(" ", 1)[0] in ("kernel", "initrd", "boot"):
            assert line.endswith("|| goto failed"), line


def test_rendered_script_passes_checks(script: str) -> None:
    assert check_script(script) == []


def test_no_background_line_when_disabled() -> None:
    catalog = BootCatalog("http://x", targets=(BootTarget("a", "A", "k"),), background=None)
    assert "console --picture" not in render_script(catalog)


def test_invalid_catalog_is_not_rendered() -> None:
    catalog = BootCatalog("http://x", targets=(BootTarget("a", "A", "k"), BootTarget("A", "B", "k")))
    with pytest.raises(CatalogError):
        render_script(catalog)


def test_every_target_frees_images_before_loading(script: str) -> None:
    for label in ("win-amd64", "win-x86", "ubuntu", "debian"):
        body = _section(script, label)
        kernel_at = next(i for i, line in enumerate(body) if line.startswith("kernel "))
        assert "imgfree" in body[:kernel_at], label


def test_retry_after_failed_wimboot_starts_clean(script: str) -> None:
    # a failed Windows attempt returns to :start; the next pick must not inherit its images
    assert _section(script, "ubuntu")[0] == "imgfree"
    assert _section(script, "failed")[-1] == "goto start"
