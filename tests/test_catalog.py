from __future__ import annotations

import json
from pathlib import Path

import pytest

from pxenet.errors import CatalogError
from pxenet.menu import (
    BootCatalog,
    BootTarget,
    InitrdFile,
    catalog_problems,
    default_catalog,
    dump_catalog_toml,
    ensure_valid,
    load_catalog,
    referenced_files,
)


def test_default_catalog_targets_in_menu_order() -> None:
    catalog = default_catalog("http://10.0.0.5")
    assert catalog.labels() == ["win-amd64", "win-x86", "ubuntu", "debian"]
    assert catalog_problems(catalog) == []


def test_winpe_files_expand_arch() -> None:
    target = default_catalog().get("win-x86")
    assert referenced_files(target) == [
        "wimboot",
        "install.bat",
        "winpeshl.ini",
        "winpe/x86/Boot/BCD",
        "winpe/x86/Boot/boot.sdi",
        "winpe/x86/sources/boot.wim",
    ]
    assert [i.name for i in target.initrds] == [
        "install.bat", "winpeshl.ini", "BCD", "boot.sdi", "boot.wim"]


def test_iso_on_cmdline_is_a_referenced_file() -> None:
    ubuntu = default_catalog().get("ubuntu")
    assert referenced_files(ubuntu) == ["ubuntu/vmlinuz", "ubuntu/initrd", "ubuntu/ubuntu.iso"]


def test_duplicate_labels_are_case_insensitive() -> None:
    target = BootTarget("Linux", "one", "vmlinuz")
    catalog = BootCatalog("http://x", targets=(target, BootTarget("linux", "two", "vmlinuz")))
    problems = catalog_problems(catalog)
    assert ("linux", "duplicate label") in problems
    with pytest.raises(CatalogError):
        ensure_valid(catalog)


@pytest.mark.parametrize("label", ["start", "failed", "shell", "Start"])
def test_reserved_labels_rejected(label: str) -> None:
    catalog = BootCatalog("http://x", targets=(BootTarget(label, "x", "vmlinuz"),))
    assert (label, "label is reserved by the menu script") in catalog_problems(catalog)


def test_structural_problems_reported() -> None:
    catalog = BootCatalog("", targets=(
        BootTarget("bad label", "x", "vmlinuz"),
        BootTarget("nokernel", "x", ""),
        BootTarget("pe", "x", "wimboot", kind="wimboot"),
        BootTarget("arch", "x", "{arch}/vmlinuz"),
    ))
    messages = {msg for _label, msg in catalog_problems(catalog)}
    assert "base_url is empty" in messages
    assert "label must match [A-Za-z0-9_.-]+" in messages
    assert "kernel path is empty" in messages
    assert "wimboot targets need an arch" in messages
    assert "path uses {arch} but arch is empty" in messages


def test_paths_must_stay_under_base_url() -> None:
    catalog = BootCatalog("http://x", background="/etc/motd", targets=(
        BootTarget("abs", "x", "/wimboot"),
        BootTarget("up", "x", "vmlinuz", initrds=(InitrdFile("../secret"),)),
        BootTarget("win", "x", "boot\\..\\k"),
        BootTarget("ok", "x", "linux/vmlinuz..old"),
    ))
    assert catalog_problems(catalog) == [
        ("", "background path escapes the base URL: /etc/motd"),
        ("abs", "path escapes the base URL: /wimboot"),
        ("up", "path escapes the base URL: ../secret"),
        ("win", "path escapes the base URL: boot\\..\\k"),
    ]


def test_toml_dump_loads_back(tmp_path: Path) -> None:
    catalog = default_catalog("http://192.168.1.2:8080")
    path = tmp_path / "catalog.toml"
    path.write_text(dump_catalog_toml(catalog), encoding="utf-8")
    assert load_catalog(path) == catalog


def test_json_catalog_with_wimboot_shorthand(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "title": "Lab",
        "background": "",
        "targets": [
            {"label": "pe", "description": "WinPE", "kind": "wimboot", "arch": "amd64"},
            {"label": "alpine", "description": "Alpine", "kernel": "alpine/vmlinuz",
             "initrds": ["alpine/initramfs", {"path": "alpine/modloop", "name": "modloop"}]},
        ],
    }), encoding="utf-8")

    catalog = load_catalog(path, base_url="http://10.0.0.5")
    assert catalog.base_url == "http://10.0.0.5"
    assert catalog.title == "Lab"
    assert catalog.background is None
    assert len(catalog.get("pe").initrds) == 5
    assert catalog.get("alpine").initrds == (
        InitrdFile("alpine/initramfs"), InitrdFile("alpine/modloop", "modloop"))


def test_file_base_url_wins(tmp_path: Path) -> None:
    path = tmp_path / "catalog.toml"
    path.write_text('base_url = "http://boot.lan"\n', encoding="utf-8")
    assert load_catalog(path, base_url="http://10.0.0.5").base_url == "http://boot.lan"


def test_load_errors(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="not found"):
        load_catalog(tmp_path / "missing.toml")
    broken = tmp_path / "broken.toml"
    broken.write_text("targets = [", encoding="utf-8")
    with pytest.raises(CatalogError, match="Cannot parse"):
        load_catalog(broken)
    invalid = tmp_path / "invalid.toml"
    invalid.write_text('base_url = "http://x"\n[[targets]]\nlabel = "failed"\n'
                       'description = "x"\nkernel = "k"\n', encoding="utf-8")
    with pytest.raises(CatalogError, match="reserved"):
        load_catalog(invalid)
