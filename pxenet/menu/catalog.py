#!/usr/bin/env python3
# pxenet/menu/catalog.py
from __future__ import annotations

"""
Boot catalog: the static list of operating systems offered in the menu.

A catalog is a base URL plus an ordered list of boot targets. Each target
names a kernel, an ordered list of initrd files and a kernel command line,
all relative to the base URL. Paths may use two placeholders:

    {arch}      replaced by the target's architecture string
    {base_url}  replaced by the catalog base URL (command lines only,
                e.g. an ISO passed by URL to a live kernel)

Catalogs load from TOML or JSON; `default_catalog()` returns the built-in
set (Windows PE amd64/x86 via wimboot, Ubuntu live, Debian installer).
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Mapping
import json
import re
import tomllib

from pxenet.errors import CatalogError

LABEL_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
RESERVED_LABELS = frozenset({"start", "failed"})
KINDS = ("linux", "wimboot")

# Files every Windows PE target hands to wimboot, in load order.
WINPE_FILES: tuple[tuple[str, str], ...] = (
    ("install.bat", "install.bat"),
    ("winpeshl.ini", "winpeshl.ini"),
    ("winpe/{arch}/Boot/BCD", "BCD"),
    ("winpe/{arch}/Boot/boot.sdi", "boot.sdi"),
    ("winpe/{arch}/sources/boot.wim", "boot.wim"),
)

_BASE_REF_RE = re.compile(r"\{base_url\}/(\S+)")


@dataclass(frozen=True)
class InitrdFile:
    """One file loaded alongside the kernel; `name` is what the loader sees."""
    path: str
    name: str | None = None


@dataclass(frozen=True)
class BootTarget:
    label: str
    description: str
    kernel: str
    initrds: tuple[InitrdFile, ...] = ()
    cmdline: str = ""
    arch: str = ""
    kind: str = "linux"

    def expand(self, path: str) -> str:
        """Substitute {arch} in a path with this target's architecture."""
        return path.replace("{arch}", self.arch)

    def referenced_files(self) -> list[str]:
        """Every path fetched from the base URL, in fetch order."""
        files = [self.expand(self.kernel)]
        files.extend(self.expand(i.path) for i in self.initrds)
        files.extend(self.expand(m) for m in _BASE_REF_RE.findall(self.cmdline))
        return files


@dataclass(frozen=True)
class BootCatalog:
    base_url: str
    targets: tuple[BootTarget, ...] = ()
    title: str = "Select an operating system"
    background: str | None = "background.png"
    shell_label: str = "shell"
    shell_description: str = "Drop to iPXE shell"

    def get(self, label: str) -> BootTarget | None:
        key = label.lower()
        for target in self.targets:
            if target.label.lower() == key:
                return target
        return None

    def labels(self) -> list[str]:
        return [t.label for t in self.targets]

    def with_base_url(self, base_url: str) -> "BootCatalog":
        return replace(self, base_url=base_url)


# ---------- validation ----------

def _unsafe_path(path: str) -> bool:
    """Absolute paths and '..' segments would leave the HTTP root."""
    normalized = path.replace("\\", "/")
    return normalized.startswith("/") or ".." in normalized.split("/")


def catalog_problems(catalog: BootCatalog) -> list[tuple[str, str]]:
    """
    Return (label, message) pairs for every structural problem.
    An empty list means the catalog can be rendered.
    """
    problems: list[tuple[str, str]] = []
    if not catalog.base_url.strip():
        problems.append(("", "base_url is empty"))
    if not LABEL_RE.match(catalog.shell_label):
        problems.append((catalog.shell_label, "invalid shell label"))
    if catalog.background and _unsafe_path(catalog.background):
        problems.append(("", f"background path escapes the base URL: {catalog.background}"))

    reserved = RESERVED_LABELS | {catalog.shell_label.lower()}
    seen: set[str] = set()
    for target in catalog.targets:
        key = target.label.lower()
        if not LABEL_RE.match(target.label):
            problems.append((target.label, "label must match [A-Za-z0-9_.-]+"))
        if key in reserved:
            problems.append((target.label, "label is reserved by the menu script"))
        if key in seen:
            problems.append((target.label, "duplicate label"))
        seen.add(key)

        if target.kind not in KINDS:
            problems.append((target.label, f"unknown kind {target.kind!r}"))
        if not target.kernel.strip():
            problems.append((target.label, "kernel path is empty"))
        if target.kind == "wimboot" and not target.arch:
            problems.append((target.label, "wimboot targets need an arch"))
        uses_arch = "{arch}" in target.kernel or any(
            "{arch}" in i.path for i in target.initrds)
        if uses_arch and not target.arch:
            problems.append((target.label, "path uses {arch} but arch is empty"))
        if not target.description.strip():
            problems.append((target.label, "description is empty"))
        for path in target.referenced_files():
            if _unsafe_path(path):
                problems.append((target.label, f"path escapes the base URL: {path}"))
    return problems


def ensure_valid(catalog: BootCatalog) -> BootCatalog:
    """Raise CatalogError listing every problem; return the catalog otherwise."""
    problems = catalog_problems(catalog)
    if problems:
        detail = "; ".join(f"{label or '<catalog>'}: {msg}" for label, msg in problems)
        raise CatalogError(f"Invalid boot catalog: {detail}")
    return catalog


# ---------- built-in catalog ----------

def winpe_target(label: str, description: str, arch: str) -> BootTarget:
    """A Windows PE installer chained through wimboot."""
    return BootTarget(
        label=label,
        description=description,
        kernel="wimboot",
        initrds=tuple(InitrdFile(path, name) for path, name in WINPE_FILES),
        arch=arch,
        kind="wimboot",
    )


def default_catalog(base_url: str = "http://10.0.0.5") -> BootCatalog:
    return BootCatalog(
        base_url=base_url,
        targets=(
            winpe_target("win-amd64", "Windows Setup (64-bit)", "amd64"),
            winpe_target("win-x86", "Windows Setup (32-bit)", "x86"),
            BootTarget(
                label="ubuntu",
                description="Ubuntu Desktop (live)",
                kernel="ubuntu/vmlinuz",
                initrds=(InitrdFile("ubuntu/initrd", "initrd"),),
                cmdline="initrd=initrd ip=dhcp boot=casper url={base_url}/ubuntu/ubuntu.iso",
                arch="amd64",
            ),
            BootTarget(
                label="debian",
                description="Debian installer",
                kernel="debian/vmlinuz",
                initrds=(InitrdFile("debian/initrd.gz", "initrd.gz"),),
                cmdline="initrd=initrd.gz priority=critical",
                arch="amd64",
            ),
        ),
    )


# ---------- loading ----------

def _as_initrd(item: Any, label: str) -> InitrdFile:
    if isinstance(item, str):
        return InitrdFile(item)
    if isinstance(item, Mapping) and "path" in item:
        name = item.get("name")
        return InitrdFile(str(item["path"]), None if name in (None, "") else str(name))
    raise CatalogError(f"{label}: initrd entries must be a path or {{path, name}}")


def _as_target(raw: Any, index: int) -> BootTarget:
    if not isinstance(raw, Mapping):
        raise CatalogError(f"targets[{index}] must be a table")
    label = str(raw.get("label", "")).strip()
    if not label:
        raise CatalogError(f"targets[{index}] has no label")

    kind = str(raw.get("kind", "linux")).strip().lower()
    arch = str(raw.get("arch", "") or "")
    if kind == "wimboot" and "initrds" not in raw:
        # shorthand: a wimboot target without initrds gets the WinPE set
        base = winpe_target(label, str(raw.get("description", label)), arch)
        return replace(base, kernel=str(raw.get("kernel", base.kernel)),
                       cmdline=str(raw.get("cmdline", "")))

    initrds = raw.get("initrds", [])
    if not isinstance(initrds, list):
        raise CatalogError(f"{label}: initrds must be a list")
    return BootTarget(
        label=label,
        description=str(raw.get("description", "")),
        kernel=str(raw.get("kernel", "")),
        initrds=tuple(_as_initrd(i, label) for i in initrds),
        cmdline=str(raw.get("cmdline", "") or ""),
        arch=arch,
        kind=kind,
    )


def catalog_from_mapping(data: Mapping[str, Any], *, base_url: str | None = None) -> BootCatalog:
    """Build and validate a catalog from parsed TOML/JSON data."""
    targets_raw = data.get("targets", [])
    if not isinstance(targets_raw, list):
        raise CatalogError("'targets' must be a list of tables")

    url = str(data.get("base_url") or base_url or "").strip()
    kwargs: dict[str, Any] = {}
    for key in ("title", "shell_label", "shell_description"):
        if data.get(key):
            kwargs[key] = str(data[key])
    if "background" in data:
        kwargs["background"] = str(data["background"]) if data["background"] else None

    catalog = BootCatalog(
        base_url=url,
        targets=tuple(_as_target(t, i) for i, t in enumerate(targets_raw)),
        **kwargs,
    )
    return ensure_valid(catalog)


def load_catalog(path: str | Path, *, base_url: str | None = None) -> BootCatalog:
    """
    Load a catalog file (.toml or .json). `base_url` is used only when the
    file does not set one.
    """
    p = Path(path)
    try:
        if p.suffix.lower() == ".json":
            data = json.loads(p.read_text(encoding="utf-8"))
        else:
            with p.open("rb") as f:
                data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog file not found: {p}") from exc
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise CatalogError(f"Cannot parse {p}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise CatalogError(f"{p}: top level must be a table")
    return catalog_from_mapping(data, base_url=base_url)


# ---------- writing ----------

def _toml_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _toml_initrd(item: InitrdFile) -> str:
    if item.name is None:
        return _toml_str(item.path)
    return f"{{ path = {_toml_str(item.path)}, name = {_toml_str(item.name)} }}"


def dump_catalog_toml(catalog: BootCatalog) -> str:
    """Serialize a catalog to TOML readable by load_catalog()."""
    lines = [
        f"base_url = {_toml_str(catalog.base_url)}",
        f"title = {_toml_str(catalog.title)}",
        f"background = {_toml_str(catalog.background or '')}",
        f"shell_label = {_toml_str(catalog.shell_label)}",
        f"shell_description = {_toml_str(catalog.shell_description)}",
    ]
    for target in catalog.targets:
        lines += [
            "",
            "[[targets]]",
            f"label = {_toml_str(target.label)}",
            f"description = {_toml_str(target.description)}",
            f"kind = {_toml_str(target.kind)}",
            f"arch = {_toml_str(target.arch)}",
            f"kernel = {_toml_str(target.kernel)}",
            "initrds = [",
            *(f"    {_toml_initrd(i)}," for i in target.initrds),
            "]",
            f"cmdline = {_toml_str(target.cmdline)}",
        ]
    return "\n".join(lines) + "\n"


def iter_referenced_files(catalog: BootCatalog) -> Iterable[tuple[str, str]]:
    """Yield (label, path) for every file the catalog fetches, background first."""
    if catalog.background:
        yield "", catalog.background
    for target in catalog.targets:
        for path in target.referenced_files():
            yield target.label, path


def referenced_files(target: BootTarget) -> list[str]:
    return target.referenced_files()
