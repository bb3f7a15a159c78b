#!/usr/bin/env python3
# pxenet/menu/script.py
from __future__ import annotations

"""
Render a boot catalog as an iPXE script.

Layout of the generated script:

    #!ipxe
    set base-url <url>
    console --picture ${base-url}/<background> ||
    :start             menu, one item per target, shell item, choose
    :<label>           one section per target: imgfree, kernel, initrds, boot
    :<shell_label>     interactive shell, then back to :start
    :failed            message, interactive shell, then back to :start

Every fetch and every `boot` falls through to `:failed` on error, and
every path out of a shell is `goto start`, so a failed boot can only end
at the menu.
"""

from pxenet.menu.catalog import BootCatalog, BootTarget, ensure_valid

FAILED_MESSAGE = "Boot failed, dropping to the iPXE shell. Type exit to return to the menu."
SHELL_MESSAGE = "Type exit to return to the menu."
FAIL = "|| goto failed"


def _ipxe_vars(text: str) -> str:
    """Turn catalog placeholders into iPXE variable references."""
    return text.replace("{base_url}", "${base-url}").replace("{arch}", "${arch}")


def _url(path: str) -> str:
    return "${base-url}/" + _ipxe_vars(path.lstrip("/"))


def render_target(target: BootTarget) -> list[str]:
    """Lines for one target's label section."""
    # drop images left registered by an earlier failed attempt
    lines = [f":{target.label}", "imgfree", f"echo Booting {target.description}"]
    if target.arch:
        lines.append(f"set arch {target.arch}")

    kernel = f"kernel {_url(target.kernel)}"
    if target.cmdline:
        kernel += f" {_ipxe_vars(target.cmdline)}"
    lines.append(f"{kernel} {FAIL}")

    for item in target.initrds:
        if item.name:
            lines.append(f"initrd -n {item.name} {_url(item.path)} {FAIL}")
        else:
            lines.append(f"initrd {_url(item.path)} {FAIL}")

    lines.append(f"boot {FAIL}")
    return lines


def render_script(catalog: BootCatalog) -> str:
    """Render the complete menu script; raises CatalogError if invalid."""
    ensure_valid(catalog)

    lines = ["#!ipxe", "", f"set base-url {catalog.base_url.rstrip('/')}"]
    if catalog.background:
        lines.append(f"console --picture {_url(catalog.background)} ||")

    lines += ["", ":start", f"menu {catalog.title}"]
    lines += [f"item {t.label} {t.description}" for t in catalog.targets]
    lines += [
        "item --gap --",
        f"item {catalog.shell_label} {catalog.shell_description}",
        "choose target || goto start",
        "goto ${target}",
    ]

    for target in catalog.targets:
        lines.append("")
        lines.extend(render_target(target))

    lines += [
        "",
        f":{catalog.shell_label}",
        f"echo {SHELL_MESSAGE}",
        "shell",
        "goto start",
        "",
        ":failed",
        f"echo {FAILED_MESSAGE}",
        "shell",
        "goto start",
    ]
    return "\n".join(lines) + "\n"
