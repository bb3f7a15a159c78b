# pxenet_plugins/menu/entrypoint.py
from __future__ import annotations

"""
Menu commands:
    - menu-list:   targets in menu order
    - menu-script: render the iPXE script (optionally to a file)
    - menu-check:  verify labels, referenced files and the failure path
    - menu-reload: re-read CATALOG_FILE into the running server
"""

from pathlib import Path
from typing import Sequence

from pxenet.commands import CommandResult, command
from pxenet.errors import PxenetError
from pxenet.menu import check_catalog, render_script
from pxenet.server import get_active_server
from pxenet.ui import colorize, format_table

from .. import _common


def _complete_label(*, text: str, argv: Sequence[str], index: int | None):
    for label in _common.catalog().labels():
        if label.startswith(text):
            yield label


@command(
    name="menu-list",
    description="List boot targets in menu order.",
    example="menu-list files=true",
    category="menu",
    aliases=["ls"],
)
def cmd_menu_list(*, files: bool = False) -> CommandResult:
    catalog = _common.catalog()
    if not catalog.targets:
        return CommandResult(message="Catalog is empty.")
    rows = []
    for index, target in enumerate(catalog.targets, 1):
        paths = target.referenced_files()
        rows.append([
            str(index), target.label, target.kind, target.arch or "-", target.description,
            "\n".join(paths) if files else str(len(paths)),
        ])
    table = format_table(rows, headers=["#", "Label", "Kind", "Arch", "Description", "Files"])
    return CommandResult(message=f"Base URL: {catalog.base_url}\n{table}", data=catalog)


@command(
    name="menu-script",
    description="Render the iPXE boot script; write it to a file when `out` is given.",
    example="menu-script /srv/http_root/boot.ipxe",
    category="menu",
)
def cmd_menu_script(out: str = "") -> CommandResult:
    try:
        text = render_script(_common.catalog())
    except PxenetError as exc:
        return CommandResult.error(str(exc))
    if not out:
        return CommandResult(message=text.rstrip("\n"), data=text)
    path = Path(out)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        return CommandResult.error(f"Cannot write {path}: {exc}")
    return CommandResult(message=f"Wrote {len(text.splitlines())} lines to {path}", data=text)


@command(
    name="menu-check",
    description="Check the catalog: labels, files under the HTTP root (and remote), script flow.",
    example="menu-check remote=true",
    category="menu",
    completers={"pos0": _complete_label},
)
def cmd_menu_check(label: str = "", *, remote: bool = False) -> CommandResult:
    cfg = _common.config()
    report = check_catalog(_common.catalog(), http_root=cfg.http_root,
                           remote=remote, timeout=cfg.timeout)
    findings = [f for f in report.findings if not label or f.target in ("", label)]
    summary = f"{report.checked_files} file reference(s) checked"
    if not findings:
        return CommandResult(message=colorize(f"OK: {summary}, no findings.", "green"), data=report)

    rows = [[f.severity, f.target or "-", f.message] for f in findings]
    table = format_table(rows, headers=["Severity", "Target", "Finding"])
    if report.ok:
        return CommandResult(message=f"{table}\n{summary}; warnings only.", data=report)
    return CommandResult(ok=False, message=f"[error] {len(report.errors())} error(s)\n{table}",
                         data=report)


@command(
    name="menu-reload",
    description="Re-read CATALOG_FILE into the running server.",
    category="menu",
)
def cmd_menu_reload() -> CommandResult:
    server = get_active_server()
    if server is None:
        return CommandResult.error("Boot server is not running.")
    if server.config.catalog_file is None:
        return CommandResult(message="Using the built-in catalog; nothing to reload.")
    try:
        catalog = server.reload_catalog()
    except PxenetError as exc:
        return CommandResult.error(str(exc))
    return CommandResult(message=f"Loaded {len(catalog.targets)} targets.", data=catalog)
