#!/usr/bin/env python3
# pxenet/menu/verify.py
from __future__ import annotations

"""
Acceptance checks for a boot catalog and its rendered script.

check_catalog:
  - labels unique, valid and not reserved
  - every referenced file present under the HTTP root and/or reachable
    at the base URL (HEAD request)
  - the rendered script passes check_script

check_script:
  - every menu item has exactly one label section
  - every section runs imgfree before its kernel line
  - every kernel/initrd/boot falls back to :failed
  - :failed (and the shell item) reach `shell` and then `goto start`
  - every literal goto target exists
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable
import logging
import urllib.error
import urllib.request

from pxenet import __version__
from pxenet.menu.catalog import BootCatalog, catalog_problems, iter_referenced_files
from pxenet.menu.script import render_script

log = logging.getLogger(__name__)

USER_AGENT = f"pxenet/{__version__}"

ERROR = "error"
WARNING = "warning"


@dataclass(slots=True, frozen=True)
class Finding:
    severity: str
    target: str
    message: str


@dataclass(slots=True)
class CheckReport:
    findings: list[Finding] = field(default_factory=list)
    checked_files: int = 0

    @property
    def ok(self) -> bool:
        return not any(f.severity == ERROR for f in self.findings)

    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == ERROR]

    def add(self, severity: str, target: str, message: str) -> None:
        self.findings.append(Finding(severity, target, message))


# ---------- script structure ----------

def _sections(lines: Iterable[str]) -> dict[str, list[str]]:
    """Map label -> command lines under it ('' holds the preamble)."""
    sections: dict[str, list[str]] = {"": []}
    current = ""
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith(":"):
            current = line[1:]
            if current in sections:
                sections.setdefault(f"{current}#dup", [])
            sections.setdefault(current, [])
            continue
        sections[current].append(line)
    return sections


def _returns_to_menu(body: list[str]) -> bool:
    """True if the section drops to a shell and then jumps back to :start."""
    try:
        shell_at = body.index("shell")
    except ValueError:
        return False
    return "goto start" in body[shell_at + 1:]


def check_script(text: str, *, shell_label: str = "shell") -> list[Finding]:
    findings: list[Finding] = []
    lines = text.splitlines()
    if not lines or lines[0].strip() != "#!ipxe":
        findings.append(Finding(ERROR, "", "script does not start with #!ipxe"))

    sections = _sections(lines)
    labels = {name for name in sections if name and not name.endswith("#dup")}
    for name in sections:
        if name.endswith("#dup"):
            findings.append(Finding(ERROR, name[:-4], "label defined more than once"))

    if "start" not in labels:
        findings.append(Finding(ERROR, "", "no :start label for the menu loop"))

    items: list[str] = []
    for line in sections.get("start", []):
        parts = line.split(maxsplit=2)
        if parts[0] == "item" and len(parts) > 1 and not parts[1].startswith("--"):
            items.append(parts[1])
    for item in set(items):
        if items.count(item) > 1:
            findings.append(Finding(ERROR, item, "menu item listed more than once"))
    for item in items:
        if item not in labels:
            findings.append(Finding(ERROR, item, "menu item has no label section"))

    if "failed" not in labels:
        findings.append(Finding(ERROR, "", "no :failed label; a failed boot would halt"))
    elif not _returns_to_menu(sections["failed"]):
        findings.append(Finding(ERROR, "failed", ":failed must run shell then goto start"))

    if shell_label in labels and not _returns_to_menu(sections[shell_label]):
        findings.append(Finding(ERROR, shell_label, "exiting the shell must goto start"))

    for label, body in sections.items():
        verbs = [line.split(maxsplit=1)[0] for line in body]
        if "kernel" in verbs and "imgfree" not in verbs[:verbs.index("kernel")]:
            findings.append(Finding(ERROR, label, "images from an earlier attempt are not freed"))
        for line in body:
            verb = line.split(maxsplit=1)[0]
            if verb in ("kernel", "initrd", "chain", "boot") and not line.endswith("|| goto failed"):
                findings.append(Finding(ERROR, label, f"'{verb}' does not fall back to :failed"))
            if " goto " in f" {line} ":
                dest = line.rsplit("goto", 1)[1].strip()
                if dest and not dest.startswith("${") and dest not in labels:
                    findings.append(Finding(ERROR, label, f"goto to undefined label {dest!r}"))
    return findings


# ---------- referenced files ----------

def _remote_exists(url: str, timeout: float) -> tuple[bool, str]:
    request = urllib.request.Request(url, method="HEAD", headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return 200 <= response.status < 300, f"HTTP {response.status}"
    except urllib.error.HTTPError as exc:
        return False, f"HTTP {exc.code}"
    except (urllib.error.URLError, OSError) as exc:
        return False, f"{type(exc).__name__}: {exc}"


def check_catalog(
    catalog: BootCatalog,
    *,
    http_root: str | Path | None = None,
    remote: bool = False,
    timeout: float = 5.0,
) -> CheckReport:
    report = CheckReport()
    problems = catalog_problems(catalog)
    for label, message in problems:
        report.add(ERROR, label, message)

    root = Path(http_root) if http_root is not None else None
    base = catalog.base_url.rstrip("/")
    for label, path in iter_referenced_files(catalog):
        report.checked_files += 1
        severity = ERROR if label else WARNING  # missing background only degrades the menu
        if root is not None and not (root / path).is_file():
            report.add(severity, label, f"missing under HTTP root: {path}")
        if remote:
            ok, detail = _remote_exists(f"{base}/{path}", timeout)
            if not ok:
                report.add(severity, label, f"not reachable at {base}/{path} ({detail})")
            log.debug("HEAD %s/%s -> %s", base, path, detail)

    if root is None and not remote:
        report.add(WARNING, "", "file presence not checked (no HTTP root, remote disabled)")

    if not problems:
        report.findings.extend(
            check_script(render_script(catalog), shell_label=catalog.shell_label))
    return report
