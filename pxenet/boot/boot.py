#!/usr/bin/env python3
# pxenet/boot/boot.py
from __future__ import annotations
"""
Startup sequence for the boot server.

Every step prints an `[  OK  ]` / `[FAILED]` line. Catalog verification and
the first-stage loader check run in parallel; their findings are warnings,
not failures, so a half-populated HTTP root still serves the menu.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional
import logging
import os
import platform

from pxenet.db import AppConfig, load_config, set_database_path
from pxenet.menu import BootCatalog, CheckReport, check_catalog, default_catalog, load_catalog
from pxenet.net.tftp import missing_loaders
from pxenet.server import ensure_roots
from pxenet.ui import colorize, init_logger, print_line, set_terminal_title


@dataclass(slots=True)
class BootState:
    config: AppConfig
    catalog: BootCatalog
    logger: logging.Logger
    report: CheckReport
    missing_loaders: list[str] = field(default_factory=list)
    loaded_count: int = 0


_STATE: Optional[BootState] = None


def current_state() -> Optional[BootState]:
    return _STATE


def _step(label: str, fn: Callable[[], Any]) -> Any:
    """Run a boot step with status output."""
    try:
        out = fn()
    except Exception as exc:
        print_line(colorize(f"[FAILED] {label} ({type(exc).__name__}: {exc})", "red"))
        raise
    print_line(colorize(f"[  OK  ] {label}", "green"))
    return out


def _warn(text: str) -> None:
    print_line(colorize(f"[ WARN ] {text}", "yellow"))


def is_privileged() -> bool:
    """Ports 67/69/80 need root (or CAP_NET_BIND_SERVICE) on POSIX."""
    try:
        return os.geteuid() == 0
    except AttributeError:
        return False


def load_boot_catalog(config: AppConfig) -> BootCatalog:
    if config.catalog_file is None:
        return default_catalog(config.base_url)
    return load_catalog(config.catalog_file, base_url=config.base_url)


def boot_sequence(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    with_console: bool = False,
    cwd: Optional[Path] = None,
) -> BootState:
    global _STATE

    _step(
        f"Detect environment: {platform.system()} {platform.release()} / Python {platform.python_version()}",
        lambda: None,
    )
    if not is_privileged():
        _warn("Not running as root; binding ports below 1024 may fail")

    config = _step("Load configuration", lambda: load_config(cwd=cwd, overrides=overrides))
    logger = _step(
        "Initialize logger",
        lambda: init_logger("pxenet", level=config.log_level, logfile=config.log_file_path),
    )
    _step("Prepare HTTP/TFTP roots and state directory", lambda: ensure_roots(config))
    _step("Open client database", lambda: set_database_path(config.database_path))

    source = config.catalog_file or "built-in"
    catalog = _step(f"Load boot catalog ({source})", lambda: load_boot_catalog(config))

    with ThreadPoolExecutor(max_workers=2) as pool:
        report_future = pool.submit(check_catalog, catalog, http_root=config.http_root,
                                    timeout=config.timeout)
        loaders_future = pool.submit(missing_loaders, config.tftp_root)

        loaded_count = 0
        if with_console:
            from pxenet.commands import REGISTRY
            from pxenet.interface import load_commands

            _step("Load console commands", load_commands)
            loaded_count = len(REGISTRY.all())

        report = _step("Verify boot catalog", report_future.result)
        missing = _step("Check first-stage loaders", loaders_future.result)

    for finding in report.findings:
        where = f"{finding.target}: " if finding.target else ""
        _warn(f"{finding.severity}: {where}{finding.message}")
        logger.debug("catalog %s: %s%s", finding.severity, where, finding.message)
    for name in missing:
        _warn(f"TFTP root is missing {name}")

    set_terminal_title(f"pxenet {config.server_address} - {len(catalog.targets)} targets")
    _step("Boot complete", lambda: None)

    _STATE = BootState(
        config=config,
        catalog=catalog,
        logger=logger,
        report=report,
        missing_loaders=missing,
        loaded_count=loaded_count,
    )
    return _STATE
