#!/usr/bin/env python3
# pxenet/menu/__init__.py
from __future__ import annotations

from .catalog import (
    BootCatalog,
    BootTarget,
    InitrdFile,
    catalog_from_mapping,
    catalog_problems,
    default_catalog,
    dump_catalog_toml,
    ensure_valid,
    iter_referenced_files,
    load_catalog,
    referenced_files,
    winpe_target,
)
from .script import FAILED_MESSAGE, render_script, render_target
from .verify import CheckReport, Finding, check_catalog, check_script

__all__ = [
    "BootCatalog",
    "BootTarget",
    "InitrdFile",
    "catalog_from_mapping",
    "catalog_problems",
    "default_catalog",
    "dump_catalog_toml",
    "ensure_valid",
    "iter_referenced_files",
    "load_catalog",
    "referenced_files",
    "winpe_target",
    "FAILED_MESSAGE",
    "render_script",
    "render_target",
    "CheckReport",
    "Finding",
    "check_catalog",
    "check_script",
]
