#!/usr/bin/env python3
# pxenet/interface/loader.py
from __future__ import annotations

"""
Console command loader.

Every subpackage of the commands package (default 'pxenet_plugins') is a
category: importing its `entrypoint` module registers the commands via
@command, and its CATEGORY_DESCRIPTION (or docstring) labels the category
in `help`.
"""

import importlib
import logging
import pkgutil

from pxenet.commands import REGISTRY

log = logging.getLogger(__name__)

DEFAULT_PACKAGE = "pxenet_plugins"


def load_commands(commands_package: str = DEFAULT_PACKAGE) -> int:
    """Import all command modules under `commands_package`. Returns modules loaded."""
    package = importlib.import_module(commands_package)
    package_paths = list(getattr(package, "__path__", []))
    if not package_paths:
        raise RuntimeError(f"'{commands_package}' must be a package")

    loaded = 0
    categories: set[str] = set()
    for modinfo in pkgutil.iter_modules(package_paths):
        if modinfo.name.startswith("_"):
            continue
        if modinfo.ispkg:
            categories.add(modinfo.name)
            target = f"{commands_package}.{modinfo.name}.entrypoint"
            try:
                importlib.import_module(target)
            except ModuleNotFoundError as exc:
                if exc.name != target:
                    raise
                importlib.import_module(f"{commands_package}.{modinfo.name}")
        else:
            importlib.import_module(f"{commands_package}.{modinfo.name}")
        loaded += 1
        log.debug("Loaded command module %s.%s", commands_package, modinfo.name)

    _assign_categories(commands_package)
    _collect_category_descriptions(commands_package, categories)
    return loaded


def _assign_categories(commands_package: str) -> None:
    """Commands left in 'general' take the first subpackage name as category."""
    prefix = f"{commands_package}."
    for command_obj in REGISTRY.all():
        if command_obj.category != "general" or not command_obj.module.startswith(prefix):
            continue
        segments = command_obj.module[len(prefix):].split(".")
        if len(segments) >= 2:
            command_obj.category = segments[0]


def _collect_category_descriptions(commands_package: str, categories: set[str]) -> None:
    for category in categories:
        module = importlib.import_module(f"{commands_package}.{category}")
        value = getattr(module, "CATEGORY_DESCRIPTION", None)
        if not isinstance(value, str):
            value = module.__doc__ or ""
        REGISTRY.set_category_description(category, value)
