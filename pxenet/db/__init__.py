#!/usr/bin/env python3
# pxenet/db/__init__.py
from __future__ import annotations

from .config import AppConfig, DEFAULTS, derive_base_url, load_config, write_default_config
from .db import (
    clear_clients,
    forget_client,
    get_client,
    initialize_database,
    list_clients,
    record_client,
    set_database_path,
)

__all__ = [
    "AppConfig",
    "DEFAULTS",
    "derive_base_url",
    "load_config",
    "write_default_config",
    "clear_clients",
    "forget_client",
    "get_client",
    "initialize_database",
    "list_clients",
    "record_client",
    "set_database_path",
]
