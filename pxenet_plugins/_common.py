# pxenet_plugins/_common.py
from __future__ import annotations

"""Shared lookups for console commands: current config, catalog and server."""

from pxenet.boot import current_state
from pxenet.db import AppConfig, load_config
from pxenet.menu import BootCatalog, default_catalog
from pxenet.server import BootServer, get_active_server


def config() -> AppConfig:
    server = get_active_server()
    if server is not None:
        return server.config
    state = current_state()
    return state.config if state is not None else load_config()


def catalog() -> BootCatalog:
    server = get_active_server()
    if server is not None:
        return server.catalog
    state = current_state()
    if state is not None:
        return state.catalog
    return default_catalog(config().base_url)


def server_or_new() -> BootServer:
    server = get_active_server()
    if server is None:
        server = BootServer(config(), catalog())
    return server


def ensure_database() -> None:
    from pxenet.db import db, set_database_path
    if db.DB_FILE is None:
        set_database_path(config().database_path)
