#!/usr/bin/env python3
# pxenet/db/db.py
from __future__ import annotations
"""
SQLite log of the PXE clients answered by the ProxyDHCP responder.

One row per MAC address; every answer bumps `requests` and refreshes the
last architecture, user class and boot file. The database lives in the
state directory (`<STATE_DIR>/clients.db`) and is selected with
`set_database_path()` during boot.
"""

from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional
import sqlite3
import threading

_DB_LOCK = threading.Lock()
DB_FILE: Optional[Path] = None


def set_database_path(path: str | Path) -> Path:
    global DB_FILE
    p = Path(path).resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    DB_FILE = p
    initialize_database()
    return p


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _open_connection() -> sqlite3.Connection:
    if DB_FILE is None:
        raise RuntimeError("Client database not configured (call set_database_path first)")
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    """Connection that commits on success and is always closed."""
    with closing(_open_connection()) as conn:
        with conn:
            yield conn


def initialize_database() -> None:
    with get_connection() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS clients (
                mac TEXT PRIMARY KEY,
                architecture INTEGER,
                user_class TEXT NOT NULL DEFAULT '',
                boot_file TEXT NOT NULL DEFAULT '',
                server TEXT NOT NULL DEFAULT '',
                requests INTEGER NOT NULL DEFAULT 0,
                first_seen TEXT NOT NULL,
                last_seen TEXT NOT NULL
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_clients_last_seen ON clients(last_seen DESC)")


def record_client(
    *,
    mac: str,
    architecture: Optional[int],
    user_class: str = "",
    boot_file: str = "",
    server: str = "",
) -> None:
    now = _now()
    with _DB_LOCK, get_connection() as conn:
        conn.execute(
            """
            INSERT INTO clients (mac, architecture, user_class, boot_file, server,
                                 requests, first_seen, last_seen)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?)
            ON CONFLICT(mac) DO UPDATE SET
                architecture = excluded.architecture,
                user_class = excluded.user_class,
                boot_file = excluded.boot_file,
                server = excluded.server,
                requests = clients.requests + 1,
                last_seen = excluded.last_seen
            """,
            (mac.upper(), architecture, user_class, boot_file, server, now, now),
        )


def list_clients(*, limit: int | None = None) -> list[sqlite3.Row]:
    sql = "SELECT * FROM clients ORDER BY last_seen DESC, mac"
    params: tuple = ()
    if limit is not None:
        sql += " LIMIT ?"
        params = (int(limit),)
    with get_connection() as conn:
        return list(conn.execute(sql, params).fetchall())


def get_client(mac: str) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM clients WHERE mac=?", (mac.upper(),)).fetchone()


def forget_client(mac: str) -> bool:
    with _DB_LOCK, get_connection() as conn:
        cur = conn.execute("DELETE FROM clients WHERE mac=?", (mac.upper(),))
        return cur.rowcount > 0


def clear_clients() -> int:
    with _DB_LOCK, get_connection() as conn:
        return conn.execute("DELETE FROM clients").rowcount
