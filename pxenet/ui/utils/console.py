#!/usr/bin/env python3
# pxenet/ui/utils/console.py
from __future__ import annotations

import shutil
import sys
import threading

from .ansi import strip_ansi, supports_color

# Shared by console output and the logging handler so service threads
# never interleave half-lines with the operator prompt.
PRINT_MUTEX = threading.Lock()


def print_line(text: str = "", *, file=None, flush: bool = False) -> None:
    """Thread-safe single-line print; strips colors when not on a TTY."""
    target = file or sys.stdout
    if not supports_color(target):
        text = strip_ansi(text)
    with PRINT_MUTEX:
        target.write(f"{text}\n")
        if flush:
            target.flush()


def get_terminal_columns(default: int = 80) -> int:
    """Return current terminal column width with a sensible default."""
    try:
        return shutil.get_terminal_size((default, 20)).columns
    except Exception:
        return default


def set_terminal_title(title_text: str) -> None:
    """Set the terminal window title (xterm OSC 2) when attached to a TTY."""
    if not sys.stdout.isatty():
        return
    with PRINT_MUTEX:
        sys.stdout.write(f"\x1b]2;{title_text}\x07")
        sys.stdout.flush()
