#!/usr/bin/env python3
# pxenet/ui/utils/ansi.py
from __future__ import annotations

import os
import re
import sys
from typing import Optional

# Only the SGR codes the boot/console output actually uses.
ANSI = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
    "bright_black": "\x1b[90m",
}

ANSI_REGEX = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

_color_cache: Optional[bool] = None


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_REGEX.sub("", text)


def supports_color(stream=None) -> bool:
    """
    Return True if escape sequences should be written to `stream`.

    Honours NO_COLOR and FORCE_COLOR; otherwise requires a TTY. Windows
    consoles are assumed VT-capable when running under Windows Terminal
    or a TERM-aware shell.
    """
    global _color_cache
    if stream is None and _color_cache is not None:
        return _color_cache

    if os.environ.get("NO_COLOR"):
        result = False
    elif os.environ.get("FORCE_COLOR"):
        result = True
    else:
        target = stream or sys.stdout
        is_tty = bool(getattr(target, "isatty", lambda: False)())
        if os.name == "nt":
            is_tty = is_tty and bool(
                os.environ.get("WT_SESSION") or os.environ.get("TERM"))
        result = is_tty

    if stream is None:
        _color_cache = result
    return result


def clear_screen() -> None:
    """Clear the terminal screen."""
    os.system("cls" if os.name == "nt" else "clear")


def colorize(text: str, *styles: str) -> str:
    """
    Wrap text with SGR styles from ANSI (e.g. 'red', 'bold').
    Unknown style names are ignored; output auto-resets.
    """
    seq = "".join(ANSI[s] for s in styles if s in ANSI)
    return f"{seq}{text}{ANSI['reset']}" if seq else text
