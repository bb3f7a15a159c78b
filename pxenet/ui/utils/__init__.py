#!/usr/bin/env python3
# pxenet/ui/utils/__init__.py
from __future__ import annotations
from .ansi import (
    ANSI,
    strip_ansi,
    supports_color,
    clear_screen,
    colorize,
)
from .console import PRINT_MUTEX, print_line, set_terminal_title, get_terminal_columns

__all__ = [
    "ANSI",
    "strip_ansi",
    "supports_color",
    "clear_screen",
    "colorize",
    "PRINT_MUTEX",
    "print_line",
    "set_terminal_title",
    "get_terminal_columns",
]
