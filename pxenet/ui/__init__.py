#!/usr/bin/env python3
# pxenet/ui/__init__.py
from __future__ import annotations
# Re-export convenient top-level API
from .utils import (
    ANSI,
    strip_ansi,
    supports_color,
    clear_screen,
    colorize,
    PRINT_MUTEX,
    print_line,
    set_terminal_title,
    get_terminal_columns,
)
from .static import (
    format_table,
    print_table,
    init_logger,
    ColorizingStreamHandler,
    PlainFormatter,
)

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
    "format_table",
    "print_table",
    "init_logger",
    "ColorizingStreamHandler",
    "PlainFormatter",
]
