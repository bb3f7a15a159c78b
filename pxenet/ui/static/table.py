#!/usr/bin/env python3
# pxenet/ui/static/table.py
from __future__ import annotations

from typing import List, Optional, Sequence

from pxenet.ui.utils import print_line, strip_ansi


def _column_widths(rows: Sequence[Sequence[str]]) -> List[int]:
    """Visual width per column, ignoring ANSI sequences."""
    widths: List[int] = []
    for row in rows:
        for idx, cell in enumerate(row):
            size = len(strip_ansi(cell))
            if idx >= len(widths):
                widths.append(size)
            elif size > widths[idx]:
                widths[idx] = size
    return widths


def format_table(
    rows: Sequence[Sequence[object]],
    headers: Optional[Sequence[object]] = None,
    *,
    padding: int = 1,
    border: bool = True,
) -> str:
    """Return an ASCII table string (ANSI-safe width calculation)."""
    body = [[str(cell) for cell in row] for row in rows]
    head = [str(h) for h in headers] if headers is not None else None
    widths = _column_widths(([head] if head else []) + body)
    if not widths:
        return ""

    pad = " " * padding
    rule = "-" * (sum(widths) + padding * 2 * len(widths) + len(widths) + 1)

    def render(row: Sequence[str]) -> str:
        cells = []
        for idx, width in enumerate(widths):
            cell = row[idx] if idx < len(row) else ""
            fill = " " * (width - len(strip_ansi(cell)))
            cells.append(f"{pad}{cell}{fill}{pad}")
        return "|" + "|".join(cells) + "|"

    lines: List[str] = [rule] if border else []
    if head:
        lines.append(render(head))
        lines.append(render(["-" * w for w in widths]))
    lines.extend(render(row) for row in body)
    if border:
        lines.append(rule)
    return "\n".join(lines)


def print_table(
    rows: Sequence[Sequence[object]],
    headers: Optional[Sequence[object]] = None,
    *,
    padding: int = 1,
    border: bool = True,
    file=None,
) -> None:
    """Print a formatted table to the given file (stdout by default)."""
    print_line(format_table(rows, headers, padding=padding, border=border), file=file)
