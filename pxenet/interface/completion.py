#!/usr/bin/env python3
# pxenet/interface/completion.py
from __future__ import annotations

"""
Token-aware completion for the operator console.

- First token: built-ins plus registered command names and aliases.
- 'help <partial>': categories and command names.
- Later tokens: 'key=' for parameters, values from per-command completers
  (keyed by parameter name, 'posN' or 'pos*').
"""

import shlex

from pxenet.commands import REGISTRY

BUILT_IN_COMMANDS: tuple[str, ...] = ("help", "exit", "quit", "clear")


def split_current_token(raw_input: str) -> tuple[list[str], str]:
    """Return (parts, current_prefix); trailing whitespace starts a new empty token."""
    if not raw_input:
        return [], ""
    try:
        parts = shlex.split(raw_input, posix=True)
    except ValueError:
        parts = raw_input.split()
    if raw_input[-1].isspace():
        parts.append("")
    return parts, (parts[-1] if parts else "")


def suggest(text_before_cursor: str) -> list[str]:
    parts, current_prefix = split_current_token(text_before_cursor.lstrip())

    if len(parts) <= 1:
        universe = [*BUILT_IN_COMMANDS, *REGISTRY.names()]
        return sorted(w for w in universe if w.startswith(current_prefix))

    if parts[0] == "help":
        universe = set(REGISTRY.categories()) | set(REGISTRY.names())
        return sorted(w for w in universe if w.startswith(parts[1]))

    command_obj = REGISTRY.get(parts[0])
    if command_obj is None:
        return []

    argv = parts[1:]
    current = argv[-1] if argv else ""

    if "=" in current:
        key, value_prefix = current.split("=", 1)
        provider = command_obj.completers.get(key)
        if provider is None:
            return []
        return [f"{key}={v}" for v in provider(text=value_prefix, argv=argv, index=None)]

    positional = [t for t in argv if "=" not in t]
    index = max(0, len(positional) - 1)
    provider = command_obj.completers.get(f"pos{index}") or command_obj.completers.get("pos*")
    values = list(provider(text=current, argv=argv, index=index)) if provider else []

    if current:
        keys = sorted({k for k in command_obj.completers if not k.startswith("pos")}
                      | {p for p in command_obj.param_names if p != "args"})
        values += [f"{k}=" for k in keys if f"{k}=".startswith(current)]
    return values
