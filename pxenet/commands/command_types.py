#!/usr/bin/env python3
# pxenet/commands/command_types.py
from __future__ import annotations

"""
Console command data structures.

- CommandResult: what every console command returns (never raises to the REPL).
- Command: a registered command with metadata and its callable.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping


@dataclass(slots=True)
class CommandResult:
    """
    Result of one console command.

    Attributes:
        ok: False when the command failed; message then starts with "[error]".
        message: Text printed by the console.
        data: Optional payload for callers chaining commands in code.
    """
    ok: bool = True
    message: str = ""
    data: Any = None

    def __str__(self) -> str:
        return self.message if self.message else ("ok" if self.ok else "error")

    @classmethod
    def error(cls, message: str, data: Any = None) -> "CommandResult":
        return cls(ok=False, message=f"[error] {message}", data=data)


@dataclass(slots=True)
class Command:
    """
    A console command.

    name is the primary (kebab-case) name; aliases resolve to it. completers
    maps a parameter name (or "*" for any positional) to a callable returning
    candidate values.
    """

    name: str
    description: str
    example: str
    callback: Callable[..., Any]
    module: str = field(default="", repr=False)
    category: str = "general"
    completers: Mapping[str, Callable[..., object]] = field(default_factory=dict)
    aliases: list[str] = field(default_factory=list)
    param_names: list[str] = field(default_factory=list)

    def invoke(self, *args: Any, **kwargs: Any) -> Any:
        return self.callback(*args, **kwargs)
