#!/usr/bin/env python3
# pxenet/commands/__init__.py
from __future__ import annotations

"""Console command types, the global registry and the @command decorator."""

from .command_types import Command, CommandResult
from .commands import REGISTRY, CommandRegistry, command

__all__ = [
    "Command",
    "CommandResult",
    "CommandRegistry",
    "REGISTRY",
    "command",
]
