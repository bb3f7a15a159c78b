#!/usr/bin/env python3
# pxenet/interface/__init__.py
from __future__ import annotations

"""
Operator console: completion, argument binding, dispatch, command loading
and the interactive frontends.
"""

from .completion import BUILT_IN_COMMANDS, suggest
from .parser import bind_args, build_usage, tokenize
from .handler import HELP_TEXT, format_command_help, handle_line, list_categories
from .loader import load_commands
from .cli import BaseCLI, HISTORY_FILE_PATH, PromptToolkitCLI, make_cli, repl

__all__ = [
    "BUILT_IN_COMMANDS",
    "suggest",
    "bind_args",
    "build_usage",
    "tokenize",
    "HELP_TEXT",
    "format_command_help",
    "handle_line",
    "list_categories",
    "load_commands",
    "BaseCLI",
    "HISTORY_FILE_PATH",
    "PromptToolkitCLI",
    "make_cli",
    "repl",
]
