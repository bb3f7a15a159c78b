#!/usr/bin/env python3
# pxenet/interface/handler.py
from __future__ import annotations

"""
Command dispatch and help formatting.

Chaining operators:
  &&  run the next command only if the previous succeeded
  ||  run the next command only if the previous failed
"""

import difflib
import shlex

from pxenet.commands import REGISTRY, CommandResult
from pxenet.interface.parser import bind_args, build_usage, tokenize
from pxenet.ui import clear_screen, format_table

HELP_TEXT = "Type 'help <command>' for more information on a specific command."

_OPERATORS = {"&&", "||"}


def _suggest_similar_names(name: str) -> str:
    universe = REGISTRY.names() + ["help", "exit", "quit"]
    matches = difflib.get_close_matches(name, universe, n=3, cutoff=0.6)
    return f" Did you mean: {', '.join(matches)}?" if matches else ""


def list_categories() -> str:
    categories = REGISTRY.categories()
    if not categories:
        return "No commands loaded."
    rows = []
    for category_name in sorted(categories):
        count = len(categories[category_name])
        rows.append([category_name,
                     f"{count} command{'s' if count != 1 else ''}",
                     REGISTRY.get_category_description(category_name)])
    return format_table(rows, headers=["Category", "Commands", "Description"])


def _format_category_help(category: str) -> str:
    commands_in_category = REGISTRY.categories().get(category)
    if not commands_in_category:
        return f"No such category: {category}"
    rows = [[c.name, ", ".join(c.aliases) or "-", c.description]
            for c in sorted(commands_in_category, key=lambda x: x.name.lower())]
    return format_table(rows, headers=["Command", "Aliases", "Description"])


def format_command_help(name: str) -> str:
    """Help for a command, a category, or 'all'."""
    command_obj = REGISTRY.get(name)
    if command_obj is None:
        categories = REGISTRY.categories()
        if name in categories:
            return _format_category_help(name)
        if name == "all":
            return "\n".join(_format_category_help(c) for c in sorted(categories))
        return f"No such command or category: {name}"

    lines = [
        f"Name:        {command_obj.name}",
        f"Aliases:     {', '.join(command_obj.aliases) or '(none)'}",
        f"Category:    {command_obj.category}",
        f"Description: {command_obj.description or '(none)'}",
        f"Example:     {command_obj.example or '(none)'}",
        f"Usage:       {build_usage(command_obj.name, command_obj.callback)}",
    ]
    return "\n".join(lines)


def _is_success(output: str | None) -> bool:
    if output is None:
        return True
    return not output.lstrip().lower().startswith("[error]")


def run_single_command(input_line: str) -> tuple[str | None, bool]:
    """Run one command (no operators). Returns (output, success)."""
    line = input_line.strip()
    if not line:
        return None, True

    lowered = line.lower()
    if lowered in {"exit", "quit"}:
        raise SystemExit()
    if lowered == "clear":
        clear_screen()
        return None, True
    if lowered == "help":
        return list_categories(), True
    if lowered.startswith("help "):
        return format_command_help(line.partition(" ")[2].strip()), True

    try:
        command_name, *arg_tokens = tokenize(line)
    except ValueError as exc:
        return f"[error] {exc}", False

    command_obj = REGISTRY.get(command_name)
    if command_obj is None:
        return (f"Unknown command: {command_name}."
                f"{_suggest_similar_names(command_name)} {HELP_TEXT}"), False

    try:
        args, kwargs = bind_args(command_obj.callback, arg_tokens)
        result = command_obj.invoke(*args, **kwargs)
    except SystemExit:
        raise
    except TypeError as exc:
        usage = build_usage(command_obj.name, command_obj.callback)
        return f"[error] {exc}\nUsage: {usage}", False
    except Exception as exc:  # noqa: BLE001
        return f"[error] {type(exc).__name__}: {exc}", False

    if isinstance(result, CommandResult):
        text = result.message or None
        return text, result.ok and _is_success(text)
    text = None if result is None else str(result)
    return text, _is_success(text)


def _lex_with_ops(line: str) -> list[str]:
    lex = shlex.shlex(line, posix=True, punctuation_chars="&|")
    lex.whitespace_split = True
    lex.commenters = ""
    return list(lex)


def _split_chain(tokens: list[str]) -> list[str | list[str]]:
    """['a', 'x', '&&', 'b'] -> [['a', 'x'], '&&', ['b']]"""
    out: list[str | list[str]] = []
    current: list[str] = []
    for token in tokens:
        if token in _OPERATORS:
            out.append(current)
            out.append(token)
            current = []
        elif token in {"&", "|"} or set(token) <= {"&", "|"}:
            raise ValueError(f"Unsupported operator: {token}")
        else:
            current.append(token)
    out.append(current)
    return out


def handle_line(input_line: str) -> str | None:
    """
    Execute a possibly chained line. Returns the text to print (outputs of
    the commands that ran, newline-joined) or None.
    """
    if "&&" not in input_line and "||" not in input_line:
        out, _ok = run_single_command(input_line)
        return out

    try:
        chain = _split_chain(_lex_with_ops(input_line))
    except ValueError as exc:
        return f"[error] {exc}"

    for index, item in enumerate(chain):
        if isinstance(item, list) and not item:
            side = "left" if index == 0 else "right"
            op = chain[index + 1] if index == 0 else chain[index - 1]
            return f"[error] Syntax: operator '{op}' missing {side}-hand command."

    outputs: list[str] = []
    success = True
    previous_op: str | None = None
    for item in chain:
        if isinstance(item, str):
            previous_op = item
            continue
        if previous_op == "&&" and not success:
            continue
        if previous_op == "||" and success:
            continue
        out, success = run_single_command(shlex.join(item))
        if out:
            outputs.append(out)
    return "\n".join(outputs) if outputs else None
