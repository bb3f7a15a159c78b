#!/usr/bin/env python3
# pxenet/commands/commands.py
from __future__ import annotations

"""Command registry and the @command decorator."""

import inspect
from typing import Any, Callable, Mapping, Optional

from pxenet.commands.command_types import Command


class CommandRegistry:
    """Commands by primary name, plus an alias table and category blurbs."""

    def __init__(self) -> None:
        self._commands_by_name: dict[str, Command] = {}
        self._alias_to_primary: dict[str, str] = {}
        self._category_descriptions: dict[str, str] = {}

    def _taken(self, key: str) -> bool:
        return key in self._commands_by_name or key in self._alias_to_primary

    def register(self, command_obj: Command) -> None:
        """Register a command and its aliases; names are case-insensitive."""
        primary_key = command_obj.name.lower()
        if self._taken(primary_key):
            raise ValueError(f"Command '{command_obj.name}' already registered.")
        for alias in command_obj.aliases:
            if self._taken(alias.lower()) or alias.lower() == primary_key:
                raise ValueError(
                    f"Alias '{alias}' for '{command_obj.name}' collides with an existing name.")

        self._commands_by_name[primary_key] = command_obj
        for alias in command_obj.aliases:
            self._alias_to_primary[alias.lower()] = primary_key

    def unregister(self, name: str) -> bool:
        primary = self._alias_to_primary.get(name.lower(), name.lower())
        command_obj = self._commands_by_name.pop(primary, None)
        if command_obj is None:
            return False
        for alias in command_obj.aliases:
            self._alias_to_primary.pop(alias.lower(), None)
        return True

    def clear(self) -> None:
        self._commands_by_name.clear()
        self._alias_to_primary.clear()
        self._category_descriptions.clear()

    def get(self, name: str) -> Optional[Command]:
        key = name.lower()
        if key in self._alias_to_primary:
            key = self._alias_to_primary[key]
        return self._commands_by_name.get(key)

    def all(self) -> list[Command]:
        """Primary commands only."""
        return list(self._commands_by_name.values())

    def names(self) -> list[str]:
        """Primary names and aliases, for completion."""
        return [*self._commands_by_name.keys(), *self._alias_to_primary.keys()]

    def categories(self) -> dict[str, list[Command]]:
        grouped: dict[str, list[Command]] = {}
        for cmd in self._commands_by_name.values():
            grouped.setdefault(cmd.category, []).append(cmd)
        return grouped

    def set_category_description(self, category: str, description: str) -> None:
        self._category_descriptions[category] = description.strip()

    def get_category_description(self, category: str) -> str:
        return self._category_descriptions.get(category, "")


# Global registry used by the console
REGISTRY = CommandRegistry()


def command(
    *,
    name: str | None = None,
    description: str | None = None,
    example: str | None = None,
    category: str | None = None,
    completers: Mapping[str, Callable[..., object]] | None = None,
    aliases: list[str] | None = None,
    registry: CommandRegistry | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Register a function as a console command.

    The function name becomes the command name (snake_case -> kebab-case)
    unless `name` is given; the docstring is the default description.
    """

    def wrapper(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)
        command_obj = Command(
            name=(name or func.__name__).replace("_", "-"),
            description=(description or (func.__doc__ or "")).strip(),
            example=example or "",
            callback=func,
            category=category or "general",
            completers=completers or {},
            aliases=aliases or [],
            param_names=[p.name for p in signature.parameters.values()],
        )
        command_obj.module = func.__module__
        (registry or REGISTRY).register(command_obj)
        return func

    return wrapper
