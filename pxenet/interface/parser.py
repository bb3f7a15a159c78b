#!/usr/bin/env python3
# pxenet/interface/parser.py
from __future__ import annotations

"""
Argument binding for console commands.

- tokenize: shell-like split.
- bind_args: positional tokens and key=value tokens bound to a callable's
  signature, coerced by annotation (str, bool, int, float, Path).
- build_usage: compact usage line from a signature.
"""

import inspect
import shlex
from pathlib import Path
from typing import Any, get_args, get_origin

_TRUE = ("1", "true", "yes", "y", "on")


def tokenize(command_line: str) -> list[str]:
    return shlex.split(command_line, posix=True)


def _coerce_value(text_value: str, annotation: Any) -> Any:
    # annotations are strings under `from __future__ import annotations`
    if isinstance(annotation, str):
        annotation = {"bool": bool, "int": int, "float": float, "Path": Path}.get(
            annotation, str)
    if annotation is bool:
        return text_value.lower() in _TRUE
    if annotation in (int, float):
        try:
            return annotation(text_value)
        except ValueError:
            raise TypeError(
                f"Expected {annotation.__name__}, got {text_value!r}") from None
    if annotation is Path:
        return Path(text_value)
    return text_value


def bind_args(func: Any, tokens: list[str]) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """
    Bind a flat token list to `func`.

    Positional tokens fill positional parameters in order, the rest go to
    *args; `key=value` tokens bind keyword-only or positional-or-keyword
    parameters by name. Raises TypeError on missing/extra/unknown arguments.
    """
    parameters = list(inspect.signature(func).parameters.values())
    by_name = {p.name: p for p in parameters}

    positional_tokens: list[str] = []
    keyword_tokens: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if sep and key in by_name:
            keyword_tokens[key] = value
        elif sep and key.isidentifier():
            raise TypeError(f"Unknown argument: {key}")
        else:
            positional_tokens.append(token)

    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    remaining = list(positional_tokens)

    for parameter in parameters:
        if parameter.kind is parameter.VAR_POSITIONAL:
            element = str
            if get_origin(parameter.annotation) is tuple and get_args(parameter.annotation):
                element = get_args(parameter.annotation)[0]
            args.extend(_coerce_value(t, element) for t in remaining)
            remaining = []
        elif parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            if parameter.name in keyword_tokens:
                kwargs[parameter.name] = _coerce_value(
                    keyword_tokens[parameter.name], parameter.annotation)
            elif remaining and not kwargs:
                args.append(_coerce_value(remaining.pop(0), parameter.annotation))
            elif parameter.default is inspect.Parameter.empty:
                raise TypeError(f"Missing required argument: {parameter.name}")
        elif parameter.kind is parameter.KEYWORD_ONLY:
            if parameter.name in keyword_tokens:
                kwargs[parameter.name] = _coerce_value(
                    keyword_tokens[parameter.name], parameter.annotation)
            elif parameter.default is inspect.Parameter.empty:
                raise TypeError(f"Missing required keyword-only argument: {parameter.name}")

    if remaining:
        raise TypeError("Too many positional arguments.")
    return tuple(args), kwargs


def build_usage(command_name: str, func: Any) -> str:
    """E.g. 'menu-script [out] [check=...]'."""
    parts: list[str] = []
    for parameter in inspect.signature(func).parameters.values():
        if parameter.kind is parameter.VAR_POSITIONAL:
            parts.append("[args...]")
        elif parameter.kind is parameter.KEYWORD_ONLY:
            parts.append(f"[{parameter.name}=...]")
        elif parameter.default is inspect.Parameter.empty:
            parts.append(f"<{parameter.name}>")
        else:
            parts.append(f"[{parameter.name}]")
    return " ".join([command_name, *parts])
