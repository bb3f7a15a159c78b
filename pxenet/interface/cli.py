#!/usr/bin/env python3
# pxenet/interface/cli.py
from __future__ import annotations

"""
Interactive input frontends for the operator console.

    1) prompt_toolkit (completion + history) on a terminal
    2) plain input() otherwise (pipes, tests)
"""

import platform
import sys
from pathlib import Path
from typing import Callable, Optional

from pxenet.interface.completion import split_current_token, suggest
from pxenet.interface.handler import HELP_TEXT, handle_line
from pxenet.ui import colorize, print_line

HISTORY_FILE_PATH = Path.home() / ".pxenet_history"


class BaseCLI:
    """setup() / get_line() / teardown(); usable as a context manager."""

    prompt_text = "pxenet> "

    def setup(self) -> None:
        pass

    def get_line(self) -> str:
        return input(self.prompt_text)

    def teardown(self) -> None:
        pass

    def __enter__(self) -> "BaseCLI":
        self.setup()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()


class PromptToolkitCLI(BaseCLI):
    """Line editor with file history and live completion."""

    def __init__(self, history_file: Path = HISTORY_FILE_PATH) -> None:
        from prompt_toolkit import PromptSession
        from prompt_toolkit.completion import Completer, Completion
        from prompt_toolkit.history import FileHistory
        from prompt_toolkit.key_binding import KeyBindings

        class _Completer(Completer):
            def get_completions(self, document, complete_event):
                text = document.text_before_cursor
                _, current_prefix = split_current_token(text)
                for word in suggest(text):
                    yield Completion(word, start_position=-len(current_prefix))

        kb = KeyBindings()

        @kb.add("backspace")
        def _(event):
            buffer = event.app.current_buffer
            if buffer.selection_state:
                buffer.delete_selection()
            else:
                buffer.delete_before_cursor(1)
            buffer.start_completion(select_first=False)

        self.history_file = history_file
        self._history_cls = FileHistory
        self._session_cls = PromptSession
        self._completer = _Completer()
        self._key_bindings = kb
        self._session = None

    def setup(self) -> None:
        self.history_file.touch(exist_ok=True)
        self._session = self._session_cls(
            history=self._history_cls(str(self.history_file)),
            completer=self._completer,
            complete_while_typing=True,
            key_bindings=self._key_bindings,
        )

    def get_line(self) -> str:
        if self._session is None:
            self.setup()
        return self._session.prompt(f"[pxenet@{platform.node()}]> ")


def make_cli(stream=None) -> BaseCLI:
    """prompt_toolkit on an interactive terminal, plain input otherwise."""
    stream = stream or sys.stdin
    if getattr(stream, "isatty", lambda: False)():
        return PromptToolkitCLI()
    return BaseCLI()


def repl(cli: Optional[BaseCLI] = None, *, on_exit: Optional[Callable[[], None]] = None) -> None:
    """Read-eval-print loop until exit/quit/EOF."""
    cli = cli or make_cli()
    print_line(colorize(HELP_TEXT, "dim"))
    try:
        with cli:
            while True:
                try:
                    line = cli.get_line()
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
                try:
                    output = handle_line(line)
                except SystemExit:
                    break
                if output:
                    error = output.lstrip().lower().startswith("[error]")
                    print_line(colorize(output, "red") if error else output)
    finally:
        if on_exit is not None:
            on_exit()
