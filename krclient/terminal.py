"""Diagnostic output for the interactive user.

git captures the signing program's stdout and stderr, so progress and
status lines go to the user's terminal device when one is advertised via
``GPG_TTY`` or ``TTY``, and to stderr otherwise.
"""

from __future__ import annotations

import sys
from typing import TextIO

from rich.console import Console

from .config import Settings

PREFIX = "Kryptonite ▶ "


class Terminal:
    """Writes raw text and colored status lines to one stream."""

    def __init__(
        self,
        stream: TextIO,
        force_color: bool | None = None,
        owns_stream: bool = False,
    ) -> None:
        self.stream = stream
        self._owns_stream = owns_stream
        self.console = Console(
            file=stream,
            force_terminal=force_color,
            highlight=False,
            soft_wrap=True,
        )

    @classmethod
    def open(cls, settings: Settings) -> "Terminal":
        """Open the first writable tty named in settings, else stderr."""
        for path in settings.tty_candidates:
            try:
                return cls(open(path, "w", encoding="utf-8"), owns_stream=True)
            except OSError:
                continue
        return cls(sys.stderr)

    def write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def status(self, message: str, style: str) -> None:
        """Print one prefixed status line in the given rich style."""
        self.console.print(PREFIX + message, style=style, markup=False)

    def clear(self) -> None:
        self.console.clear()

    def close(self) -> None:
        """Close the stream if this terminal opened it."""
        if self._owns_stream:
            self.stream.close()
