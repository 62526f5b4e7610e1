"""Fallback to the local gpg and emission of remote signatures."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import BinaryIO, Sequence

from .terminal import Terminal

logger = logging.getLogger(__name__)

# Status line git looks for on --status-fd after a successful signature.
SIG_CREATED = b"\n[GNUPG:] SIG_CREATED "


@dataclass
class Streams:
    """The process's standard byte streams."""

    stdin: BinaryIO
    stdout: BinaryIO
    stderr: BinaryIO

    @classmethod
    def from_sys(cls) -> "Streams":
        return cls(sys.stdin.buffer, sys.stdout.buffer, sys.stderr.buffer)


def emit_signature(streams: Streams, armored: str) -> None:
    """Write the armored signature and the gpg success status line.

    stdout is closed before the status line is written so git sees EOF on
    the signature first.
    """
    streams.stdout.write(armored.encode("ascii") + b"\n")
    streams.stdout.flush()
    streams.stdout.close()
    streams.stderr.write(SIG_CREATED)
    streams.stderr.flush()


class FallbackController:
    """Runs the local signing tool in place of the remote flow."""

    def __init__(self, local_tool: str, terminal: Terminal) -> None:
        self._local_tool = local_tool
        self._terminal = terminal

    def _resolve(self) -> str | None:
        return shutil.which(self._local_tool)

    @property
    def available(self) -> bool:
        return self._resolve() is not None

    def _run(self, executable: str, argv: Sequence[str], stdin_bytes: bytes | None) -> int:
        logger.debug("running %s %s", executable, " ".join(argv))
        try:
            completed = subprocess.run([executable, *argv], input=stdin_bytes)
        except OSError as exc:
            logger.error("could not run %s: %s", executable, exc)
            return 1
        return completed.returncode

    def recover(self, stdin_bytes: bytes, argv: Sequence[str]) -> int:
        """Replay the original input through the local tool.

        Returns:
            The tool's exit status, or 1 when no local tool is installed.
        """
        executable = self._resolve()
        if executable is None:
            logger.debug("no local %s found, not falling back", self._local_tool)
            return 1
        self._terminal.status("Falling back to local gpg keychain", style="yellow")
        return self._run(executable, argv, stdin_bytes)

    def delegate(self, argv: Sequence[str]) -> int:
        """Hand the whole invocation to the local tool, stdin included."""
        executable = self._resolve()
        if executable is None:
            self._terminal.status(f"{self._local_tool} not found", style="red")
            return 1
        return self._run(executable, argv, None)
