"""Shared fixtures for krclient tests."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest

from krclient.config import Settings
from krclient.fallback import Streams
from krclient.terminal import Terminal

COMMIT = (
    b"tree abc123\n"
    b"parent def456\n"
    b"author A <a@x> 1500000000 +0000\n"
    b"committer B <b@x> 1500000000 +0000\n"
    b"\n"
    b"msg\n"
)

TAG = (
    b"object abc123\n"
    b"type commit\n"
    b"tag v1.0.0\n"
    b"tagger T <t@x> 1500000000 +0000\n"
    b"\n"
    b"release v1.0.0\n"
)


class KeepOnCloseBytesIO(io.BytesIO):
    """BytesIO whose contents stay readable after close()."""

    was_closed = False

    def close(self) -> None:
        self.was_closed = True


@pytest.fixture()
def terminal_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def terminal(terminal_output: io.StringIO) -> Terminal:
    return Terminal(terminal_output, force_color=False)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        socket_path="",
        notify_dir=tmp_path / "notify",
        local_tool=str(tmp_path / "no-such-gpg"),
    )


def make_streams(stdin: bytes = b"") -> Streams:
    return Streams(io.BytesIO(stdin), KeepOnCloseBytesIO(), io.BytesIO())


@pytest.fixture()
def make_tool(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable stand-in for gpg.

    The script records its arguments to ``args.txt`` and, when asked, its
    stdin to ``stdin.bin`` next to itself, then exits with ``exit_code``.
    """

    def _make(exit_code: int = 0, read_stdin: bool = True) -> Path:
        script = tmp_path / "fake-gpg"
        lines = ["#!/bin/sh", f'printf "%s\\n" "$@" > "{tmp_path}/args.txt"']
        if read_stdin:
            lines.append(f'cat > "{tmp_path}/stdin.bin"')
        lines.append(f"exit {exit_code}")
        script.write_text("\n".join(lines) + "\n")
        script.chmod(0o755)
        return script

    return _make
