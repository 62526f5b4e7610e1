"""Progress notifications streamed from the agent while a request is pending.

The agent appends newline-terminated, human-readable messages to a
per-request file. The client tails that file from a background task and
removes it once the request has completed, which also ends the tail.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import BinaryIO

from .errors import KrError
from .terminal import Terminal

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05
CHANNEL_SUFFIX = ".notify"


class ChannelAllocationError(KrError):
    """Raised when a notification channel cannot be created."""


class NotificationChannelClosed(KrError):
    """Raised by a reader once its channel has been removed."""


def create_channel(directory: Path, name: str) -> Path:
    """Create an empty notification channel file.

    Args:
        directory: Directory holding channel files. Created if missing.
        name: Unique channel name, typically the request id.

    Returns:
        Path of the new channel.

    Raises:
        ChannelAllocationError: If the file cannot be created.
    """
    path = directory / f"{name}{CHANNEL_SUFFIX}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
    except OSError as exc:
        raise ChannelAllocationError(
            f"cannot create notification channel in {directory}: {exc}"
        ) from exc
    os.close(fd)
    return path


def remove_channel(path: str | Path) -> None:
    """Delete a channel file, ignoring one that is already gone."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("could not remove notification channel %s: %s", path, exc)


class NotificationReader:
    """Incremental reader over an append-only channel file."""

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        self._path = path
        self._handle = handle
        self._pending = b""

    @classmethod
    def open(cls, path: str | Path) -> "NotificationReader":
        path = Path(path)
        return cls(path, open(path, "rb"))

    @property
    def name(self) -> str:
        return str(self._path)

    def read(self) -> str | None:
        """Return the next complete message.

        Returns:
            The message text including its line terminator, or None when
            nothing new has been appended yet.

        Raises:
            NotificationChannelClosed: If the channel file has been removed.
            OSError: On any other read failure.
        """
        chunk = self._handle.readline()
        if chunk.endswith(b"\n"):
            line, self._pending = self._pending + chunk, b""
            return line.decode("utf-8", errors="replace")
        self._pending += chunk
        if not self._path.exists():
            raise NotificationChannelClosed(self.name)
        return None

    def close(self) -> None:
        self._handle.close()


async def stream_notifications(
    reader: NotificationReader,
    terminal: Terminal,
    poll_interval: float = POLL_INTERVAL,
) -> None:
    """Print each distinct message from the channel until it closes.

    Repeated messages are shown once per run. Read failures, including
    removal of the channel, end the stream without raising.
    """
    printed: set[str] = set()
    try:
        while True:
            try:
                message = reader.read()
            except (NotificationChannelClosed, OSError) as exc:
                logger.debug("notification stream ended: %s", exc)
                return
            if message is None:
                await asyncio.sleep(poll_interval)
                continue
            if message in printed:
                continue
            terminal.write(message)
            printed.add(message)
    finally:
        reader.close()
