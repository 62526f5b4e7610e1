"""Remote git signing flow.

Parses the object git wants signed, asks the agent for a signature while
tailing progress notifications, and either writes the signature or falls
back to the local gpg.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from . import crypto
from .agent import AgentClient, SignResponse, TransportError
from .config import Settings
from .fallback import FallbackController, Streams, emit_signature
from .gitobject import ParseError, parse_git_object
from .notify import (
    ChannelAllocationError,
    NotificationReader,
    remove_channel,
    stream_notifications,
)
from .outcome import Outcome, OutcomeKind, classify, describe
from .request import new_request
from .terminal import Terminal

logger = logging.getLogger(__name__)


async def request_git_signature(
    data: bytes,
    user_id: str,
    settings: Settings,
    terminal: Terminal,
    client: AgentClient,
) -> Outcome:
    """Obtain a signature over a git object from the paired phone.

    Never raises for expected failures; every failure is returned as an
    Outcome.
    """
    try:
        payload = parse_git_object(data)
    except ParseError as exc:
        return Outcome(OutcomeKind.PARSE_ERROR, detail=str(exc))

    try:
        request = new_request(payload, user_id, settings)
    except ChannelAllocationError as exc:
        return Outcome(OutcomeKind.UNKNOWN_ERROR, detail=str(exc))

    if request.notify_channel:
        try:
            reader = NotificationReader.open(request.notify_channel)
        except OSError as exc:
            logger.debug("not streaming notifications: %s", exc)
        else:
            # Not joined: ends when the channel is removed or the loop exits.
            streamer = asyncio.create_task(stream_notifications(reader, terminal))
            logger.debug("%s tailing %s", streamer.get_name(), request.notify_channel)

    terminal.status(f"Requesting git {request.kind} signature from phone", style="cyan")
    response: SignResponse | None = None
    error: TransportError | None = None
    try:
        response = await client.request_signature(request)
    except TransportError as exc:
        error = exc
    finally:
        if request.notify_channel:
            remove_channel(request.notify_channel)
    return classify(response, error)


def sign_git(
    argv: Sequence[str],
    user_id: str,
    settings: Settings,
    terminal: Terminal,
    streams: Streams,
    client: AgentClient | None = None,
) -> int:
    """Run the remote signing flow for the object on stdin.

    Returns:
        The process exit status.
    """
    stdin_bytes = streams.stdin.read()
    if client is None:
        client = AgentClient(settings.socket_path, timeout=settings.request_timeout)

    outcome = asyncio.run(
        request_git_signature(stdin_bytes, user_id, settings, terminal, client)
    )
    message, style = describe(outcome)
    terminal.status(message, style=style)

    if outcome.ok and outcome.signature is not None:
        emit_signature(streams, crypto.armor_signature(outcome.signature))
        return 0
    logger.debug("remote signing failed (%s), original input:\n%r", outcome.kind.value, stdin_bytes)
    return FallbackController(settings.local_tool, terminal).recover(stdin_bytes, argv)
