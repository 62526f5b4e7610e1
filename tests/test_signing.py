"""End-to-end tests for the remote git signing flow.

The agent is faked with httpx.MockTransport and gpg with a shell script.
"""

from __future__ import annotations

import asyncio
import dataclasses
import io
import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from krclient.agent import AgentClient
from krclient.config import Settings
from krclient.crypto import armor_signature
from krclient.outcome import OutcomeKind
from krclient.signing import request_git_signature, sign_git
from krclient.terminal import Terminal

from conftest import COMMIT, TAG, make_streams


def _agent(handler) -> AgentClient:
    return AgentClient("", transport=httpx.MockTransport(handler))


def _respond(status: int = 200, **body) -> Callable[[httpx.Request], httpx.Response]:
    return lambda req: httpx.Response(status, json=body)


ARGV = ["--status-fd=2", "-bsau", "KEY"]


# ---------------------------------------------------------------------------
# request_git_signature
# ---------------------------------------------------------------------------

class TestRequestGitSignature:
    @pytest.mark.asyncio
    async def test_parse_error_sends_nothing(self, settings: Settings, terminal: Terminal) -> None:
        calls: list[httpx.Request] = []

        def handler(req: httpx.Request) -> httpx.Response:
            calls.append(req)
            return httpx.Response(200, json={"signature": "U0lH"})

        outcome = await request_git_signature(b"blob x\n", "KEY", settings, terminal, _agent(handler))
        assert outcome.kind is OutcomeKind.PARSE_ERROR
        assert calls == []

    @pytest.mark.asyncio
    async def test_streams_notifications_and_removes_channel(
        self, settings: Settings, terminal: Terminal, terminal_output: io.StringIO,
    ) -> None:
        channels: list[str] = []

        async def handler(req: httpx.Request) -> httpx.Response:
            channel = json.loads(req.content)["notify_channel"]
            channels.append(channel)
            with open(channel, "ab") as f:
                f.write(b"Waiting for phone approval\n")
                f.write(b"Waiting for phone approval\n")
            await asyncio.sleep(0.3)
            with open(channel, "ab") as f:
                f.write(b"Waiting for phone approval\n")
            return httpx.Response(200, json={"signature": "U0lH"})

        outcome = await request_git_signature(COMMIT, "KEY", settings, terminal, _agent(handler))

        assert outcome.ok
        assert outcome.signature == b"SIG"
        assert terminal_output.getvalue().count("Waiting for phone approval") == 1
        assert "Requesting git commit signature from phone" in terminal_output.getvalue()
        assert not Path(channels[0]).exists()

    @pytest.mark.asyncio
    async def test_channel_removed_on_failure(self, settings: Settings, terminal: Terminal) -> None:
        channels: list[str] = []

        def handler(req: httpx.Request) -> httpx.Response:
            channels.append(json.loads(req.content)["notify_channel"])
            return httpx.Response(404)

        outcome = await request_git_signature(TAG, "KEY", settings, terminal, _agent(handler))
        assert outcome.kind is OutcomeKind.NOT_PAIRED
        assert not Path(channels[0]).exists()

    @pytest.mark.asyncio
    async def test_streaming_disabled(self, settings: Settings, terminal: Terminal) -> None:
        settings = dataclasses.replace(settings, streaming=False)
        bodies: list[dict] = []

        def handler(req: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(req.content))
            return httpx.Response(200, json={"signature": "U0lH"})

        outcome = await request_git_signature(COMMIT, "KEY", settings, terminal, _agent(handler))
        assert outcome.ok
        assert bodies[0]["notify_channel"] == ""


# ---------------------------------------------------------------------------
# sign_git scenarios
# ---------------------------------------------------------------------------

class TestSignGit:
    def test_commit_signed_remotely(self, settings: Settings, terminal: Terminal) -> None:
        streams = make_streams(COMMIT)
        bodies: list[dict] = []

        def handler(req: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(req.content))
            return httpx.Response(200, json={"signature": "U0lH"})

        code = sign_git(ARGV, "KEY", settings, terminal, streams, client=_agent(handler))

        assert code == 0
        assert streams.stdout.getvalue() == (armor_signature(b"SIG") + "\n").encode()
        assert streams.stdout.was_closed
        assert b"SIG_CREATED" in streams.stderr.getvalue()
        commit = bodies[0]["git_sign_request"]["commit"]
        assert commit["tree"] == "abc123"
        assert commit["parent"] == "def456"
        assert commit["author"].startswith("A <a@x>")
        assert commit["committer"].startswith("B <b@x>")
        assert bodies[0]["git_sign_request"]["user_id"] == "KEY"

    def test_agent_down_falls_back_to_local_gpg(
        self, settings: Settings, terminal: Terminal, make_tool: Callable[..., Path], tmp_path: Path,
    ) -> None:
        settings = dataclasses.replace(settings, local_tool=str(make_tool(exit_code=5)))
        streams = make_streams(COMMIT)

        code = sign_git(ARGV, "KEY", settings, terminal, streams, client=AgentClient(str(tmp_path / "krd.sock")))

        assert code == 5
        assert (tmp_path / "stdin.bin").read_bytes() == COMMIT
        assert (tmp_path / "args.txt").read_text().split("\n")[:3] == ARGV
        assert streams.stdout.getvalue() == b""

    def test_rejected_without_local_gpg(
        self, settings: Settings, terminal: Terminal, terminal_output: io.StringIO,
    ) -> None:
        streams = make_streams(COMMIT)
        code = sign_git(ARGV, "KEY", settings, terminal, streams, client=_agent(_respond(error="rejected")))

        assert code == 1
        assert streams.stdout.getvalue() == b""
        assert not streams.stdout.was_closed
        assert "Request Rejected" in terminal_output.getvalue()

    def test_malformed_tag_falls_back(
        self, settings: Settings, terminal: Terminal, terminal_output: io.StringIO,
        make_tool: Callable[..., Path], tmp_path: Path,
    ) -> None:
        settings = dataclasses.replace(settings, local_tool=str(make_tool(exit_code=0)))
        data = b"object abc\ntype commit\ntag v1\n\nmessage\n"
        streams = make_streams(data)

        code = sign_git(ARGV, "KEY", settings, terminal, streams, client=_agent(_respond(signature="U0lH")))

        assert code == 0
        assert (tmp_path / "stdin.bin").read_bytes() == data
        assert "Could not parse git object" in terminal_output.getvalue()
        assert "Falling back to local gpg keychain" in terminal_output.getvalue()

    def test_not_paired_status_line(
        self, settings: Settings, terminal: Terminal, terminal_output: io.StringIO,
    ) -> None:
        code = sign_git(ARGV, "KEY", settings, terminal, make_streams(TAG), client=_agent(_respond(404)))
        assert code == 1
        assert "not yet paired" in terminal_output.getvalue()
