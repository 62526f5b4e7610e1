"""Client for the krd agent daemon.

The agent listens on a Unix socket named by ``KR_CTL_SOCK`` and speaks
HTTP/1.1. Every call opens a fresh connection, sends one request and
reads one response.

Endpoints:
    PUT  /pair     body: pairing secret JSON
    POST /request  body: SignRequest JSON -> SignResponse JSON
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass

import httpx

from . import crypto
from .errors import KrError
from .request import SignRequest

logger = logging.getLogger(__name__)

# Host part is ignored by the agent; httpx needs an absolute URL.
BASE_URL = "http://krd"


class TransportError(KrError):
    """Raised when a round trip with the agent fails."""


class DaemonUnreachableError(TransportError):
    """Raised when the agent socket cannot be located or dialed."""


class NotPairedError(TransportError):
    """Raised when the agent has no paired mobile device."""

    def __init__(self, message: str = "Workstation not yet paired. Please run \"kr pair\" "
                 "and scan the QRCode with the Kryptonite mobile app.") -> None:
        super().__init__(message)


class ProtocolViolation(TransportError):
    """Raised when the agent's response cannot be interpreted."""


@dataclass(frozen=True)
class SignResponse:
    """The agent's answer to a SignRequest."""

    signature: bytes | None = None
    error: str | None = None

    @classmethod
    def from_json(cls, data: bytes) -> "SignResponse":
        """Decode a response body.

        Raises:
            ProtocolViolation: If the body is not a JSON object with a
                base64 ``signature`` and/or string ``error``.
        """
        try:
            obj = json.loads(data)
        except ValueError as exc:
            raise ProtocolViolation(f"response is not JSON: {exc}") from exc
        if not isinstance(obj, dict):
            raise ProtocolViolation("response is not a JSON object")

        signature = obj.get("signature")
        error = obj.get("error")
        if signature is not None and not isinstance(signature, str):
            raise ProtocolViolation("signature must be a base64 string")
        if error is not None and not isinstance(error, str):
            raise ProtocolViolation("error must be a string")
        try:
            sig_bytes = crypto.b64decode(signature) if signature else None
        except ValueError as exc:
            raise ProtocolViolation(f"bad signature encoding: {exc}") from exc
        return cls(signature=sig_bytes, error=error or None)


class AgentClient:
    """HTTP-over-Unix-socket client for the agent daemon.

    Args:
        socket_path: Path to the agent's control socket.
        timeout: Seconds to wait for a round trip, or None to wait
            indefinitely for the phone to answer.
        transport: Optional httpx transport, replacing the Unix socket.
    """

    def __init__(
        self,
        socket_path: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._socket_path = socket_path
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(uds=self._socket_path)
        return httpx.AsyncClient(
            transport=transport,
            base_url=BASE_URL,
            timeout=httpx.Timeout(self._timeout),
        )

    def _require_socket(self) -> None:
        if self._transport is None and not self._socket_path:
            raise DaemonUnreachableError("agent socket path is not set (KR_CTL_SOCK)")

    async def check_reachable(self) -> None:
        """Dial the agent socket once without sending a request.

        Does nothing when a custom transport replaces the socket.

        Raises:
            DaemonUnreachableError: If the socket is unset or cannot be dialed.
        """
        self._require_socket()
        if self._transport is not None:
            return
        try:
            _, writer = await asyncio.open_unix_connection(self._socket_path)
        except OSError as exc:
            raise DaemonUnreachableError(
                f"Cannot connect to agent at {self._socket_path}: {exc}"
            ) from exc
        writer.close()
        await writer.wait_closed()

    async def _call(self, method: str, path: str, body: bytes) -> httpx.Response:
        self._require_socket()
        logger.debug("%s %s (%d bytes) via %s", method, path, len(body), self._socket_path)
        try:
            async with self._client() as client:
                return await client.request(
                    method,
                    path,
                    content=body,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.ConnectError as exc:
            raise DaemonUnreachableError(
                f"Cannot connect to agent at {self._socket_path}: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

    async def request_signature(self, request: SignRequest) -> SignResponse:
        """Send a git signing request and wait for the phone's answer.

        Raises:
            DaemonUnreachableError: If the agent is not running.
            NotPairedError: If no phone is paired with the agent.
            ProtocolViolation: If the response body is malformed.
            TransportError: On any other failure.
        """
        resp = await self._call("POST", "/request", request.to_json())
        if resp.status_code == httpx.codes.NOT_FOUND:
            raise NotPairedError()
        if not resp.is_success:
            raise TransportError(f"agent returned HTTP {resp.status_code}")
        return SignResponse.from_json(resp.content)

    async def pair(self, payload: bytes) -> None:
        """Hand a serialized pairing secret to the agent.

        Returns once the agent answers, which happens after the phone
        has scanned the code.

        Raises:
            DaemonUnreachableError: If the agent is not running.
            TransportError: On any other failure.
        """
        resp = await self._call("PUT", "/pair", payload)
        if not resp.is_success:
            raise TransportError(f"pairing failed: agent returned HTTP {resp.status_code}")
