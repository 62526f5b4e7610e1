"""Pairing a workstation with the Kryptonite mobile app.

A fresh secret is handed to the agent and shown to the user as a QR code.
The agent answers once the phone has scanned it.
"""

from __future__ import annotations

import asyncio
import io
import socket
from dataclasses import dataclass
from typing import Callable

import qrcode
from qrcode.exceptions import DataOverflowError

from . import crypto
from .agent import AgentClient
from .errors import KrError
from .request import canonical_json
from .terminal import Terminal

PAIRING_VERSION = "1"


class PairingError(KrError):
    """Raised when a pairing secret cannot be presented to the user."""


@dataclass(frozen=True)
class PairingSecret:
    symmetric_key: bytes
    workstation_name: str
    version: str = PAIRING_VERSION

    @classmethod
    def generate(cls) -> "PairingSecret":
        return cls(
            symmetric_key=crypto.generate_symmetric_key(),
            workstation_name=socket.gethostname(),
        )

    def to_json(self) -> bytes:
        return canonical_json({
            "sk": crypto.b64encode(self.symmetric_key),
            "n": self.workstation_name,
            "v": self.version,
        })


def qr_encode(payload: bytes) -> str:
    """Render payload as a QR code made of terminal block characters.

    Raises:
        PairingError: If the payload does not fit in a QR code.
    """
    qr = qrcode.QRCode(border=1, error_correction=qrcode.constants.ERROR_CORRECT_L)
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except DataOverflowError as exc:
        raise PairingError(f"pairing secret too large for a QR code: {exc}") from exc
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


async def pair(
    client: AgentClient,
    terminal: Terminal,
    generate: Callable[[], PairingSecret] = PairingSecret.generate,
    encode: Callable[[bytes], str] = qr_encode,
) -> None:
    """Pair this workstation with a phone. Single attempt, no retry.

    Raises:
        TransportError: If the agent cannot be reached or refuses.
        PairingError: If the QR code cannot be rendered.
    """
    payload = generate().to_json()
    # Nothing is shown unless the agent answers on its socket.
    await client.check_reachable()
    pending = asyncio.create_task(client.pair(payload))
    await asyncio.sleep(0)
    try:
        code = encode(payload)
    except PairingError:
        pending.cancel()
        raise

    try:
        terminal.console.print(
            "Scan this QR Code with the Kryptonite Mobile App to connect it with this workstation.\n",
            markup=False,
        )
        terminal.write(code + "\n")
        await pending
    finally:
        terminal.clear()
