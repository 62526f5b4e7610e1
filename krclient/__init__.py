"""Kryptonite client (krclient).

Pair a workstation with the Kryptonite mobile app and sign git commits and
tags with a key held on the phone, falling back to the local gpg.
"""

from .agent import (
    AgentClient,
    SignResponse,
    TransportError,
    DaemonUnreachableError,
    NotPairedError,
    ProtocolViolation,
)
from .config import Settings, ConfigError
from .errors import KrError
from .gitobject import CommitInfo, TagInfo, ParseError, parse_git_object
from .request import SignRequest, new_request, canonical_json
from .notify import NotificationReader, stream_notifications
from .outcome import Outcome, OutcomeKind, classify, describe
from .fallback import FallbackController, emit_signature
from .pairing import PairingSecret, pair
from .crypto import armor_signature

__all__ = [
    "AgentClient",
    "SignResponse",
    "TransportError",
    "DaemonUnreachableError",
    "NotPairedError",
    "ProtocolViolation",
    "Settings",
    "ConfigError",
    "KrError",
    "CommitInfo",
    "TagInfo",
    "ParseError",
    "parse_git_object",
    "SignRequest",
    "new_request",
    "canonical_json",
    "NotificationReader",
    "stream_notifications",
    "Outcome",
    "OutcomeKind",
    "classify",
    "describe",
    "FallbackController",
    "emit_signature",
    "PairingSecret",
    "pair",
    "armor_signature",
]
__version__ = "0.1.0"
