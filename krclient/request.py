"""Signing request envelope sent to the agent."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass

from .config import Settings
from .gitobject import CommitInfo, GitObject, TagInfo
from .notify import create_channel


def canonical_json(obj: dict) -> bytes:
    """Serialize dict to canonical JSON: sorted keys, no whitespace, UTF-8.

    Args:
        obj: Dictionary to serialize.

    Returns:
        UTF-8 encoded canonical JSON bytes.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class SignRequest:
    """A git signing request for one signing attempt."""

    request_id: str
    unix_seconds: int
    payload: GitObject
    user_id: str
    notify_channel: str = ""

    @property
    def kind(self) -> str:
        """``commit`` or ``tag``."""
        return "commit" if isinstance(self.payload, CommitInfo) else "tag"

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "unix_seconds": self.unix_seconds,
            "notify_channel": self.notify_channel,
            "git_sign_request": {
                self.kind: self.payload.to_dict(),
                "user_id": self.user_id,
            },
        }

    def to_json(self) -> bytes:
        return canonical_json(self.to_dict())


def new_request(payload: CommitInfo | TagInfo, user_id: str, settings: Settings) -> SignRequest:
    """Build a request with a fresh id and, if enabled, a notification channel.

    Raises:
        ChannelAllocationError: If the notification channel cannot be created.
    """
    request_id = str(uuid.uuid4())
    channel = ""
    if settings.streaming:
        channel = str(create_channel(settings.notify_dir, request_id))
    return SignRequest(
        request_id=request_id,
        unix_seconds=int(time.time()),
        payload=payload,
        user_id=user_id,
        notify_channel=channel,
    )
