"""Classification of a signing round trip into a user-facing outcome."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .agent import DaemonUnreachableError, NotPairedError, SignResponse


class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    NOT_PAIRED = "not_paired"
    DAEMON_UNREACHABLE = "daemon_unreachable"
    REJECTED = "rejected"
    UNKNOWN_ERROR = "unknown_error"
    # Produced by the signing flow before any request is sent.
    PARSE_ERROR = "parse_error"


class DaemonErrorTag(enum.Enum):
    """Error tags the agent may place in a SignResponse."""

    REJECTED = "rejected"

    @classmethod
    def lookup(cls, tag: str) -> "DaemonErrorTag | None":
        try:
            return cls(tag)
        except ValueError:
            return None


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    signature: bytes | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def classify(response: SignResponse | None, transport_error: BaseException | None) -> Outcome:
    """Map a response or transport failure to an Outcome.

    Pure: the same inputs always produce the same Outcome. A response must
    carry exactly one of signature and error.
    """
    if transport_error is not None:
        if isinstance(transport_error, DaemonUnreachableError):
            return Outcome(OutcomeKind.DAEMON_UNREACHABLE, detail=str(transport_error))
        if isinstance(transport_error, NotPairedError):
            return Outcome(OutcomeKind.NOT_PAIRED, detail=str(transport_error))
        return Outcome(OutcomeKind.UNKNOWN_ERROR, detail=str(transport_error))

    if response is None:
        return Outcome(OutcomeKind.UNKNOWN_ERROR, detail="protocol violation: no response")

    if response.error and response.signature is not None:
        return Outcome(
            OutcomeKind.UNKNOWN_ERROR,
            detail="protocol violation: response has both signature and error",
        )

    if response.error:
        tag = DaemonErrorTag.lookup(response.error)
        if tag is DaemonErrorTag.REJECTED:
            return Outcome(OutcomeKind.REJECTED, detail=response.error)
        return Outcome(OutcomeKind.UNKNOWN_ERROR, detail=response.error)

    if response.signature is None:
        return Outcome(
            OutcomeKind.UNKNOWN_ERROR,
            detail="protocol violation: response has neither signature nor error",
        )
    return Outcome(OutcomeKind.SUCCESS, signature=response.signature)


def describe(outcome: Outcome) -> tuple[str, str]:
    """Return the (message, rich style) status line for an outcome."""
    kind = outcome.kind
    if kind is OutcomeKind.SUCCESS:
        return "Success. Request Allowed ✔", "green"
    if kind is OutcomeKind.NOT_PAIRED:
        return str(NotPairedError()), "yellow"
    if kind is OutcomeKind.DAEMON_UNREACHABLE:
        return (
            'Could not connect to Kryptonite daemon. Make sure it is running by typing "kr restart"',
            "red",
        )
    if kind is OutcomeKind.REJECTED:
        return "Request Rejected ✘", "red"
    if kind is OutcomeKind.PARSE_ERROR:
        return f"Could not parse git object: {outcome.detail}", "red"
    return f"Unknown error: {outcome.detail}", "red"
