"""Runtime settings for the krclient tools.

Settings are resolved once from the environment at startup and passed
explicitly to every component that needs them.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .errors import KrError

SOCKET_ENV = "KR_CTL_SOCK"
NOTIFY_DIR_ENV = "KR_NOTIFY_DIR"
NOTIFY_ENV = "KR_NOTIFY"
TIMEOUT_ENV = "KR_REQUEST_TIMEOUT"
LOCAL_TOOL_ENV = "KR_LOCAL_GPG"
DEBUG_ENV = "KR_DEBUG"
TTY_ENVS = ("GPG_TTY", "TTY")

_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(KrError):
    """Raised when an environment setting cannot be interpreted."""


def _default_notify_dir() -> Path:
    return Path(tempfile.gettempdir()) / "kr-notify"


@dataclass(frozen=True)
class Settings:
    """Immutable configuration shared by the kr and krgpg entry points."""

    socket_path: str = ""
    notify_dir: Path = field(default_factory=_default_notify_dir)
    streaming: bool = True
    request_timeout: float | None = None
    local_tool: str = "gpg"
    tty_candidates: tuple[str, ...] = ()
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Raises:
            ConfigError: If ``KR_REQUEST_TIMEOUT`` is not a positive number.
        """
        env = os.environ if environ is None else environ

        timeout: float | None = None
        raw_timeout = env.get(TIMEOUT_ENV, "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as exc:
                raise ConfigError(
                    f"{TIMEOUT_ENV} must be a number of seconds, got {raw_timeout!r}"
                ) from exc
            if timeout <= 0:
                raise ConfigError(f"{TIMEOUT_ENV} must be positive, got {raw_timeout!r}")

        notify_dir = env.get(NOTIFY_DIR_ENV, "")
        return cls(
            socket_path=env.get(SOCKET_ENV, ""),
            notify_dir=Path(notify_dir) if notify_dir else _default_notify_dir(),
            streaming=env.get(NOTIFY_ENV, "1").strip().lower() not in _FALSE_VALUES,
            request_timeout=timeout,
            local_tool=env.get(LOCAL_TOOL_ENV, "") or "gpg",
            tty_candidates=tuple(env[name] for name in TTY_ENVS if env.get(name)),
            debug=env.get(DEBUG_ENV, "").strip().lower() not in _FALSE_VALUES | {""},
        )
