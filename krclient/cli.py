"""Command-line entry points.

``kr`` pairs the workstation with the mobile app. ``krgpg`` is configured
as git's ``gpg.program``: it signs commits and tags remotely and hands
every other gpg invocation to the real gpg untouched.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import List, Optional, Sequence

import click
import typer

from .agent import AgentClient, TransportError
from .config import ConfigError, Settings
from .fallback import FallbackController, Streams
from .pairing import PairingError, pair
from .signing import sign_git
from .terminal import Terminal

logger = logging.getLogger("krclient")


def _configure_logging(terminal: Terminal, debug: bool) -> None:
    handler = logging.StreamHandler(terminal.stream)
    handler.setFormatter(logging.Formatter("[krclient] %(levelname)s %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False


def _close_terminal(terminal: Terminal) -> None:
    logger.handlers.clear()
    terminal.close()


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as exc:
        typer.echo(f"krclient: {exc}", err=True)
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# kr
# ---------------------------------------------------------------------------

kr_app = typer.Typer(
    name="kr",
    help="communicate with the Kryptonite agent and mobile app",
    no_args_is_help=True,
    add_completion=False,
)


@kr_app.command("pair")
@kr_app.command("p", hidden=True)
@kr_app.command("me", help="Alias for pair.")
@kr_app.command("list", help="Alias for pair.")
@kr_app.command("ls", hidden=True)
def pair_command() -> None:
    """Generate and display a pairing QR code."""
    settings = _load_settings()
    terminal = Terminal(sys.stdout)
    diagnostics = Terminal.open(settings)
    _configure_logging(diagnostics, settings.debug)
    client = AgentClient(settings.socket_path, timeout=settings.request_timeout)
    try:
        asyncio.run(pair(client, terminal))
    except (TransportError, PairingError) as exc:
        logger.error("pairing failed: %s", exc)
        raise typer.Exit(1)
    finally:
        _close_terminal(diagnostics)


def kr_main() -> None:
    kr_app()


# ---------------------------------------------------------------------------
# krgpg
# ---------------------------------------------------------------------------

@click.command(name="krgpg", add_help_option=False)
@click.option("-a", "--armor", "armor", is_flag=True, help="Output ascii armor")
@click.option("-b", "--detach-sign", "detach_sign", is_flag=True, help="Create a detached signature")
@click.option("-s", "--sign", "sign", is_flag=True, help="Create a signature")
@click.option("-u", "--local-user", "local_user", default="", help="User ID")
@click.option("--status-fd", "status_fd", default="", help="status file descriptor")
@click.option("-bsau", "bsau", is_flag=True, help="Combined -b -s -a -u form used by git")
@click.option("--verify", "verify", is_flag=True, help="Verify a signature")
@click.option("--keyid-format", "keyid_format", default="", help="Key ID format")
@click.argument("args", nargs=-1)
def gpg_command(
    armor: bool,
    detach_sign: bool,
    sign: bool,
    local_user: str,
    status_fd: str,
    bsau: bool,
    verify: bool,
    keyid_format: str,
    args: tuple[str, ...],
) -> Optional[str]:
    """Decide how to handle a gpg invocation.

    Returns:
        The user id to sign as when this is a remote signing request,
        otherwise None.
    """
    if bsau or (sign and detach_sign and armor):
        if local_user:
            return local_user
        return args[-1] if args else ""
    return None


def run_gpg(
    argv: Sequence[str],
    settings: Settings,
    terminal: Terminal,
    streams: Streams,
    client: AgentClient | None = None,
) -> int:
    """Dispatch one krgpg invocation and return its exit status."""
    argv = list(argv)
    fallback = FallbackController(settings.local_tool, terminal)
    try:
        user_id = gpg_command.main(args=argv, prog_name="krgpg", standalone_mode=False)
    except click.ClickException as exc:
        terminal.status(exc.format_message(), style="red")
        return fallback.delegate(argv)

    if user_id is None:
        return fallback.delegate(argv)
    return sign_git(argv, user_id, settings, terminal, streams, client=client)


def gpg_main(argv: List[str] | None = None) -> None:
    settings = _load_settings()
    terminal = Terminal.open(settings)
    _configure_logging(terminal, settings.debug)
    try:
        code = run_gpg(sys.argv[1:] if argv is None else argv, settings, terminal, Streams.from_sys())
    finally:
        _close_terminal(terminal)
    sys.exit(code)
