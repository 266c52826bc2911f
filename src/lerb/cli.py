from __future__ import annotations

import signal
from datetime import date
from functools import partial
from pathlib import Path

import anyio
import typer
from rich.console import Console

from . import __version__
from .config import ConfigError, load_settings
from .errors import CredentialError
from .links import extract_links, format_link
from .logging import setup_logging
from .session import BotSession, BotStatus
from .store import StoredLink, default_export_name, export_links
from .telegram.client import TelegramClient

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

_CONFIG_OPTION = typer.Option(
    None, "--config", help="Path to lerb.toml (default: ./.lerb or ~/.lerb)."
)
_TOKEN_OPTION = typer.Option(
    None, "--token", help="Bot token; overrides LERB_BOT_TOKEN and the config."
)

_STATUS_STYLES = {
    BotStatus.IDLE: "dim",
    BotStatus.STARTING: "yellow",
    BotStatus.RUNNING: "green",
    BotStatus.ERROR: "red",
}


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Collect Telegram invite links posted to a bot."""


def _exit_error(message: str) -> None:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=1)


def _print_status(status: BotStatus) -> None:
    console.print(f"status: [{_STATUS_STYLES[status]}]{status.value}[/]")


def _print_link(entry: StoredLink) -> None:
    stamp = entry.accepted_at.astimezone().strftime("%H:%M:%S")
    console.print(
        f"[dim]{stamp}[/] {format_link(entry.url, entry.kind)}", highlight=False
    )


def _resolve_export_path(path: Path) -> Path:
    path = path.expanduser()
    if path.is_dir():
        return path / default_export_name(date.today())
    return path


async def _watch_signals(session: BotSession, scope: anyio.CancelScope) -> None:
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        stopping = False
        async for _ in signals:
            if stopping:
                scope.cancel()
                return
            stopping = True
            console.print(
                "[yellow]stopping after the current poll (Ctrl-C again to force)[/]"
            )
            session.stop()


async def _serve(session: BotSession, client: TelegramClient) -> str | None:
    error: str | None = None
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_signals, session, tg.cancel_scope)
            try:
                await session.run()
            except CredentialError as exc:
                error = str(exc)
            finally:
                tg.cancel_scope.cancel()
    finally:
        with anyio.CancelScope(shield=True):
            await client.close()
    return error


@app.command()
def run(
    config: Path | None = _CONFIG_OPTION,
    token: str | None = _TOKEN_OPTION,
    export: Path | None = typer.Option(
        None,
        "--export",
        help="Write collected links here on exit (a directory gets a dated file name).",
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose console logging."),
) -> None:
    """Poll the bot and collect invite links until interrupted."""
    setup_logging(debug=debug)
    try:
        settings = load_settings(config, token_override=token)
    except ConfigError as exc:
        _exit_error(str(exc))
        return

    client = TelegramClient.from_token(
        settings.bot_token,
        poll_timeout=settings.poll_timeout,
        request_timeout=settings.request_timeout,
    )
    session = BotSession(
        client, settings, on_status=_print_status, on_stored=_print_link
    )
    error = anyio.run(partial(_serve, session, client))

    if session.identity is not None and export is not None:
        target = _resolve_export_path(export)
        count = export_links(session.store, target)
        console.print(f"exported {count} links -> {target}")
    elif session.identity is not None:
        console.print(f"collected {len(session.store)} links")
    if error is not None:
        _exit_error(error)


@app.command()
def check(
    config: Path | None = _CONFIG_OPTION,
    token: str | None = _TOKEN_OPTION,
) -> None:
    """Verify the bot token without polling."""
    setup_logging(debug=False)
    try:
        settings = load_settings(config, token_override=token)
    except ConfigError as exc:
        _exit_error(str(exc))
        return

    async def _check() -> None:
        client = TelegramClient.from_token(
            settings.bot_token, request_timeout=settings.request_timeout
        )
        try:
            identity = await client.verify_identity()
        finally:
            await client.close()
        name = f"@{identity.username}" if identity.username else str(identity.id)
        console.print(f"[green]ok[/] {name}")

    try:
        anyio.run(_check)
    except CredentialError as exc:
        _exit_error(str(exc))


@app.command()
def extract(text: str = typer.Argument(..., help="Text to scan for invite links.")) -> None:
    """Print the invite links found in TEXT, public ones first."""
    for link in extract_links(text):
        typer.echo(format_link(link.url, link.kind))
