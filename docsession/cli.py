"""
docsession CLI
==============

Operator commands for a session storage file.

Usage:
    docsession status            — Show config and session counts
    docsession sweep             — Remove expired sessions now
    docsession compact           — Compact the storage file
    docsession config            — Show current config
    docsession sessions list     — List sessions
    docsession sessions view     — Show one session's payload
    docsession sessions destroy  — Delete one session
    docsession sessions clear    — Delete all sessions
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import click

from docsession.config import CONFIG_FILE, StoreConfig, load_config
from docsession.log import setup_logging
from docsession.sessions.record import expired_before
from docsession.sessions.store import SessionStore
from docsession.sessions.sweeper import ExpirationSweeper


def _open_store(ctx: click.Context) -> SessionStore:
    config: StoreConfig = ctx.obj["config"]
    # Operator commands never run the background sweeper.
    return SessionStore(config.storage_location, collection=config.collection)


def _storage_missing(ctx: click.Context) -> bool:
    location = Path(ctx.obj["config"].storage_location)
    if not location.exists():
        click.echo(f"No session storage found at {location}.")
        return True
    return False


def _expires(data: dict) -> str:
    value = (data.get("cookie") or {}).get("_expires")
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    return "never"


@click.group()
@click.version_option(version="0.1.0", prog_name="docsession")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_FILE, show_default=True,
    help="Path to the JSON config file.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, debug: bool) -> None:
    """docsession — embedded session store."""
    setup_logging(debug=debug, log_file=False)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = load_config(config_path)


# ── docsession status ────────────────────────────────────────────────────

@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and session counts."""
    config: StoreConfig = ctx.obj["config"]
    interval = config.sweep_interval.total_seconds() if config.sweep_interval else None

    click.echo(f"Config:      {ctx.obj['config_path']}")
    click.echo(f"Storage:     {config.storage_location}")
    click.echo(f"Collection:  {config.collection}")
    click.echo(f"Sweep every: {f'{interval:g}s' if interval else 'disabled'}")

    if _storage_missing(ctx):
        return

    async def _counts() -> tuple[int, int]:
        async with _open_store(ctx) as store:
            total = await store.length()
            expired = await store.documents.count(expired_before(datetime.now(timezone.utc)))
            return total, expired

    total, expired = asyncio.run(_counts())
    click.echo(f"Sessions:    {total} ({expired} expired)")


# ── docsession sweep / compact ───────────────────────────────────────────

@cli.command()
@click.option("--no-compact", is_flag=True, help="Skip compaction after the sweep.")
@click.pass_context
def sweep(ctx: click.Context, no_compact: bool) -> None:
    """Remove expired sessions now."""
    if _storage_missing(ctx):
        return

    async def _sweep():
        async with _open_store(ctx) as store:
            sweeper = ExpirationSweeper(store.documents, interval=1, compact=not no_compact)
            return await sweeper.sweep()

    result = asyncio.run(_sweep())
    if result.error:
        raise click.ClickException(f"Sweep failed: {result.error}")
    click.echo(f"Removed {result.removed} of {result.matched} expired session(s).")
    if result.failed:
        click.echo(f"Failed: {', '.join(result.failed)}")
    if result.compacted:
        click.echo("Storage compacted.")


@cli.command()
@click.pass_context
def compact(ctx: click.Context) -> None:
    """Compact the storage file."""
    if _storage_missing(ctx):
        return

    async def _compact() -> None:
        async with _open_store(ctx) as store:
            await store.documents.compact()

    asyncio.run(_compact())
    click.echo("Storage compacted.")


# ── docsession config ────────────────────────────────────────────────────

@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration as JSON."""
    config: StoreConfig = ctx.obj["config"]
    data = config.model_dump(by_alias=True)
    data["sweepInterval"] = (
        config.sweep_interval.total_seconds() if config.sweep_interval else None
    )
    click.echo(json.dumps(data, indent=2))


# ── docsession sessions ──────────────────────────────────────────────────

@cli.group()
def sessions() -> None:
    """Inspect and manage stored sessions."""
    pass


@sessions.command("list")
@click.pass_context
def sessions_list(ctx: click.Context) -> None:
    """List all sessions."""
    if _storage_missing(ctx):
        return

    async def _all() -> dict:
        async with _open_store(ctx) as store:
            return await store.all()

    rows = asyncio.run(_all())
    if not rows:
        click.echo("No sessions.")
        return

    click.echo(f"{'Session ID':<40} {'Expires (UTC)'}")
    click.echo("-" * 62)
    for sid, data in sorted(rows.items()):
        click.echo(f"{sid:<40} {_expires(data)}")


@sessions.command("view")
@click.argument("sid")
@click.pass_context
def sessions_view(ctx: click.Context, sid: str) -> None:
    """Show the payload of one session."""
    if _storage_missing(ctx):
        return

    async def _get():
        async with _open_store(ctx) as store:
            return await store.get(sid)

    data = asyncio.run(_get())
    if data is None:
        click.echo(f"No session {sid}.")
        return
    click.echo(json.dumps(data, indent=2, default=str))


@sessions.command("destroy")
@click.argument("sid")
@click.pass_context
def sessions_destroy(ctx: click.Context, sid: str) -> None:
    """Delete one session."""
    if _storage_missing(ctx):
        return

    async def _destroy() -> None:
        async with _open_store(ctx) as store:
            await store.destroy(sid)

    asyncio.run(_destroy())
    click.echo(f"Session {sid} destroyed.")


@sessions.command("clear")
@click.confirmation_option(prompt="Are you sure?")
@click.pass_context
def sessions_clear(ctx: click.Context) -> None:
    """Delete all sessions."""
    if _storage_missing(ctx):
        return

    async def _clear() -> int:
        async with _open_store(ctx) as store:
            return await store.clear()

    count = asyncio.run(_clear())
    click.echo(f"Cleared {count} session(s).")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
