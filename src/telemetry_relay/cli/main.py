"""Telemetry Relay CLI — run the relay, push test payloads, check status.

Usage:
    telemetry-relay serve                          # Run on $PORT (default 8080)
    telemetry-relay serve --feed replay --replay-file drive.csv
    telemetry-relay send batch.json                # POST a payload to /data
    cat tick.json | telemetry-relay send -         # ...or from stdin
    telemetry-relay status                         # Viewers + feed state
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx
from pydantic import ValidationError

from telemetry_relay import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_RELAY_URL = "http://localhost:8080"

# Same values as config.FEED_MODES
FEED_CHOICES = ("off", "synthetic", "replay")


def _relay_url(url: Optional[str] = None) -> str:
    return (url or os.environ.get("TELEMETRY_RELAY_URL", DEFAULT_RELAY_URL)).rstrip("/")


def _client(url: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at a running relay."""
    return httpx.AsyncClient(base_url=_relay_url(url), timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(message: str, code: int = 1):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(code)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="telemetry-relay")
def main():
    """Telemetry Relay — fan simulator telemetry out to live dashboards."""


# ---------------------------------------------------------------------------
# telemetry-relay serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Interface to bind (default from TELEMETRY_RELAY_HOST)")
@click.option("--port", "-p", type=int, help="Port to bind (default from $PORT or 8080)")
@click.option("--feed", type=click.Choice(FEED_CHOICES), help="Diagnostic feed mode")
@click.option("--feed-interval", type=float, help="Seconds between feed messages")
@click.option(
    "--replay-file",
    type=click.Path(exists=True, dir_okay=False),
    help="CSV file for --feed replay",
)
@click.option("--log-level", default="info", show_default=True,
              type=click.Choice(["debug", "info", "warning", "error"]))
def serve(host: Optional[str], port: Optional[int], feed: Optional[str],
          feed_interval: Optional[float], replay_file: Optional[str], log_level: str):
    """Run the relay server."""
    overrides = {
        "host": host,
        "port": port,
        "feed_mode": feed,
        "feed_interval": feed_interval,
        "replay_file": replay_file,
    }
    try:
        from telemetry_relay.config import Settings

        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        _fail(f"invalid configuration:\n{e}", code=2)

    click.echo(f"Telemetry relay on http://{settings.host}:{settings.port} "
               f"(feed: {settings.feed_mode})")
    from telemetry_relay.feeds import FeedError
    from telemetry_relay.server import ListenError, run_server

    try:
        run_server(settings, log_level=log_level)
    except (ListenError, FeedError) as e:
        _fail(str(e))


# ---------------------------------------------------------------------------
# telemetry-relay send
# ---------------------------------------------------------------------------


@main.command()
@click.argument("payload", type=click.File("rb"))
@click.option("--url", "-u", help="Relay base URL (or set TELEMETRY_RELAY_URL)")
def send(payload, url: Optional[str]):
    """POST a JSON payload file to the relay's /data endpoint.

    PAYLOAD is a path to a JSON file, or - for stdin.
    """
    _run(_send_impl(payload.read(), url))


async def _send_impl(body: bytes, url: Optional[str]):
    async with _client(url) as c:
        try:
            r = await c.post(
                "/data",
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            _fail(f"cannot reach relay at {_relay_url(url)}: {e}")

        try:
            data = r.json()
        except ValueError:
            data = {"status": "error", "message": r.text}

        if r.is_success:
            click.secho(
                f"Sent {data.get('received_vehicles', 0)} vehicle(s) to "
                f"{data.get('connected_clients', 0)} viewer(s)",
                fg="green",
            )
        else:
            _fail(f"{r.status_code}: {data.get('message', r.text)}")


# ---------------------------------------------------------------------------
# telemetry-relay status
# ---------------------------------------------------------------------------


@main.command()
@click.option("--url", "-u", help="Relay base URL (or set TELEMETRY_RELAY_URL)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw health document")
def status(url: Optional[str], as_json: bool):
    """Show connected viewers and feed state of a running relay."""
    _run(_status_impl(url, as_json))


async def _status_impl(url: Optional[str], as_json: bool):
    async with _client(url) as c:
        try:
            r = await c.get("/api/v1/health")
            r.raise_for_status()
        except httpx.HTTPError as e:
            _fail(f"cannot reach relay at {_relay_url(url)}: {e}")
        health = r.json()

    if as_json:
        click.echo(_pretty_json(health))
        return

    feed = health.get("feed", {})
    feed_state = click.style(
        "running" if feed.get("running") else "idle",
        fg="green" if feed.get("running") else "white",
    )
    click.secho(f"Relay {health.get('version', '?')}: {health.get('status')}", bold=True)
    click.echo(f"  Viewers:  {health.get('connected_clients', 0)}")
    click.echo(f"  Feed:     {feed.get('mode', 'off')} ({feed_state})")
