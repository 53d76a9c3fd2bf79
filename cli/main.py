"""Event Hub CLI — interact with a running Event Hub API server."""

from __future__ import annotations

import json
import sys
from typing import Any

import click
import httpx
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


# ── Internal helpers ──────────────────────────────────────────────────────────


def _client(url: str) -> httpx.Client:
    return httpx.Client(base_url=url.rstrip("/"), timeout=30)


def _load_file(path: str) -> Any:
    with open(path) as f:
        return yaml.safe_load(f) if path.endswith((".yaml", ".yml")) else json.load(f)


def _parse_data(raw: str) -> Any:
    """Interpret DATA as JSON; anything that isn't valid JSON is sent as a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _die(msg: str, code: int = 1) -> None:
    err_console.print(f"[red]Error:[/] {msg}")
    sys.exit(code)


def _check(resp: httpx.Response) -> None:
    if resp.status_code == 404:
        _die(resp.json().get("detail", "Not found"))
    if resp.is_error:
        _die(f"HTTP {resp.status_code}: {resp.text}")


def _fmt(data: Any) -> str:
    return data if isinstance(data, str) else json.dumps(data, default=str)


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.option(
    "--url", "-u",
    default="http://localhost:8000",
    envvar="HUB_URL",
    show_default=True,
    help="Event Hub API base URL.",
)
@click.option("--json", "json_output", is_flag=True, help="Output raw JSON.")
@click.pass_context
def cli(ctx: click.Context, url: str, json_output: bool) -> None:
    """Event Hub — publish, inspect and stream channel events."""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["json_output"] = json_output


# ── hub channels ──────────────────────────────────────────────────────────────


@cli.command("channels")
@click.pass_obj
def channels(obj: dict) -> None:
    """List channels known to the hub."""
    with _client(obj["url"]) as c:
        resp = c.get("/channels")
    _check(resp)
    data = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(box=box.SIMPLE)
    table.add_column("Channel", style="cyan")
    table.add_column("Subscribers", justify="right")
    table.add_column("Last event")
    for row in data:
        table.add_row(
            row["name"],
            str(row.get("subscribers", 0)),
            "[green]yes[/]" if row.get("has_last_event") else "[dim]-[/]",
        )
    console.print(table)


# ── hub publish ───────────────────────────────────────────────────────────────


@cli.command("publish")
@click.argument("channel")
@click.argument("data", required=False)
@click.option("--file", "-f", "file", type=click.Path(exists=True),
              help="Read the payload from a YAML or JSON file.")
@click.pass_obj
def publish(obj: dict, channel: str, data: str | None, file: str | None) -> None:
    """Publish DATA (JSON, or a plain string) to CHANNEL."""
    if file and data is not None:
        _die("Pass either DATA or --file, not both")
    payload = _load_file(file) if file else (_parse_data(data) if data is not None else None)

    with _client(obj["url"]) as c:
        resp = c.post(f"/channels/{channel}/publish", json={"data": payload})
    _check(resp)
    result = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(f"Published  {channel}")
        for failure in result.get("failures", []):
            err_console.print(
                f"[red]subscriber {failure['subscription_id']} on "
                f"{failure['channel']} failed:[/] {failure['error']}"
            )
    if result.get("failures"):
        sys.exit(1)


# ── hub last ──────────────────────────────────────────────────────────────────


@cli.command("last")
@click.argument("channel")
@click.pass_obj
def last(obj: dict, channel: str) -> None:
    """Show the most recent event published to CHANNEL."""
    with _client(obj["url"]) as c:
        resp = c.get(f"/channels/{channel}/last")
    _check(resp)
    data = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(data, indent=2))
        return
    if not data.get("published"):
        click.echo(f"No events on {channel}.")
        return
    console.print(f"[cyan]{channel}[/] {_fmt(data.get('data'))}")


# ── hub stream ────────────────────────────────────────────────────────────────


@cli.command("stream")
@click.argument("channel", default="*")
@click.option("--replay", is_flag=True, help="Start with the channel's last event.")
@click.option("--count", "-n", type=int, default=None, help="Stop after N events.")
@click.pass_obj
def stream(obj: dict, channel: str, replay: bool, count: int | None) -> None:
    """Stream live events from CHANNEL (default: every channel)."""
    url = obj["url"].rstrip("/") + f"/channels/{channel}/stream"
    params: dict[str, Any] = {"replay": replay}
    if count:
        params["limit"] = count
    received = 0
    try:
        with httpx.Client(timeout=None) as c:
            with c.stream("GET", url, params=params) as resp:
                resp.raise_for_status()
                for line in resp.iter_lines():
                    if not line.startswith("data: "):
                        continue
                    try:
                        event = json.loads(line[6:])
                    except json.JSONDecodeError:
                        continue
                    if obj["json_output"]:
                        click.echo(json.dumps(event))
                    else:
                        console.print(f"[cyan]{event.get('channel', '?')}[/] {_fmt(event.get('data'))}")
                    received += 1
                    if count and received >= count:
                        break
    except httpx.ConnectError:
        _die(f"Cannot connect to {obj['url']}")


# ── hub events ────────────────────────────────────────────────────────────────


@cli.command("events")
@click.option("--channel", "-c", help="Only events originally published to this channel.")
@click.option("--limit", "-l", default=20, show_default=True, help="Maximum rows.")
@click.pass_obj
def events(obj: dict, channel: str | None, limit: int) -> None:
    """Show the event journal, most recent first."""
    params: dict[str, Any] = {"limit": limit}
    if channel:
        params["channel"] = channel
    with _client(obj["url"]) as c:
        resp = c.get("/events", params=params)
    _check(resp)
    data = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(data, indent=2))
        return

    if not data:
        click.echo("No events recorded.")
        return

    table = Table(box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Channel", style="cyan")
    table.add_column("Published at")
    table.add_column("Data")
    for row in data:
        table.add_row(
            str(row["id"]),
            row["channel"],
            row.get("published_at", "-"),
            _fmt(row.get("data"))[:60],
        )
    console.print(table)


# ── hub webhook ───────────────────────────────────────────────────────────────


@cli.group("webhook")
def webhook() -> None:
    """Manage webhook connectors."""


@webhook.command("list")
@click.pass_obj
def webhook_list(obj: dict) -> None:
    """List webhook connectors."""
    with _client(obj["url"]) as c:
        resp = c.get("/webhooks")
    _check(resp)
    data = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(data, indent=2))
        return

    if not data:
        click.echo("No webhooks registered.")
        return

    table = Table(box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Channels")
    table.add_column("Delivered", justify="right")
    table.add_column("Errors", justify="right")
    for row in data:
        errors = row.get("errors", 0)
        table.add_row(
            row["name"],
            row["url"],
            ", ".join(row.get("channels", [])),
            str(row.get("delivered", 0)),
            f"[red]{errors}[/]" if errors else "0",
        )
    console.print(table)


@webhook.command("add")
@click.argument("name")
@click.argument("url")
@click.option("--channel", "-c", "channels", multiple=True,
              help="Channel to forward (repeatable). Default: every channel.")
@click.pass_obj
def webhook_add(obj: dict, name: str, url: str, channels: tuple[str, ...]) -> None:
    """Forward events to URL under connector NAME."""
    payload: dict[str, Any] = {"name": name, "url": url}
    if channels:
        payload["channels"] = list(channels)
    with _client(obj["url"]) as c:
        resp = c.post("/webhooks", json=payload)
    _check(resp)
    data = resp.json()

    if obj["json_output"]:
        click.echo(json.dumps(data, indent=2))
        return
    click.echo(f"Added  {data['name']}  → {data['url']}  [{', '.join(data['channels'])}]")


@webhook.command("remove")
@click.argument("name")
@click.pass_obj
def webhook_remove(obj: dict, name: str) -> None:
    """Disconnect and remove webhook NAME."""
    with _client(obj["url"]) as c:
        resp = c.delete(f"/webhooks/{name}")
    _check(resp)
    click.echo(f"Removed  {name}")
