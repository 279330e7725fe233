"""orderqueue CLI — run the server and work the queue from a terminal.

Usage:
    orderqueue serve                                  # Start the API + WebSocket server
    orderqueue queue                                  # Show the current queue
    orderqueue add Embroidery M 2 Grab --color Black  # Add an order
    orderqueue status <item-id> done                  # Change an order's status
    orderqueue follow-up <item-id> "customer called"  # Attach a note
    orderqueue delete <item-id>                       # Remove an order
    orderqueue products                               # List products
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import logging
import os
import sys
from typing import Optional

import click
import httpx

from orderqueue import __version__
from orderqueue.schemas.queue import QUEUE_STATUSES

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("ORDERQUEUE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the orderqueue server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when an event loop is already running (e.g. when
    invoked through CliRunner inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _check(resp: httpx.Response) -> dict | list:
    """Return the JSON body, or print the server's error and exit 1."""
    if resp.is_error:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        click.secho(f"Error {resp.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return resp.json()


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "in-progress": "cyan",
        "done": "green",
        "next-day": "magenta",
    }
    return colors.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="orderqueue")
def main():
    """orderqueue — shared order queue with live viewer screens."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: ORDERQUEUE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: ORDERQUEUE_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Start the HTTP + WebSocket server."""
    import uvicorn

    from orderqueue.config import settings

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(
        "orderqueue.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("queue")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def queue_cmd(as_json: bool):
    """Show the current queue."""
    _run(_queue_impl(as_json))


async def _queue_impl(as_json: bool):
    async with _client() as c:
        items = _check(await c.get("/api/queue"))

    if as_json:
        click.echo(json.dumps(items, indent=2))
        return
    if not items:
        click.echo("Queue is empty.")
        return

    rows = [
        {
            **item,
            "status": click.style(item["status"], fg=_status_color(item["status"])),
            "notes": len(item.get("followUps") or []),
        }
        for item in items
    ]
    _print_table(rows, [
        ("ID", "id", 36),
        ("Product", "productName", 16),
        ("Size", "size", 5),
        ("Color", "color", 14),
        ("Qty", "quantity", 4),
        ("Courier", "courier", 10),
        ("Status", "status", 20),
        ("Notes", "notes", 5),
    ])


@main.command()
@click.argument("product_name")
@click.argument("size")
@click.argument("quantity", type=int)
@click.argument("courier")
@click.option("--color", default="", help="Product color")
@click.option("--notes", default="", help="Free-text notes")
@click.option("--product-id", default=None, help="Product id this order refers to")
def add(product_name: str, size: str, quantity: int, courier: str,
        color: str, notes: str, product_id: Optional[str]):
    """Add an order to the queue."""
    _run(_add_impl({
        "productId": product_id,
        "productName": product_name,
        "size": size,
        "color": color,
        "quantity": quantity,
        "courier": courier,
        "notes": notes,
    }))


async def _add_impl(body: dict):
    async with _client() as c:
        item = _check(await c.post("/api/queue", json=body))
    click.secho(f"Added {item['productName']} x{item['quantity']} ({item['id']})", fg="green")


@main.command()
@click.argument("item_id")
@click.argument("new_status", type=click.Choice(QUEUE_STATUSES))
def status(item_id: str, new_status: str):
    """Set an order's status."""
    _run(_status_impl(item_id, new_status))


async def _status_impl(item_id: str, new_status: str):
    async with _client() as c:
        item = _check(await c.put(f"/api/queue/{item_id}/status", json={"status": new_status}))
    click.echo(f"{item['id']}: {click.style(item['status'], fg=_status_color(item['status']))}")


@main.command("follow-up")
@click.argument("item_id")
@click.argument("message")
def follow_up(item_id: str, message: str):
    """Attach a follow-up note to an order."""
    _run(_follow_up_impl(item_id, message))


async def _follow_up_impl(item_id: str, message: str):
    async with _client() as c:
        item = _check(await c.post(f"/api/queue/{item_id}/follow-up", json={"message": message}))
    click.secho(f"Follow-up #{len(item['followUps'])} added to {item['id']}", fg="green")


@main.command()
@click.argument("item_id")
def delete(item_id: str):
    """Remove an order from the queue."""
    _run(_delete_impl(item_id))


async def _delete_impl(item_id: str):
    async with _client() as c:
        _check(await c.delete(f"/api/queue/{item_id}"))
    click.echo(f"Deleted {item_id}")


@main.command()
def products():
    """List products with their sizes and colors."""
    _run(_products_impl())


async def _products_impl():
    async with _client() as c:
        items = _check(await c.get("/api/products"))
    for p in items:
        click.secho(p["name"], bold=True)
        click.echo(f"  id:     {p['id']}")
        click.echo(f"  sizes:  {', '.join(p['sizes'])}")
        click.echo(f"  colors: {', '.join(p['colors'])}")


if __name__ == "__main__":
    main()
