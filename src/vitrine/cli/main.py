"""Vitrine CLI — storefront admin from the terminal.

Usage:
    vitrine login admin@shop.test                # Log in, session saved to ~/.vitrine
    vitrine whoami                               # Current user
    vitrine orders list --status pending         # Orders table
    vitrine orders show ORD-1                    # One order
    vitrine orders set-status ORD-1 shipped      # Change status
    vitrine orders cancel ORD-1                  # Cancel
    vitrine orders watch ORD-1                   # Live payment/status updates
    vitrine analytics dashboard --period month   # Dashboard snapshot
    vitrine analytics watch                      # Refresh dashboard on server push
    vitrine logout
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from typing import Any, Optional

import click

from vitrine import __version__
from vitrine.client import StorefrontClient
from vitrine.config import settings
from vitrine.log import configure_logging
from vitrine.realtime.events import RealtimeEvent
from vitrine.realtime.room import RoomState
from vitrine.schemas.orders import ORDER_STATUSES
from vitrine.state.actions import ShowModal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _client() -> StorefrontClient:
    """Build a client from settings (tests swap this out)."""
    return StorefrontClient(settings)


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Inside an already running loop (e.g. an async test) the coroutine is
    run on a worker thread with its own loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _print_modal(action: Any) -> None:
    """Store listener: show response modals as coloured lines."""
    if not isinstance(action, ShowModal):
        return
    color = {"success": "green", "error": "red", "warning": "yellow"}.get(action.type, "white")
    click.secho(f"{action.title}: {action.message}", fg=color, err=action.type == "error")
    for field, messages in (action.errors or {}).items():
        for message in messages:
            click.secho(f"  {field}: {message}", fg=color, err=True)


def _pretty_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _doc(payload: Any) -> Any:
    """Unwrap the backend's {"success": ..., "data": ...} envelope."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _order_rows(payload: Any) -> list[dict]:
    data = _doc(payload)
    if isinstance(data, dict):
        data = data.get("orders", [])
    return [row for row in data if isinstance(row, dict)] if isinstance(data, list) else []


def _order_id(order: dict) -> str:
    return str(order.get("_id") or order.get("id") or "—")


def _payment_status(order: dict) -> str:
    payment = order.get("payment")
    if isinstance(payment, dict) and payment.get("status"):
        return payment["status"]
    return order.get("paymentStatus") or "—"


def _print_table(rows: list[dict], columns: list[tuple[str, Any, int]]):
    """Print a simple ASCII table.

    columns: list of (header, key or callable, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        cells = []
        for _, key, width in columns:
            value = key(row) if callable(key) else row.get(key, "—")
            cells.append(str(value if value is not None else "—")[:width].ljust(width))
        click.echo("  ".join(cells))


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "processing": "cyan",
        "shipped": "blue",
        "delivered": "green",
        "cancelled": "red",
        "paid": "green",
        "failed": "red",
        "refunded": "magenta",
    }
    return colors.get(status, "white")


ORDER_COLUMNS = [
    ("ID", _order_id, 26),
    ("STATUS", "status", 12),
    ("PAYMENT", _payment_status, 10),
    ("TOTAL", "totalAmount", 10),
    ("CREATED", "createdAt", 24),
]


def _print_order(order: dict) -> None:
    status = order.get("status") or "—"
    payment = _payment_status(order)
    click.secho(f"Order {_order_id(order)}", bold=True)
    click.echo(f"  Status:   {click.style(status, fg=_status_color(status))}")
    click.echo(f"  Payment:  {click.style(payment, fg=_status_color(payment))}")
    if order.get("totalAmount") is not None:
        click.echo(f"  Total:    {order['totalAmount']}")
    if order.get("trackingNumber"):
        click.echo(f"  Tracking: {order['trackingNumber']}")


def _print_update(event: RealtimeEvent) -> None:
    fields = {
        k: v for k, v in event.model_dump(by_alias=True, exclude_none=True).items()
        if k != "event"
    }
    details = " ".join(f"{k}={v}" for k, v in fields.items())
    click.secho(f"[{event.event}] {details}".rstrip(), fg="cyan")


async def _hold(room, timeout: Optional[float]) -> None:
    if timeout is not None:
        await asyncio.sleep(timeout)
    else:
        await room.wait()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="vitrine")
def main():
    """Vitrine — storefront admin: orders, analytics, live updates."""
    configure_logging()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and save the session."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        result = await shop.auth.login({"email": email, "password": password})
        if not result.ok:
            click.secho(f"Login failed: {result.error.message}", fg="red", err=True)
            sys.exit(1)
        user = shop.session.user or {}
        click.secho(f"Logged in as {user.get('name') or user.get('email') or email}", fg="green")


@main.command()
def logout():
    """Log out and forget the saved session."""
    _run(_logout_impl())


async def _logout_impl():
    async with _client() as shop:
        if not shop.session.is_authenticated:
            click.echo("Not logged in.")
            return
        await shop.auth.logout()
        click.secho("Logged out.", fg="green")


@main.command()
def whoami():
    """Show the logged-in user."""
    _run(_whoami_impl())


async def _whoami_impl():
    async with _client() as shop:
        if not shop.session.is_authenticated:
            click.secho("Not logged in. Run: vitrine login <email>", fg="yellow", err=True)
            sys.exit(1)
        result = await shop.auth.get_me()
        if not result.ok:
            click.secho(f"Session rejected: {result.error.message}", fg="red", err=True)
            sys.exit(1)
        user = _doc(result.data) or {}
        click.echo(f"{user.get('name', '—')} <{user.get('email', '—')}>  role={user.get('role', '—')}")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@main.group()
def orders():
    """List, inspect and update orders."""


@orders.command("list")
@click.option("--status", "-s", type=click.Choice(ORDER_STATUSES))
@click.option("--search", help="Free-text search")
@click.option("--page", type=int, default=None)
@click.option("--limit", type=int, default=None)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def orders_list(status, search, page, limit, as_json):
    """List orders."""
    _run(_orders_list_impl(status, search, page, limit, as_json))


async def _orders_list_impl(status, search, page, limit, as_json):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        params = {"status": status, "search": search, "page": page, "limit": limit}
        result = await shop.orders.get_orders({k: v for k, v in params.items() if v is not None})
        if not result.ok:
            sys.exit(1)
        if as_json:
            click.echo(_pretty_json(result.data))
            return
        rows = _order_rows(result.data)
        if not rows:
            click.echo("No orders.")
            return
        _print_table(rows, ORDER_COLUMNS)


@orders.command("show")
@click.argument("order_id")
def orders_show(order_id: str):
    """Show one order."""
    _run(_orders_show_impl(order_id))


async def _orders_show_impl(order_id: str):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        result = await shop.orders.get_order(order_id)
        if not result.ok:
            sys.exit(1)
        _print_order(_doc(result.data) or {})


@orders.command("set-status")
@click.argument("order_id")
@click.argument("status", type=click.Choice(ORDER_STATUSES))
@click.option("--tracking", help="Tracking number")
@click.option("--notes", help="Internal note")
def orders_set_status(order_id: str, status: str, tracking: Optional[str], notes: Optional[str]):
    """Change an order's status."""
    _run(_orders_set_status_impl(order_id, status, tracking, notes))


async def _orders_set_status_impl(order_id, status, tracking, notes):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        body = {"id": order_id, "status": status, "trackingNumber": tracking, "notes": notes}
        result = await shop.orders.update_order_status({k: v for k, v in body.items() if v is not None})
        if not result.ok:
            sys.exit(1)


@orders.command("cancel")
@click.argument("order_id")
@click.confirmation_option(prompt="Cancel this order?")
def orders_cancel(order_id: str):
    """Cancel an order."""
    _run(_orders_cancel_impl(order_id))


async def _orders_cancel_impl(order_id: str):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        result = await shop.orders.cancel_order(order_id)
        if not result.ok:
            sys.exit(1)


@orders.command("watch")
@click.argument("order_id")
@click.option("--timeout", type=float, default=None, help="Stop after N seconds")
def orders_watch(order_id: str, timeout: Optional[float]):
    """Follow an order's payment and status updates live."""
    _run(_orders_watch_impl(order_id, timeout))


async def _orders_watch_impl(order_id: str, timeout: Optional[float]):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        subscription = await shop.orders.get_order.subscribe(order_id)
        if subscription.error is not None:
            subscription.unsubscribe()
            sys.exit(1)
        _print_order(_doc(subscription.data) or {})

        def on_update(event: RealtimeEvent) -> None:
            _print_update(event)
            _print_order(_doc(subscription.data) or {})

        async with subscription, shop.live("order", order_id, on_update=on_update) as room:
            if room.state == RoomState.DISCONNECTED:
                click.secho("Live updates unavailable (socket server unreachable).", fg="yellow", err=True)
                return
            click.secho(f"Watching order {order_id}. Ctrl-C to stop.", dim=True)
            await _hold(room, timeout)


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@main.group()
def analytics():
    """Dashboard numbers."""


def _range_params(start: Optional[str], end: Optional[str], period: Optional[str]) -> dict:
    params = {"startDate": start, "endDate": end, "period": period}
    return {k: v for k, v in params.items() if v is not None}


def _print_dashboard(payload: Any) -> None:
    data = _doc(payload)
    if not isinstance(data, dict):
        click.echo(_pretty_json(data))
        return
    click.secho("Dashboard", bold=True)
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            continue
        click.echo(f"  {key:<20} {value}")


@analytics.command("dashboard")
@click.option("--start", help="Start date (YYYY-MM-DD)")
@click.option("--end", help="End date (YYYY-MM-DD)")
@click.option("--period", help="day|week|month|year")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def analytics_dashboard(start, end, period, as_json):
    """Show the analytics dashboard."""
    _run(_analytics_dashboard_impl(start, end, period, as_json))


async def _analytics_dashboard_impl(start, end, period, as_json):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        result = await shop.analytics.get_analytics_dashboard(_range_params(start, end, period))
        if not result.ok:
            sys.exit(1)
        if as_json:
            click.echo(_pretty_json(result.data))
        else:
            _print_dashboard(result.data)


@analytics.command("watch")
@click.option("--room", "room_id", default="dashboard", show_default=True, help="Analytics room id")
@click.option("--period", help="day|week|month|year")
@click.option("--timeout", type=float, default=None, help="Stop after N seconds")
def analytics_watch(room_id: str, period: Optional[str], timeout: Optional[float]):
    """Re-print the dashboard whenever the server says it changed."""
    _run(_analytics_watch_impl(room_id, period, timeout))


async def _analytics_watch_impl(room_id: str, period: Optional[str], timeout: Optional[float]):
    async with _client() as shop:
        shop.store.subscribe(_print_modal)
        subscription = await shop.analytics.get_analytics_dashboard.subscribe(
            _range_params(None, None, period)
        )
        if subscription.error is not None:
            subscription.unsubscribe()
            sys.exit(1)
        _print_dashboard(subscription.data)

        def on_update(event: RealtimeEvent) -> None:
            _print_update(event)
            _print_dashboard(subscription.data)

        async with subscription, shop.live("analytics", room_id, on_update=on_update) as room:
            if room.state == RoomState.DISCONNECTED:
                click.secho("Live updates unavailable (socket server unreachable).", fg="yellow", err=True)
                return
            click.secho("Watching analytics. Ctrl-C to stop.", dim=True)
            await _hold(room, timeout)


if __name__ == "__main__":
    main()
