"""MCP server for dday: exposes client and milestone tools to AI assistants."""

from __future__ import annotations

import json
from datetime import date

from mcp.server.fastmcp import FastMCP

from dday.config import get_settings
from dday.models import DDayError, Milestone, MilestoneStatus, to_date
from dday.notify import WebhookNotifier
from dday.persistence import Store
from dday.rollup import ClientFilter, daily_summary, dashboard_stats, matches, summarize_client
from dday.service import change_status, create_client, remove_client
from dday.urgency import classify, d_label, sort_by_deadline

mcp = FastMCP(
    "dday",
    instructions="""\
dday tracks relocation onboarding for clients. Every client has a departure \
date ("D-Day"); when a client is added, a fixed set of milestones is generated \
with deadlines a fixed number of days before (or on) that date, e.g. \
"Residence Visa Arrived" at D-16.

Key concepts:
- **Milestone status**: pending, completed or delayed. Any status can move to \
any other. Completing stamps the completion date; other moves clear it.
- **Overdue**: a pending milestone whose deadline is before the observation date.
- **D-label**: a deadline relative to departure: D-16, D-Day, D+2.
- **Urgency tier**: how close a client's departure is: critical (<=3 days), \
high (<=7), medium (<=14), low, past, or none without a date.

All read tools accept an optional `on` date (YYYY-MM-DD); it defaults to today.

When the user asks what needs attention today, use get_daily_summary. For an \
overview, use get_dashboard or list_clients. For one client's checklist, use \
get_client. Use set_milestone_status to complete, delay or reopen milestones.\
""",
)


def _get_store() -> Store:
    return Store(get_settings().db_path)


def _get_notifier() -> WebhookNotifier:
    settings = get_settings()
    return WebhookNotifier(settings.webhook_url, dry_run=settings.webhook_dry_run)


def _observed(on: str | None) -> date:
    return to_date(on) or date.today()


def _milestone_to_dict(m: Milestone, departure: date | None, observed: date) -> dict:
    d = {"id": m.id, **m.to_dict()}
    d["d_label"] = d_label(m.deadline, departure)
    d["urgency"] = classify(m, observed).value
    return d


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
def add_client(
    name: str,
    departure_date: str,
    phone: str | None = None,
    arrival_date: str | None = None,
    coordinator_id: str | None = None,
) -> str:
    """Add a client and generate their milestone schedule.

    Args:
        name: Client full name
        departure_date: Departure date / D-Day (YYYY-MM-DD), required
        phone: Phone number
        arrival_date: Arrival date (YYYY-MM-DD)
        coordinator_id: ID of the coordinator assigned to the client
    """
    store = _get_store()
    try:
        client, milestones = create_client(
            store,
            get_settings().role,
            name,
            departure_date,
            phone=phone,
            coordinator_id=coordinator_id,
            arrival_date=arrival_date,
        )
    except (DDayError, ValueError) as e:
        return f"Error: {e}"
    return f"Added '{client.name}' as {client.id} with {len(milestones)} milestones."


@mcp.tool()
def set_milestone_status(milestone_id: str, status: str, on: str | None = None, reason: str | None = None) -> str:
    """Set a milestone's status. Completing records the completion date.

    Args:
        milestone_id: Milestone ID (e.g. "M-12")
        status: "pending", "completed" or "delayed"
        on: Date the change happened (YYYY-MM-DD), default today
        reason: Optional note sent along with the notification
    """
    try:
        new_status = MilestoneStatus(status)
        observed = _observed(on)
    except ValueError as e:
        return f"Error: {e}"

    try:
        change = change_status(_get_store(), _get_notifier(), milestone_id, new_status, observed, reason=reason)
    except KeyError:
        return f"Error: milestone {milestone_id} not found."

    result = f"Set {milestone_id} to {change.milestone.status.value}."
    if change.delivery.get("status") == "error":
        result += f"\n  Notification failed: {change.delivery.get('error')}"
    return result


@mcp.tool()
def delete_client(client_id: str) -> str:
    """Delete a client and all of their milestones.

    Args:
        client_id: Client ID (e.g. "C-3")
    """
    try:
        removed = remove_client(_get_store(), get_settings().role, client_id)
    except KeyError:
        return f"Error: client {client_id} not found."
    except DDayError as e:
        return f"Error: {e}"
    return f"Deleted {client_id} and {removed} milestones."


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
def list_clients(search: str | None = None, status_filter: str = "all", on: str | None = None) -> str:
    """List clients with progress and departure countdown.

    Args:
        search: Case-insensitive match on name, or match on phone
        status_filter: "all", "in-progress", "delayed" or "completed"
        on: Observation date (YYYY-MM-DD), default today
    """
    try:
        selector = ClientFilter(status_filter)
        observed = _observed(on)
    except ValueError as e:
        return f"Error: {e}"

    store = _get_store()
    grouped = store.milestones_by_client()
    clients = sorted(
        store.load_clients().values(),
        key=lambda c: (c.departure_date is None, c.departure_date or date.max),
    )
    result = [
        summarize_client(c, grouped.get(c.id, []), observed).to_dict()
        for c in clients
        if matches(c, grouped.get(c.id, []), search or "", selector)
    ]
    return json.dumps(result, indent=2)


@mcp.tool()
def get_client(client_id: str, on: str | None = None) -> str:
    """Full details for one client, with milestones sorted by deadline.

    Args:
        client_id: Client ID (e.g. "C-3")
        on: Observation date (YYYY-MM-DD), default today
    """
    try:
        observed = _observed(on)
    except ValueError as e:
        return f"Error: {e}"
    store = _get_store()
    client = store.load_clients().get(client_id)
    if client is None:
        return f"Error: client {client_id} not found."

    milestones = list(store.load_milestones(client_id).values())
    result = summarize_client(client, milestones, observed).to_dict()
    result["coordinator_id"] = client.coordinator_id
    result["milestones"] = [
        _milestone_to_dict(m, client.departure_date, observed) for m in sort_by_deadline(milestones)
    ]
    return json.dumps(result, indent=2)


@mcp.tool()
def get_dashboard() -> str:
    """Totals across all clients: milestones completed, pending, delayed and completion rate."""
    return json.dumps(dashboard_stats(_get_store().milestones_by_client()).to_dict(), indent=2)


@mcp.tool()
def get_daily_summary(on: str | None = None) -> str:
    """Pending milestones due on the given day plus every delayed milestone.

    Args:
        on: Day to summarize (YYYY-MM-DD), default today
    """
    try:
        observed = _observed(on)
    except ValueError as e:
        return f"Error: {e}"
    store = _get_store()
    clients = store.load_clients()
    payload = daily_summary(store.load_milestones().values(), observed).to_dict()
    for item in payload["milestones_due"] + payload["milestones_delayed"]:
        c = clients.get(item["client_id"])
        item["client"] = {"name": c.name, "phone": c.phone} if c else None
    return json.dumps(payload, indent=2)


def main():
    """Entry point for the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
