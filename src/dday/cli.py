"""Typer CLI for dday."""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dday.config import get_settings
from dday.models import (
    Client,
    Coordinator,
    DDayError,
    Milestone,
    MilestoneStatus,
    Role,
    to_date,
)
from dday.notify import WebhookNotifier
from dday.offsets import MILESTONE_OFFSETS
from dday.persistence import Store
from dday.rollup import (
    ClientFilter,
    dashboard_stats,
    daily_summary,
    matches,
    summarize_client,
)
from dday.service import change_status, create_client, remove_client
from dday.urgency import Urgency, UrgencyTier, classify, d_label, sort_by_deadline

app = typer.Typer(
    name="dday",
    help="Relocation onboarding tracker: every milestone counts down to D-Day.",
    no_args_is_help=True,
)
coordinator_app = typer.Typer(help="Manage coordinators clients can be assigned to.")
app.add_typer(coordinator_app, name="coordinator")
console = Console()

TIER_STYLES = {
    UrgencyTier.CRITICAL: "bold red",
    UrgencyTier.HIGH: "yellow",
    UrgencyTier.MEDIUM: "cyan",
    UrgencyTier.LOW: "dim",
}
STATUS_STYLES = {
    MilestoneStatus.COMPLETED: "green",
    MilestoneStatus.DELAYED: "red",
    MilestoneStatus.PENDING: "yellow",
}


def _get_store() -> Store:
    return Store(get_settings().db_path)


def _get_notifier() -> WebhookNotifier:
    settings = get_settings()
    return WebhookNotifier(settings.webhook_url, dry_run=settings.webhook_dry_run)


def _complete_client_id(incomplete: str) -> list[str]:
    """Shell completion for client IDs. Matches against both ID and name."""
    try:
        clients = _get_store().load_clients()
    except (OSError, ValueError):
        return []
    q = incomplete.lower()
    return [f"{c.name} ({cid})" for cid, c in clients.items() if q in cid.lower() or q in c.name.lower()]


def _parse_id(arg: str) -> str:
    """Extract the ID if the autocompleted 'Name (ID)' format was used."""
    if "(" in arg and arg.endswith(")"):
        return arg.split("(")[-1].strip(")")
    return arg.strip()


def _observed(ctx: typer.Context) -> date:
    return ctx.obj["observed"]


def _fmt(d: date | None, pattern: str = "%b %d, %Y") -> str:
    return d.strftime(pattern) if d else "-"


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    on: Annotated[Optional[str], typer.Option("--on", help="Observation date (YYYY-MM-DD), default today")] = None,
    role: Annotated[Optional[str], typer.Option("--role", help="Acting role: admin or task_owner")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    try:
        settings = get_settings()
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    try:
        observed = to_date(on) or date.today()
        acting = Role(role) if role else settings.role
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    ctx.obj = {"observed": observed, "role": acting}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def offsets() -> None:
    """Show the milestone table schedules are generated from."""
    table = Table(title="D-Day Milestones")
    table.add_column("Milestone")
    table.add_column("Offset", justify="right")
    table.add_column("Owner")
    for rule in MILESTONE_OFFSETS:
        label = "D-Day" if rule.offset_days == 0 else f"D{rule.offset_days:+d}"
        table.add_row(rule.name, label, rule.owner)
    console.print(table)


@app.command("add-client")
def add_client(
    ctx: typer.Context,
    name: str,
    departure: Annotated[Optional[str], typer.Option("--departure", "-d", help="Departure date, D-Day (YYYY-MM-DD)")] = None,
    arrival: Annotated[Optional[str], typer.Option("--arrival", "-a", help="Arrival date (YYYY-MM-DD)")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", help="Phone number")] = None,
    coordinator: Annotated[Optional[str], typer.Option("--coordinator", "-c", help="Coordinator ID")] = None,
) -> None:
    """Add a client and generate their milestones from the departure date."""
    store = _get_store()
    if coordinator and coordinator not in store.load_coordinators():
        console.print(f"[red]Coordinator {coordinator} not found.[/red]")
        raise typer.Exit(1)
    try:
        client, milestones = create_client(
            store,
            ctx.obj["role"],
            name,
            departure,
            phone=phone,
            coordinator_id=coordinator,
            arrival_date=arrival,
        )
    except (DDayError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Added '{client.name}' as {client.id} with {len(milestones)} milestones[/green]")


@app.command("list")
def list_clients(
    ctx: typer.Context,
    search: Annotated[Optional[str], typer.Option("--search", "-q", help="Match name (case-insensitive) or phone")] = None,
    status_filter: Annotated[str, typer.Option("--status", "-s", help="all, in-progress, delayed, completed")] = "all",
    csv: Annotated[Optional[str], typer.Option("--csv", help="Export list to CSV file")] = None,
) -> None:
    """List clients ordered by departure date, with progress and countdown."""
    try:
        selector = ClientFilter(status_filter)
    except ValueError:
        valid = ", ".join(f.value for f in ClientFilter)
        console.print(f"[red]Invalid status '{status_filter}'. Use: {valid}[/red]")
        raise typer.Exit(1)

    store = _get_store()
    clients = store.load_clients()
    if not clients:
        console.print("No clients found.")
        return

    grouped = store.milestones_by_client()
    coordinators = store.load_coordinators()
    observed = _observed(ctx)
    ordered = sorted(clients.values(), key=lambda c: (c.departure_date is None, c.departure_date or date.max))
    summaries = [
        summarize_client(c, grouped.get(c.id, []), observed)
        for c in ordered
        if matches(c, grouped.get(c.id, []), search or "", selector)
    ]

    if not summaries:
        console.print("No clients match your filters.")
        return

    if csv:
        import csv as csv_mod
        from pathlib import Path

        with Path(csv).open("w", newline="") as f:
            writer = csv_mod.writer(f)
            writer.writerow([
                "ID", "Name", "Phone", "Coordinator", "Arrival", "Departure",
                "Countdown", "Urgency", "Completed", "Pending", "Delayed", "Total", "Progress %",
            ])
            for s in summaries:
                c = s.client
                coord = coordinators.get(c.coordinator_id or "")
                writer.writerow([
                    c.id,
                    c.name,
                    c.phone or "",
                    coord.full_name if coord else "",
                    c.arrival_date.isoformat() if c.arrival_date else "",
                    c.departure_date.isoformat() if c.departure_date else "",
                    s.badge or "",
                    s.tier.value,
                    s.rollup.completed,
                    s.rollup.pending,
                    s.rollup.delayed,
                    s.rollup.total,
                    s.rollup.completion_percent,
                ])
        console.print(f"[green]Exported {len(summaries)} clients to {csv}[/green]")
        return

    table = Table(title="Clients")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Phone")
    table.add_column("Coordinator")
    table.add_column("Arrival")
    table.add_column("Departure")
    table.add_column("Countdown")
    table.add_column("Progress")
    table.add_column("Done", justify="right")
    table.add_column("Pending", justify="right")
    table.add_column("Delayed", justify="right")

    for s in summaries:
        c = s.client
        coord = coordinators.get(c.coordinator_id or "")
        badge = f"[{TIER_STYLES[s.tier]}]{s.badge}[/]" if s.badge else "-"
        table.add_row(
            c.id,
            c.name,
            c.phone or "-",
            (coord.full_name or "Unassigned") if coord else "-",
            _fmt(c.arrival_date, "%b %d"),
            _fmt(c.departure_date, "%b %d"),
            badge,
            f"{s.rollup.completed}/{s.rollup.total} ({s.rollup.completion_percent}%)",
            str(s.rollup.completed),
            str(s.rollup.pending),
            f"[red]{s.rollup.delayed}[/red]" if s.rollup.delayed else "0",
        )

    console.print(table)
    if search or selector != ClientFilter.ALL:
        console.print(f"[dim]Showing {len(summaries)} of {len(clients)} clients[/dim]")


def _milestone_table(title: str, milestones: list[Milestone], departure: date | None, observed: date) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Milestone")
    table.add_column("D")
    table.add_column("Deadline")
    table.add_column("Owner")
    table.add_column("Status")
    table.add_column("Completed")
    for m in milestones:
        urgency = classify(m, observed)
        deadline = _fmt(m.deadline)
        if urgency == Urgency.OVERDUE:
            deadline = f"[yellow]{deadline} (Overdue)[/yellow]"
        elif urgency == Urgency.DUE_TODAY:
            deadline = f"[bold]{deadline} (Today)[/bold]"
        table.add_row(
            m.id,
            m.name,
            d_label(m.deadline, departure) or "-",
            deadline,
            m.owner or "-",
            f"[{STATUS_STYLES[m.status]}]{m.status.value}[/]",
            _fmt(m.completed_date),
        )
    return table


@app.command()
def show(
    ctx: typer.Context,
    client_id: Annotated[str, typer.Argument(autocompletion=_complete_client_id)],
    tab: Annotated[Optional[str], typer.Option("--tab", help="Only pending, completed or delayed milestones")] = None,
) -> None:
    """Show a client's details and milestones sorted by deadline."""
    client_id = _parse_id(client_id)
    store = _get_store()
    clients = store.load_clients()
    if client_id not in clients:
        console.print(f"[red]Client {client_id} not found.[/red]")
        raise typer.Exit(1)

    c: Client = clients[client_id]
    milestones = list(store.load_milestones(client_id).values())
    observed = _observed(ctx)
    summary = summarize_client(c, milestones, observed)
    coord = store.load_coordinators().get(c.coordinator_id or "")

    console.print(f"\n[bold]{c.id}[/bold]  {c.name}")
    if c.phone:
        console.print(f"  Phone:       {c.phone}")
    if coord:
        console.print(f"  Coordinator: {coord.full_name or 'Unassigned'}")
    console.print(f"  Arrival:     {_fmt(c.arrival_date) if c.arrival_date else 'Not set'}")
    console.print(f"  Departure:   {_fmt(c.departure_date) if c.departure_date else 'Not set'} (D-Day)")
    if summary.badge:
        console.print(f"  Countdown:   [{TIER_STYLES[summary.tier]}]{summary.badge}[/]")
    r = summary.rollup
    console.print(
        f"  Progress:    {r.completed}/{r.total} milestones ({r.completion_percent}%)  "
        f"[green]{r.completed} completed[/green]  [yellow]{r.pending} pending[/yellow]  [red]{r.delayed} delayed[/red]"
    )

    if tab:
        try:
            wanted = MilestoneStatus(tab)
        except ValueError:
            console.print(f"[red]Invalid tab '{tab}'. Use: pending, completed, delayed[/red]")
            raise typer.Exit(1)
        shown = [m for m in sort_by_deadline(milestones) if m.status == wanted]
    else:
        shown = sort_by_deadline(milestones)

    if shown:
        console.print(_milestone_table("Milestones", shown, c.departure_date, observed))
    else:
        console.print("\n  No milestones.")
    console.print()


def _apply_status(ctx: typer.Context, milestone_id: str, status: MilestoneStatus, reason: str | None = None) -> None:
    store = _get_store()
    try:
        change = change_status(store, _get_notifier(), milestone_id, status, _observed(ctx), reason=reason)
    except KeyError:
        console.print(f"[red]Milestone {milestone_id} not found.[/red]")
        raise typer.Exit(1)
    m = change.milestone
    console.print(f"[green]Milestone {m.id} '{m.name}' marked as {m.status.value}.[/green]")
    if change.delivery.get("status") == "error":
        console.print(f"  [yellow]Notification failed: {change.delivery.get('error')}[/yellow]")


@app.command()
def complete(ctx: typer.Context, milestone_id: str) -> None:
    """Mark a milestone as completed on the observation date."""
    _apply_status(ctx, milestone_id.strip(), MilestoneStatus.COMPLETED)


@app.command()
def delay(
    ctx: typer.Context,
    milestone_id: str,
    reason: Annotated[Optional[str], typer.Option(help="Why the milestone is delayed")] = None,
) -> None:
    """Mark a milestone as delayed."""
    _apply_status(ctx, milestone_id.strip(), MilestoneStatus.DELAYED, reason=reason)


@app.command()
def reopen(ctx: typer.Context, milestone_id: str) -> None:
    """Move a milestone back to pending."""
    _apply_status(ctx, milestone_id.strip(), MilestoneStatus.PENDING)


@app.command("set-status")
def set_status(
    ctx: typer.Context,
    milestone_id: str,
    status: Annotated[str, typer.Argument(help="Target status: pending, completed, delayed")],
) -> None:
    """Set a milestone's status directly."""
    try:
        new_status = MilestoneStatus(status)
    except ValueError:
        valid = ", ".join(s.value for s in MilestoneStatus)
        console.print(f"[red]Invalid status '{status}'. Valid statuses: {valid}[/red]")
        raise typer.Exit(1)
    _apply_status(ctx, milestone_id.strip(), new_status)


@app.command("delete-client")
def delete_client(
    ctx: typer.Context,
    client_id: Annotated[str, typer.Argument(autocompletion=_complete_client_id)],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a client and all their milestones."""
    client_id = _parse_id(client_id)
    if not yes:
        typer.confirm(
            f"Delete client {client_id}? This will also delete all their milestones.",
            abort=True,
        )
    try:
        removed = remove_client(_get_store(), ctx.obj["role"], client_id)
    except KeyError:
        console.print(f"[red]Client {client_id} not found.[/red]")
        raise typer.Exit(1)
    except DDayError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {client_id} and {removed} milestones.[/green]")


@app.command()
def stats() -> None:
    """Dashboard totals across all clients."""
    s = dashboard_stats(_get_store().milestones_by_client())
    table = Table(title="Dashboard", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total Clients", str(s.total_clients))
    table.add_row("Completed", f"[green]{s.completed}[/green]")
    table.add_row("Pending", f"[yellow]{s.pending}[/yellow]")
    table.add_row("Delayed", f"[red]{s.delayed}[/red]")
    table.add_row("Completion Rate", f"{s.completion_rate}%")
    console.print(table)


@app.command()
def summary(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print the summary as JSON")] = False,
) -> None:
    """Daily summary: pending milestones due today and everything delayed."""
    store = _get_store()
    clients = store.load_clients()
    daily = daily_summary(store.load_milestones().values(), _observed(ctx))

    if as_json:
        payload = daily.to_dict()
        for item in payload["milestones_due"] + payload["milestones_delayed"]:
            c = clients.get(item["client_id"])
            item["client"] = {"name": c.name, "phone": c.phone} if c else None
        console.print_json(json.dumps(payload))
        return

    console.print(f"\n[bold]Daily summary for {daily.date.isoformat()}[/bold]")
    console.print(f"  Due today: {len(daily.due_today)}   Delayed: {len(daily.delayed)}\n")
    for title, items in (("Due Today", daily.due_today), ("Delayed", daily.delayed)):
        if not items:
            continue
        table = Table(title=title)
        table.add_column("ID")
        table.add_column("Client")
        table.add_column("Milestone")
        table.add_column("Deadline")
        table.add_column("Owner")
        for m in items:
            c = clients.get(m.client_id)
            table.add_row(m.id, c.name if c else m.client_id, m.name, _fmt(m.deadline), m.owner or "-")
        console.print(table)


# ---------------------------------------------------------------------------
# Coordinators
# ---------------------------------------------------------------------------


@coordinator_app.command("add")
def coordinator_add(
    full_name: str,
    role: Annotated[str, typer.Option("--role", help="admin or task_owner")] = "task_owner",
) -> None:
    """Add a coordinator profile."""
    try:
        r = Role(role)
    except ValueError:
        console.print(f"[red]Invalid role '{role}'. Use: admin, task_owner[/red]")
        raise typer.Exit(1)
    store = _get_store()
    uid = store.generate_id("U")
    store.add_coordinator(Coordinator(id=uid, full_name=full_name.strip() or None, role=r))
    console.print(f"[green]Added coordinator '{full_name}' as {uid}[/green]")


@coordinator_app.command("list")
def coordinator_list() -> None:
    """List coordinator profiles."""
    coordinators = _get_store().load_coordinators()
    if not coordinators:
        console.print("No coordinators found.")
        return
    table = Table(title="Coordinators")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Role")
    for uid, c in coordinators.items():
        table.add_row(uid, c.full_name or "Unnamed", c.role.value)
    console.print(table)


if __name__ == "__main__":
    app()
