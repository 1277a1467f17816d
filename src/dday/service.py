"""Operations shared by the CLI and the MCP server.

Each one wires the engine to the store and the notifier: validate, compute,
persist, then (for status changes) notify.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from dday.models import (
    Client,
    Milestone,
    MilestoneStatus,
    MissingAnchorError,
    PermissionDeniedError,
    Role,
    to_date,
)
from dday.notify import WebhookNotifier
from dday.persistence import Store
from dday.scheduler import TransitionEvent, generate_schedule, transition

logger = logging.getLogger(__name__)


def require_admin(role: Role | str) -> None:
    if Role(role) != Role.ADMIN:
        raise PermissionDeniedError(f"Role '{Role(role).value}' may not perform this action")


def create_client(
    store: Store,
    role: Role | str,
    name: str,
    departure_date: date | str | None,
    phone: str | None = None,
    coordinator_id: str | None = None,
    arrival_date: date | str | None = None,
) -> tuple[Client, list[Milestone]]:
    """Register a client and generate their milestone schedule.

    The schedule is generated before anything is written, so a missing or
    malformed departure date leaves the store untouched.
    """
    require_admin(role)
    name = (name or "").strip()
    if not name:
        raise ValueError("Client name is required")
    anchor = to_date(departure_date)
    if anchor is None:
        raise MissingAnchorError("Departure date (D-Day) is required for milestone generation")

    cid = store.generate_id("C")
    client = Client(
        id=cid,
        name=name,
        departure_date=anchor,
        phone=(phone or "").strip() or None,
        coordinator_id=coordinator_id or None,
        arrival_date=to_date(arrival_date),
        created_at=datetime.now().replace(microsecond=0),
    )
    milestones = generate_schedule(
        anchor,
        client_id=cid,
        existing=store.load_milestones(cid).values(),
        id_factory=store.id_factory("M"),
    )
    store.insert_client(client)
    store.insert_milestones(milestones)
    logger.info("Created client %s (%s) with %d milestones", cid, name, len(milestones))
    return client, milestones


@dataclass
class StatusChange:
    milestone: Milestone
    event: TransitionEvent
    delivery: dict = field(default_factory=dict)


def change_status(
    store: Store,
    notifier: WebhookNotifier,
    milestone_id: str,
    new_status: MilestoneStatus | str,
    observed: date | datetime | str,
    reason: str | None = None,
) -> StatusChange:
    """Apply a transition, persist it, then notify. Raises KeyError for an unknown id."""
    milestones = store.load_milestones()
    if milestone_id not in milestones:
        raise KeyError(milestone_id)

    updated, event = transition(milestones[milestone_id], new_status, observed)
    store.update_milestone_status(updated.id, updated.status, updated.completed_date)
    # the transition is already stored; delivery problems only get reported
    delivery = notifier.send(event, reason=reason)
    return StatusChange(milestone=updated, event=event, delivery=delivery)


def remove_client(store: Store, role: Role | str, client_id: str) -> int:
    require_admin(role)
    removed = store.delete_client(client_id)
    logger.info("Deleted client %s and %d milestones", client_id, removed)
    return removed
