"""Per-client and dashboard rollups, plus the client list filter."""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from dday.models import Client, DDayError, Milestone, MilestoneStatus, to_date
from dday.urgency import (
    DateLike,
    UrgencyTier,
    countdown_badge,
    days_to_anchor,
    is_due_today,
    urgency_tier,
)

logger = logging.getLogger(__name__)


class ClientFilter(enum.StrEnum):
    ALL = "all"
    IN_PROGRESS = "in-progress"
    DELAYED = "delayed"
    COMPLETED = "completed"


def _percent(part: int, total: int) -> int:
    # half-up, so 12.5% shows as 13%
    if total == 0:
        return 0
    return math.floor(part / total * 100 + 0.5)


@dataclass(frozen=True)
class Rollup:
    completed: int
    pending: int
    delayed: int
    total: int
    completion_percent: int

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "pending": self.pending,
            "delayed": self.delayed,
            "total": self.total,
            "completion_percent": self.completion_percent,
        }


def rollup(milestones: Sequence[Milestone]) -> Rollup:
    """Count a client's milestones by status.

    ``pending`` is whatever is neither completed nor delayed.
    """
    total = len(milestones)
    completed = sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED)
    delayed = sum(1 for m in milestones if m.status == MilestoneStatus.DELAYED)
    return Rollup(
        completed=completed,
        pending=total - completed - delayed,
        delayed=delayed,
        total=total,
        completion_percent=_percent(completed, total),
    )


def is_client_completed(milestones: Sequence[Milestone]) -> bool:
    """True only for a non-empty schedule where everything is completed."""
    return bool(milestones) and all(m.status == MilestoneStatus.COMPLETED for m in milestones)


def has_delays(milestones: Iterable[Milestone]) -> bool:
    return any(m.status == MilestoneStatus.DELAYED for m in milestones)


def matches_text(client: Client, search_text: str) -> bool:
    q = search_text or ""
    if not q:
        return True
    if q.lower() in (client.name or "").lower():
        return True
    return client.phone is not None and q in client.phone


def matches(
    client: Client,
    milestones: Sequence[Milestone],
    search_text: str = "",
    status_filter: ClientFilter | str = ClientFilter.ALL,
) -> bool:
    """Dashboard filter: free-text search combined with a status selector.

    A client without milestones counts as in progress.
    """
    selector = ClientFilter(status_filter)
    if not matches_text(client, search_text):
        return False
    if selector == ClientFilter.ALL:
        return True

    delayed = has_delays(milestones)
    completed = is_client_completed(milestones)
    if selector == ClientFilter.DELAYED:
        return delayed
    if selector == ClientFilter.COMPLETED:
        return completed
    return not delayed and not completed


@dataclass(frozen=True)
class ClientSummary:
    """Derived view of one client at an observation date."""

    client: Client
    rollup: Rollup
    tier: UrgencyTier
    days_to_departure: int | None
    badge: str | None

    def to_dict(self) -> dict:
        return {
            "id": self.client.id,
            "name": self.client.name,
            "phone": self.client.phone,
            "departure_date": _iso(self.client.departure_date),
            "arrival_date": _iso(self.client.arrival_date),
            "urgency_tier": self.tier.value,
            "days_to_departure": self.days_to_departure,
            "badge": self.badge,
            **self.rollup.to_dict(),
        }


def _iso(d: date | None) -> str | None:
    return d.isoformat() if d else None


def summarize_client(client: Client, milestones: Sequence[Milestone], observed: DateLike) -> ClientSummary:
    """Roll up one client. A bad date degrades the urgency fields to unknown."""
    try:
        tier = urgency_tier(client.departure_date, observed)
        days = days_to_anchor(client.departure_date, observed)
        badge = countdown_badge(client.departure_date, observed)
    except DDayError as e:
        logger.warning("Client %s: cannot derive urgency (%s)", client.id, e)
        tier, days, badge = UrgencyTier.NONE, None, None
    return ClientSummary(
        client=client,
        rollup=rollup(milestones),
        tier=tier,
        days_to_departure=days,
        badge=badge,
    )


@dataclass(frozen=True)
class DashboardStats:
    total_clients: int
    completed: int
    pending: int
    delayed: int
    completion_rate: int

    def to_dict(self) -> dict:
        return {
            "total_clients": self.total_clients,
            "completed": self.completed,
            "pending": self.pending,
            "delayed": self.delayed,
            "completion_rate": self.completion_rate,
        }


def dashboard_stats(milestones_by_client: dict[str, Sequence[Milestone]]) -> DashboardStats:
    """Totals across every client on the dashboard."""
    everything = [m for ms in milestones_by_client.values() for m in ms]
    completed = sum(1 for m in everything if m.status == MilestoneStatus.COMPLETED)
    return DashboardStats(
        total_clients=len(milestones_by_client),
        completed=completed,
        pending=sum(1 for m in everything if m.status == MilestoneStatus.PENDING),
        delayed=sum(1 for m in everything if m.status == MilestoneStatus.DELAYED),
        completion_rate=_percent(completed, len(everything)),
    )


@dataclass
class DailySummary:
    date: date
    due_today: list[Milestone] = field(default_factory=list)
    delayed: list[Milestone] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "due_today": len(self.due_today),
            "delayed": len(self.delayed),
            "milestones_due": [{"id": m.id, **m.to_dict()} for m in self.due_today],
            "milestones_delayed": [{"id": m.id, **m.to_dict()} for m in self.delayed],
        }


def daily_summary(milestones: Iterable[Milestone], observed: DateLike) -> DailySummary:
    """Pending milestones due on *observed* plus everything marked delayed."""
    today = to_date(observed)
    if today is None:
        raise ValueError("An observation date is required for the daily summary")
    summary = DailySummary(date=today)
    for m in milestones:
        if m.status == MilestoneStatus.PENDING and is_due_today(m, today):
            summary.due_today.append(m)
        elif m.status == MilestoneStatus.DELAYED:
            summary.delayed.append(m)
    return summary
