"""Overdue, due-today and D-Day classification.

Everything here is computed from an explicit observation date; nothing
reads the clock and nothing is cached on the milestone.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from datetime import date, datetime

from dday.models import Milestone, MilestoneStatus, to_date

DateLike = date | datetime | str | None


class Urgency(enum.StrEnum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    NORMAL = "normal"


class UrgencyTier(enum.StrEnum):
    NONE = "none"
    PAST = "past"
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# (max days to departure, tier), checked in order
TIER_THRESHOLDS: tuple[tuple[int, UrgencyTier], ...] = (
    (3, UrgencyTier.CRITICAL),
    (7, UrgencyTier.HIGH),
    (14, UrgencyTier.MEDIUM),
)


def is_overdue(milestone: Milestone, observed: DateLike) -> bool:
    """A still-pending milestone whose deadline is strictly before *observed*."""
    today = to_date(observed)
    return (
        milestone.deadline is not None
        and today is not None
        and milestone.deadline < today
        and milestone.status == MilestoneStatus.PENDING
    )


def is_due_today(milestone: Milestone, observed: DateLike) -> bool:
    today = to_date(observed)
    return milestone.deadline is not None and milestone.deadline == today


def classify(milestone: Milestone, observed: DateLike) -> Urgency:
    if is_overdue(milestone, observed):
        return Urgency.OVERDUE
    if is_due_today(milestone, observed):
        return Urgency.DUE_TODAY
    return Urgency.NORMAL


def d_label(deadline: DateLike, anchor: DateLike) -> str:
    """Label a deadline relative to the departure date: D-16, D-Day, D+5.

    Empty when either date is missing.
    """
    dl, dday = to_date(deadline), to_date(anchor)
    if dl is None or dday is None:
        return ""
    diff = (dl - dday).days
    if diff == 0:
        return "D-Day"
    if diff < 0:
        return f"D{diff}"
    return f"D+{diff}"


def days_to_anchor(anchor: DateLike, observed: DateLike) -> int | None:
    dday, today = to_date(anchor), to_date(observed)
    if dday is None or today is None:
        return None
    return (dday - today).days


def urgency_tier(anchor: DateLike, observed: DateLike) -> UrgencyTier:
    days = days_to_anchor(anchor, observed)
    if days is None:
        return UrgencyTier.NONE
    if days < 0:
        return UrgencyTier.PAST
    for limit, tier in TIER_THRESHOLDS:
        if days <= limit:
            return tier
    return UrgencyTier.LOW


def countdown_badge(anchor: DateLike, observed: DateLike) -> str | None:
    """Client countdown text, or None when no badge is shown (tier none/past)."""
    tier = urgency_tier(anchor, observed)
    if tier in (UrgencyTier.NONE, UrgencyTier.PAST):
        return None
    days = days_to_anchor(anchor, observed)
    return "D-Day!" if days == 0 else f"D-{days}"


def sort_by_deadline(milestones: Iterable[Milestone]) -> list[Milestone]:
    """Ascending deadline; milestones without one go last."""
    return sorted(
        milestones,
        key=lambda m: (m.deadline is None, m.deadline or date.min),
    )
