"""Milestone schedule generation and status transitions."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from dday.models import (
    Milestone,
    MilestoneStatus,
    MissingAnchorError,
    OffsetRule,
    ScheduleExistsError,
    to_date,
)
from dday.offsets import MILESTONE_OFFSETS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionEvent:
    """Reported to the caller after every status transition."""

    client_id: str
    milestone_id: str
    new_status: MilestoneStatus
    occurred_at: date

    def to_payload(self) -> dict:
        return {
            "client_id": self.client_id,
            "milestone_id": self.milestone_id,
            "new_status": self.new_status.value,
            "occurred_at": self.occurred_at.isoformat(),
        }


def _new_id() -> str:
    return uuid.uuid4().hex


def generate_schedule(
    anchor: date | datetime | str | None,
    rules: Sequence[OffsetRule] = MILESTONE_OFFSETS,
    *,
    client_id: str = "",
    existing: Iterable[Milestone] = (),
    id_factory: Callable[[], str] = _new_id,
) -> list[Milestone]:
    """Expand *rules* into pending milestones due relative to *anchor*.

    Raises MissingAnchorError when there is no departure date,
    InvalidDateError when it cannot be parsed and ScheduleExistsError when
    the client already has milestones. Nothing is returned in any of those
    cases.
    """
    anchor_date = to_date(anchor)
    if anchor_date is None:
        raise MissingAnchorError("A departure date is required to generate milestones")
    if any(True for _ in existing):
        raise ScheduleExistsError(f"Client {client_id} already has milestones")

    milestones = [
        Milestone(
            id=id_factory(),
            client_id=client_id,
            name=rule.name,
            deadline=anchor_date + timedelta(days=rule.offset_days),
            owner=rule.owner,
        )
        for rule in rules
    ]
    logger.debug(
        "Generated %d milestones for client %s anchored on %s",
        len(milestones), client_id, anchor_date,
    )
    return milestones


def transition(
    milestone: Milestone,
    new_status: MilestoneStatus | str,
    observed: date | datetime | str,
) -> tuple[Milestone, TransitionEvent]:
    """Move *milestone* to *new_status* as of *observed*.

    Every status may move to every other (including itself). Completing
    stamps ``completed_date`` with the observation date; any other target
    clears it. The input milestone is left untouched.
    """
    status = MilestoneStatus(new_status)
    when = to_date(observed)
    if when is None:
        raise ValueError("An observation date is required for a transition")

    updated = replace(
        milestone,
        status=status,
        completed_date=when if status == MilestoneStatus.COMPLETED else None,
    )
    logger.debug("Milestone %s: %s -> %s", milestone.id, milestone.status.value, status.value)
    return updated, TransitionEvent(
        client_id=milestone.client_id,
        milestone_id=milestone.id,
        new_status=status,
        occurred_at=when,
    )
