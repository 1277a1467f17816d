"""Client, milestone and offset-rule models with status definitions."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any


class DDayError(Exception):
    """Base class for engine errors."""


class MissingAnchorError(DDayError):
    """Raised when a schedule is requested without a departure date."""


class InvalidDateError(DDayError, ValueError):
    """Raised when a date value cannot be parsed."""


class ScheduleExistsError(DDayError):
    """Raised when a client already has generated milestones."""


class PermissionDeniedError(DDayError):
    """Raised when the acting role may not perform an operation."""


class MilestoneStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    DELAYED = "delayed"


class Role(enum.StrEnum):
    ADMIN = "admin"
    TASK_OWNER = "task_owner"


def to_date(value: Any) -> date | None:
    """Coerce a date, datetime or 'YYYY-MM-DD...' string to a date.

    Returns None for None or an empty string. Datetimes are truncated to
    their calendar date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise InvalidDateError(f"Invalid date {value!r}") from e
    raise InvalidDateError(f"Invalid date {value!r}")


def to_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise InvalidDateError(f"Invalid timestamp {value!r}") from e


def _iso(d: date | None) -> str | None:
    return d.isoformat() if d is not None else None


@dataclass(frozen=True)
class OffsetRule:
    """A milestone template: due *offset_days* from the departure date."""

    name: str
    offset_days: int
    owner: str


@dataclass
class Milestone:
    """A single trackable onboarding task for one client."""

    id: str
    client_id: str
    name: str
    deadline: date | None = None
    owner: str | None = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    completed_date: date | None = None

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "name": self.name,
            "deadline": _iso(self.deadline),
            "owner": self.owner,
            "status": self.status.value,
            "completed_date": _iso(self.completed_date),
        }

    @classmethod
    def from_dict(cls, milestone_id: str, d: dict) -> Milestone:
        return cls(
            id=milestone_id,
            client_id=d["client_id"],
            name=d["name"],
            deadline=to_date(d.get("deadline")),
            owner=d.get("owner"),
            status=MilestoneStatus(d.get("status", "pending")),
            completed_date=to_date(d.get("completed_date")),
        )


@dataclass
class Client:
    """A relocating client. ``departure_date`` is the D-Day anchor."""

    id: str
    name: str
    departure_date: date | None = None
    phone: str | None = None
    coordinator_id: str | None = None
    arrival_date: date | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "coordinator_id": self.coordinator_id,
            "arrival_date": _iso(self.arrival_date),
            "departure_date": _iso(self.departure_date),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, client_id: str, d: dict) -> Client:
        name = d["name"]
        if not isinstance(name, str):
            raise TypeError(f"Client {client_id} name must be a string, got {name!r}")
        return cls(
            id=client_id,
            name=name,
            phone=d.get("phone"),
            coordinator_id=d.get("coordinator_id"),
            arrival_date=to_date(d.get("arrival_date")),
            departure_date=to_date(d.get("departure_date")),
            created_at=to_datetime(d.get("created_at")),
        )


@dataclass
class Coordinator:
    """A staff profile that clients can be assigned to."""

    id: str
    full_name: str | None = None
    role: Role = Role.TASK_OWNER

    def to_dict(self) -> dict:
        return {"full_name": self.full_name, "role": self.role.value}

    @classmethod
    def from_dict(cls, coordinator_id: str, d: dict) -> Coordinator:
        return cls(
            id=coordinator_id,
            full_name=d.get("full_name"),
            role=Role(d.get("role", "task_owner")),
        )
