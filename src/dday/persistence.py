"""JSON file persistence for clients, milestones and coordinators."""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Callable, Iterable
from datetime import date
from pathlib import Path

from dday.config import DEFAULT_DB_FILE
from dday.models import (
    Client,
    Coordinator,
    InvalidDateError,
    Milestone,
    MilestoneStatus,
    to_date,
    to_datetime,
)

logger = logging.getLogger(__name__)

SECTIONS = ("clients", "milestones", "coordinators")
CLIENT_DATE_FIELDS = {"arrival_date": to_date, "departure_date": to_date, "created_at": to_datetime}
MILESTONE_DATE_FIELDS = {"deadline": to_date, "completed_date": to_date}


def _load_record(factory, record_id: str, data: dict, date_fields: dict[str, Callable]):
    """Decode one record; a bad date degrades to unknown, a broken record is skipped."""
    try:
        return factory(record_id, data)
    except InvalidDateError as e:
        logger.warning("Record %s has an unreadable date (%s); treating it as unknown", record_id, e)
        cleaned = dict(data)
        for f, parse in date_fields.items():
            try:
                parse(cleaned.get(f))
            except InvalidDateError:
                cleaned[f] = None
        try:
            return factory(record_id, cleaned)
        except (KeyError, TypeError, ValueError) as e2:
            logger.warning("Skipping record %s: %s", record_id, e2)
            return None
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping record %s: %s", record_id, e)
        return None


class Store:
    """Reads and writes the client database (JSON file).

    Writes touch only the records they change, so records that fail to
    decode on load are kept on disk untouched.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_FILE):
        self.db_path = Path(db_path)

    # ------------------------------------------------------------------
    # Raw file access
    # ------------------------------------------------------------------

    def _read(self) -> dict:
        if not self.db_path.exists():
            return {s: {} for s in SECTIONS}
        raw = json.loads(self.db_path.read_text())
        for s in SECTIONS:
            raw.setdefault(s, {})
        return raw

    def _write(self, raw: dict) -> None:
        self.db_path.write_text(json.dumps(raw, indent=4))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_clients(self) -> dict[str, Client]:
        clients: dict[str, Client] = {}
        for cid, data in self._read()["clients"].items():
            client = _load_record(Client.from_dict, cid, data, CLIENT_DATE_FIELDS)
            if client is not None:
                clients[cid] = client
        return clients

    def load_milestones(self, client_id: str | None = None) -> dict[str, Milestone]:
        milestones: dict[str, Milestone] = {}
        for mid, data in self._read()["milestones"].items():
            if client_id is not None and data.get("client_id") != client_id:
                continue
            m = _load_record(Milestone.from_dict, mid, data, MILESTONE_DATE_FIELDS)
            if m is not None:
                milestones[mid] = m
        return milestones

    def load_coordinators(self) -> dict[str, Coordinator]:
        coordinators: dict[str, Coordinator] = {}
        for uid, data in self._read()["coordinators"].items():
            c = _load_record(Coordinator.from_dict, uid, data, {})
            if c is not None:
                coordinators[uid] = c
        return coordinators

    def milestones_by_client(self) -> dict[str, list[Milestone]]:
        """Group every milestone under its client id (clients without any get [])."""
        grouped: dict[str, list[Milestone]] = {cid: [] for cid in self.load_clients()}
        for m in self.load_milestones().values():
            if m.client_id in grouped:
                grouped[m.client_id].append(m)
        return grouped

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def id_factory(self, prefix: str) -> Callable[[], str]:
        """Return a callable handing out the next free ``{prefix}-N`` ids."""
        raw = self._read()
        taken = set().union(*(raw[s].keys() for s in SECTIONS))
        existing = [
            int(k.split("-", 1)[1])
            for k in taken
            if k.startswith(f"{prefix}-") and k.split("-", 1)[1].isdigit()
        ]
        counter = itertools.count(max(existing, default=0) + 1)
        return lambda: f"{prefix}-{next(counter)}"

    def generate_id(self, prefix: str) -> str:
        return self.id_factory(prefix)()

    def insert_client(self, client: Client) -> None:
        raw = self._read()
        raw["clients"][client.id] = client.to_dict()
        self._write(raw)

    def insert_milestones(self, milestones: Iterable[Milestone]) -> None:
        raw = self._read()
        for m in milestones:
            raw["milestones"][m.id] = m.to_dict()
        self._write(raw)

    def add_coordinator(self, coordinator: Coordinator) -> None:
        raw = self._read()
        raw["coordinators"][coordinator.id] = coordinator.to_dict()
        self._write(raw)

    def update_milestone_status(
        self,
        milestone_id: str,
        status: MilestoneStatus,
        completed_date: date | None,
    ) -> None:
        """Persist a transition result. Raises KeyError for an unknown id."""
        raw = self._read()
        if milestone_id not in raw["milestones"]:
            raise KeyError(milestone_id)
        record = raw["milestones"][milestone_id]
        record["status"] = MilestoneStatus(status).value
        record["completed_date"] = completed_date.isoformat() if completed_date else None
        self._write(raw)

    def delete_client(self, client_id: str) -> int:
        """Delete a client and its milestones. Returns the number of milestones removed."""
        raw = self._read()
        if client_id not in raw["clients"]:
            raise KeyError(client_id)
        del raw["clients"][client_id]
        doomed = [mid for mid, m in raw["milestones"].items() if m.get("client_id") == client_id]
        for mid in doomed:
            del raw["milestones"][mid]
        self._write(raw)
        return len(doomed)
