from datetime import date
from unittest.mock import Mock

import pytest

from dday.models import (
    InvalidDateError,
    MilestoneStatus,
    MissingAnchorError,
    PermissionDeniedError,
    Role,
)
from dday.notify import WebhookNotifier
from dday.persistence import Store
from dday.service import change_status, create_client, remove_client, require_admin


def test_require_admin():
    require_admin(Role.ADMIN)
    require_admin("admin")
    with pytest.raises(PermissionDeniedError):
        require_admin(Role.TASK_OWNER)


def test_create_client_generates_schedule(tmp_path):
    store = Store(tmp_path / "db.json")
    client, milestones = create_client(store, Role.ADMIN, "  John Smith ", "2025-03-01", phone=" ")

    assert client.id == "C-1"
    assert client.name == "John Smith"
    assert client.phone is None
    assert len(milestones) == 13
    assert [m.id for m in milestones][:2] == ["M-1", "M-2"]
    assert len(store.load_milestones("C-1")) == 13


def test_create_client_refusals_leave_store_untouched(tmp_path):
    store = Store(tmp_path / "db.json")
    with pytest.raises(MissingAnchorError):
        create_client(store, Role.ADMIN, "John", None)
    with pytest.raises(InvalidDateError):
        create_client(store, Role.ADMIN, "John", "March 1st")
    with pytest.raises(ValueError):
        create_client(store, Role.ADMIN, "   ", "2025-03-01")
    with pytest.raises(PermissionDeniedError):
        create_client(store, Role.TASK_OWNER, "John", "2025-03-01")
    assert not (tmp_path / "db.json").exists()


def test_change_status_persists_then_notifies(tmp_path):
    store = Store(tmp_path / "db.json")
    create_client(store, Role.ADMIN, "John", date(2025, 3, 1))
    notifier = Mock(spec=WebhookNotifier)
    notifier.send.return_value = {"status": "error", "success": False, "error": "boom"}

    change = change_status(store, notifier, "M-2", "completed", date(2025, 2, 21))

    stored = store.load_milestones()["M-2"]
    assert stored.status == MilestoneStatus.COMPLETED
    assert stored.completed_date == date(2025, 2, 21)
    assert change.delivery["success"] is False
    event = notifier.send.call_args.args[0]
    assert event.milestone_id == "M-2"
    assert event.client_id == "C-1"


def test_change_status_unknown_milestone(tmp_path):
    store = Store(tmp_path / "db.json")
    with pytest.raises(KeyError):
        change_status(store, WebhookNotifier(None), "M-1", "completed", date(2025, 2, 21))


def test_remove_client(tmp_path):
    store = Store(tmp_path / "db.json")
    create_client(store, Role.ADMIN, "John", date(2025, 3, 1))
    with pytest.raises(PermissionDeniedError):
        remove_client(store, Role.TASK_OWNER, "C-1")
    assert remove_client(store, Role.ADMIN, "C-1") == 13
    assert store.load_milestones() == {}
