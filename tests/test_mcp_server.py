import json

import pytest

from dday import mcp_server
from dday.config import get_settings


@pytest.fixture(autouse=True)
def db(tmp_path, monkeypatch):
    monkeypatch.setenv("DDAY_DB", str(tmp_path / "db.json"))
    monkeypatch.delenv("DDAY_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("DDAY_ROLE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_add_and_get_client():
    assert mcp_server.add_client("Ali", "2025-03-01") == "Added 'Ali' as C-1 with 13 milestones."

    detail = json.loads(mcp_server.get_client("C-1", on="2025-02-20"))
    assert detail["total"] == 13
    assert detail["urgency_tier"] == "medium"
    assert detail["badge"] == "D-9"
    visa = next(m for m in detail["milestones"] if m["name"] == "Residence Visa Arrived")
    assert visa["d_label"] == "D-16"
    assert visa["urgency"] == "overdue"
    assert detail["milestones"][0]["name"] == "Business License"
    assert detail["milestones"][-1]["d_label"] == "D-Day"


def test_errors_are_strings():
    assert mcp_server.add_client("Ali", "").startswith("Error:")
    assert mcp_server.get_client("C-404").startswith("Error:")
    assert mcp_server.set_milestone_status("M-1", "archived").startswith("Error:")
    assert mcp_server.set_milestone_status("M-1", "completed").startswith("Error:")
    assert mcp_server.list_clients(status_filter="nope").startswith("Error:")


def test_status_list_and_dashboard():
    mcp_server.add_client("Ali", "2025-03-01")
    mcp_server.add_client("Noor", "2025-05-01")
    assert mcp_server.set_milestone_status("M-1", "delayed") == "Set M-1 to delayed."
    assert mcp_server.set_milestone_status("M-14", "completed", on="2025-04-01") == "Set M-14 to completed."

    delayed = json.loads(mcp_server.list_clients(status_filter="delayed"))
    assert [c["name"] for c in delayed] == ["Ali"]

    dashboard = json.loads(mcp_server.get_dashboard())
    assert dashboard["total_clients"] == 2
    assert dashboard["completed"] == 1
    assert dashboard["delayed"] == 1
    assert dashboard["pending"] == 24


def test_daily_summary_and_delete():
    mcp_server.add_client("Ali", "2025-03-01")
    summary = json.loads(mcp_server.get_daily_summary(on="2025-03-01"))
    assert summary["due_today"] == 1
    assert summary["milestones_due"][0]["name"] == "Departure"
    assert summary["milestones_due"][0]["client"]["name"] == "Ali"

    assert mcp_server.delete_client("C-1") == "Deleted C-1 and 13 milestones."
    assert mcp_server.delete_client("C-1").startswith("Error:")


def test_task_owner_cannot_delete(monkeypatch):
    mcp_server.add_client("Ali", "2025-03-01")
    monkeypatch.setenv("DDAY_ROLE", "task_owner")
    get_settings.cache_clear()
    assert "may not" in mcp_server.delete_client("C-1")
