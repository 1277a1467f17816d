from datetime import date

import pytest

from dday.models import Client, Milestone, MilestoneStatus
from dday.rollup import (
    ClientFilter,
    daily_summary,
    dashboard_stats,
    has_delays,
    is_client_completed,
    matches,
    rollup,
    summarize_client,
)
from dday.scheduler import generate_schedule
from dday.urgency import UrgencyTier

C, P, D = MilestoneStatus.COMPLETED, MilestoneStatus.PENDING, MilestoneStatus.DELAYED


def _ms(*statuses, client_id="C-1"):
    return [
        Milestone(id=f"M-{i}", client_id=client_id, name=f"Task {i}", status=s)
        for i, s in enumerate(statuses)
    ]


def test_rollup_scenario():
    milestones = generate_schedule(date(2025, 3, 1), client_id="C-1")
    for i in range(5):
        milestones[i].status = C
    milestones[5].status = D

    r = rollup(milestones)
    assert r.to_dict() == {
        "completed": 5,
        "pending": 7,
        "delayed": 1,
        "total": 13,
        "completion_percent": 38,
    }


def test_rollup_empty():
    r = rollup([])
    assert r.total == 0
    assert r.completion_percent == 0
    assert r.completed + r.delayed + r.pending == r.total


def test_rollup_rounds_half_up():
    assert rollup(_ms(C, P, P, P, P, P, P, P)).completion_percent == 13


def test_completed_requires_milestones():
    assert not is_client_completed([])
    assert is_client_completed(_ms(C, C))
    assert not is_client_completed(_ms(C, P))
    assert has_delays(_ms(C, D))
    assert not has_delays([])


CLIENT = Client(id="C-1", name="John Smith", phone="+971 50 123 4567", departure_date=date(2025, 3, 1))
NO_PHONE = Client(id="C-2", name="Amal Haddad", departure_date=date(2025, 3, 1))


def test_text_search():
    assert matches(CLIENT, [], "john")
    assert matches(CLIENT, [], "SMITH")
    assert matches(CLIENT, [], "123 4567")
    assert not matches(CLIENT, [], "haddad")
    assert matches(NO_PHONE, [], "")
    assert not matches(NO_PHONE, [], "050")
    # search text is used as typed
    assert not matches(CLIENT, [], "smith ")
    assert not matches(CLIENT, [], " john")


def test_text_search_on_nameless_client():
    nameless = Client(id="C-9", name=None)
    assert not matches(nameless, [], "a")
    assert matches(nameless, [], "")


@pytest.mark.parametrize(
    "statuses,expected",
    [
        ((C, C), {"all", "completed"}),
        ((C, D), {"all", "delayed"}),
        ((P, D), {"all", "delayed"}),
        ((C, P), {"all", "in-progress"}),
        ((), {"all", "in-progress"}),
    ],
)
def test_status_filters(statuses, expected):
    milestones = _ms(*statuses)
    got = {f.value for f in ClientFilter if matches(CLIENT, milestones, "", f)}
    assert got == expected


def test_status_filter_combines_with_search():
    assert not matches(CLIENT, _ms(D), "amal", "delayed")
    assert matches(CLIENT, _ms(D), "john", "delayed")


def test_unknown_filter_rejected():
    with pytest.raises(ValueError):
        matches(CLIENT, [], "", "archived")


def test_summarize_client():
    s = summarize_client(CLIENT, _ms(C, P), date(2025, 2, 25))
    assert s.tier == UrgencyTier.HIGH
    assert s.days_to_departure == 4
    assert s.badge == "D-4"
    assert s.rollup.completion_percent == 50

    on_dday = summarize_client(CLIENT, [], date(2025, 3, 1))
    assert on_dday.badge == "D-Day!"
    assert on_dday.tier == UrgencyTier.CRITICAL


def test_summarize_client_degrades_bad_date():
    broken = Client(id="C-9", name="Broken", departure_date="03/01/2025")
    s = summarize_client(broken, _ms(C), date(2025, 2, 25))
    assert s.tier == UrgencyTier.NONE
    assert s.badge is None
    assert s.rollup.completed == 1


def test_dashboard_stats():
    stats = dashboard_stats({
        "C-1": _ms(C, C, P, D, client_id="C-1"),
        "C-2": _ms(C, P, client_id="C-2"),
        "C-3": [],
    })
    assert stats.to_dict() == {
        "total_clients": 3,
        "completed": 3,
        "pending": 2,
        "delayed": 1,
        "completion_rate": 50,
    }
    assert dashboard_stats({}).completion_rate == 0


def test_daily_summary():
    today = date(2025, 2, 20)
    milestones = [
        Milestone(id="M-1", client_id="C-1", name="Biometrics", deadline=today),
        Milestone(id="M-2", client_id="C-1", name="UAE SIM", deadline=today, status=C),
        Milestone(id="M-3", client_id="C-2", name="Medical Test", deadline=date(2025, 2, 1), status=D),
        Milestone(id="M-4", client_id="C-2", name="Emirates ID", deadline=date(2025, 2, 22)),
    ]
    summary = daily_summary(milestones, today)
    assert [m.id for m in summary.due_today] == ["M-1"]
    assert [m.id for m in summary.delayed] == ["M-3"]

    d = summary.to_dict()
    assert d["date"] == "2025-02-20"
    assert d["due_today"] == 1
    assert d["delayed"] == 1
    assert d["milestones_due"][0]["id"] == "M-1"
