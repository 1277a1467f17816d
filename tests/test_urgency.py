from datetime import date, timedelta

import pytest

from dday.models import Milestone, MilestoneStatus
from dday.urgency import (
    Urgency,
    UrgencyTier,
    classify,
    countdown_badge,
    d_label,
    days_to_anchor,
    is_due_today,
    is_overdue,
    sort_by_deadline,
    urgency_tier,
)

TODAY = date(2025, 2, 20)


def _m(deadline, status=MilestoneStatus.PENDING, mid="M-1"):
    return Milestone(id=mid, client_id="C-1", name="Task", deadline=deadline, status=status)


def test_overdue_only_for_pending_past_deadline():
    assert is_overdue(_m(date(2025, 2, 19)), TODAY)
    assert not is_overdue(_m(TODAY), TODAY)
    assert not is_overdue(_m(date(2025, 2, 21)), TODAY)
    assert not is_overdue(_m(None), TODAY)
    assert not is_overdue(_m(date(2025, 2, 19), MilestoneStatus.COMPLETED), TODAY)
    assert not is_overdue(_m(date(2025, 2, 19), MilestoneStatus.DELAYED), TODAY)


def test_overdue_never_reverses_for_pending():
    m = _m(date(2025, 2, 13))
    assert all(is_overdue(m, date(2025, 2, 14) + timedelta(days=n)) for n in range(400))


def test_due_today_ignores_status():
    for status in MilestoneStatus:
        assert is_due_today(_m(TODAY, status), TODAY)
    assert not is_due_today(_m(date(2025, 2, 19)), TODAY)
    assert not is_due_today(_m(None), TODAY)


def test_classify():
    assert classify(_m(date(2025, 2, 1)), TODAY) == Urgency.OVERDUE
    assert classify(_m(TODAY), "2025-02-20T08:00:00") == Urgency.DUE_TODAY
    assert classify(_m(date(2025, 3, 1)), TODAY) == Urgency.NORMAL
    assert classify(_m(date(2025, 2, 1), MilestoneStatus.DELAYED), TODAY) == Urgency.NORMAL


@pytest.mark.parametrize(
    "offset,label",
    [(-16, "D-16"), (0, "D-Day"), (5, "D+5"), (-1, "D-1"), (1, "D+1")],
)
def test_d_label(offset, label):
    anchor = date(2025, 3, 1)
    assert d_label(anchor + timedelta(days=offset), anchor) == label


def test_d_label_without_dates():
    assert d_label(None, date(2025, 3, 1)) == ""
    assert d_label(date(2025, 3, 1), None) == ""


@pytest.mark.parametrize(
    "days,tier",
    [
        (-1, UrgencyTier.PAST),
        (0, UrgencyTier.CRITICAL),
        (3, UrgencyTier.CRITICAL),
        (4, UrgencyTier.HIGH),
        (7, UrgencyTier.HIGH),
        (8, UrgencyTier.MEDIUM),
        (14, UrgencyTier.MEDIUM),
        (15, UrgencyTier.LOW),
    ],
)
def test_urgency_tier(days, tier):
    assert urgency_tier(TODAY + timedelta(days=days), TODAY) == tier


def test_urgency_tier_without_anchor():
    assert urgency_tier(None, TODAY) == UrgencyTier.NONE
    assert days_to_anchor(None, TODAY) is None


def test_countdown_badge():
    assert countdown_badge(TODAY, TODAY) == "D-Day!"
    assert countdown_badge(TODAY + timedelta(days=4), TODAY) == "D-4"
    assert countdown_badge(TODAY + timedelta(days=30), TODAY) == "D-30"
    assert countdown_badge(TODAY - timedelta(days=1), TODAY) is None
    assert countdown_badge(None, TODAY) is None


def test_sort_by_deadline_puts_undated_last():
    ms = [
        _m(None, mid="M-1"),
        _m(date(2025, 2, 25), mid="M-2"),
        _m(date(2025, 2, 10), mid="M-3"),
        _m(None, mid="M-4"),
    ]
    assert [m.id for m in sort_by_deadline(ms)] == ["M-3", "M-2", "M-1", "M-4"]
