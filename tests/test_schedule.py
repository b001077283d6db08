from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

import catalog
import schedule
from models import ClassInstance, DojoClass, Membership, MonthStats

TODAY = date(2024, 5, 15)  # Wednesday


def make_class(class_id, day_of_week, start="10:00", end="11:00", tier_ids=(), name=None):
    return DojoClass(
        id=class_id,
        location_id=1,
        name=name or f"Class {class_id}",
        class_type="bjj",
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        location_name="Main Academy",
        instructor_name="Amir Khan",
        tier_ids=frozenset(tier_ids),
    )


def make_membership(start_date, status="active", tier_id=10):
    return Membership(
        id=1, member_id=1, location_id=1, membership_type_id=tier_id, status=status, start_date=start_date
    )


def instance(start="10:00", end="11:00", on=TODAY):
    return schedule.make_instance(make_class(1, 3, start, end), on, TODAY)


def at(hour, minute=0, second=0, day=TODAY):
    return datetime(day.year, day.month, day.day, hour, minute, second)


# ---------- Occurrence generator ----------

def test_upcoming_covers_28_days_nearest_first():
    classes = [make_class(1, 3), make_class(2, 5)]  # Wednesday, Friday
    upcoming, _ = schedule.generate_instances(make_membership(date(2024, 1, 1)), classes, set(), TODAY)

    dates = [i.date for i in upcoming]
    assert dates == sorted(dates)
    assert dates[0] == TODAY
    assert max(dates) <= TODAY + timedelta(days=27)
    # 4 Wednesdays (15, 22, 29 May, 5 June) and 4 Fridays (17, 24, 31 May, 7 June)
    assert len(upcoming) == 8
    assert [i.is_today for i in upcoming].count(True) == 1


def test_instances_only_on_matching_weekday():
    upcoming, past = schedule.generate_instances(
        make_membership(date(2024, 1, 1)), [make_class(1, 0)], set(), TODAY
    )
    for i in upcoming + past:
        assert i.date.weekday() == 6  # Python's Sunday
        assert i.day_of_week == 0


def test_same_day_keeps_catalog_order():
    classes = [make_class(7, 3, "18:00", "19:00"), make_class(4, 3, "07:00", "08:00")]
    upcoming, _ = schedule.generate_instances(make_membership(date(2024, 1, 1)), classes, set(), TODAY)
    assert [i.class_id for i in upcoming[:2]] == [7, 4]


def test_past_window_stops_at_membership_start():
    start = TODAY - timedelta(days=10)
    _, past = schedule.generate_instances(make_membership(start), [make_class(1, d) for d in range(7)], set(), TODAY)

    assert len(past) == 10
    assert min(i.date for i in past) == start
    assert all(i.date < TODAY for i in past)
    assert not any(i.is_today for i in past)


@pytest.mark.parametrize("days_back", range(0, 29))
def test_no_past_instance_before_start(days_back):
    start = TODAY - timedelta(days=days_back)
    _, past = schedule.generate_instances(make_membership(start), [make_class(1, d) for d in range(7)], set(), TODAY)
    assert all(i.date >= start for i in past)
    assert len(past) == days_back


def test_past_is_limited_to_28_days():
    _, past = schedule.generate_instances(
        make_membership(date(2020, 1, 1)), [make_class(1, d) for d in range(7)], set(), TODAY
    )
    assert len(past) == 28
    assert min(i.date for i in past) == TODAY - timedelta(days=28)
    assert past[0].date == TODAY - timedelta(days=1)


def test_future_start_date_empties_past_only():
    upcoming, past = schedule.generate_instances(
        make_membership(TODAY + timedelta(days=3)), [make_class(1, 3)], set(), TODAY
    )
    assert past == []
    assert len(upcoming) == 4


def test_missing_start_date_counts_as_today():
    upcoming, past = schedule.generate_instances(make_membership(None), [make_class(1, 3)], set(), TODAY)
    assert past == []
    assert upcoming


@pytest.mark.parametrize("status", ["pending", "inactive", "cancelled"])
def test_inactive_membership_generates_nothing(status):
    assert schedule.generate_instances(make_membership(date(2024, 1, 1), status), [make_class(1, 3)], set(), TODAY) == ([], [])


def test_no_membership_generates_nothing():
    assert schedule.generate_instances(None, [make_class(1, 3)], set(), TODAY) == ([], [])


def test_attended_flag_normalizes_dates():
    attended = {
        (1, "2024-05-08T00:00:00Z"),
        (1, datetime(2024, 5, 15, 10, 3)),
        (2, date(2024, 5, 8)),
    }
    upcoming, past = schedule.generate_instances(
        make_membership(date(2024, 5, 1)), [make_class(1, 3)], attended, TODAY
    )
    by_date = {i.date: i.attended for i in upcoming + past}
    assert by_date[date(2024, 5, 8)] is True
    assert by_date[TODAY] is True
    assert by_date[date(2024, 5, 1)] is False
    assert by_date[date(2024, 5, 22)] is False


def test_tier_whitelist():
    open_class = make_class(1, 3)
    gold_only = make_class(2, 3, tier_ids={10})
    visible_to_silver = catalog.accessible_classes([open_class, gold_only], tier_id=20)
    visible_to_gold = catalog.accessible_classes([open_class, gold_only], tier_id=10)

    upcoming, past = schedule.generate_instances(
        make_membership(date(2024, 1, 1), tier_id=20), visible_to_silver, set(), TODAY
    )
    assert {i.class_id for i in upcoming + past} == {1}
    assert [c.id for c in visible_to_gold] == [1, 2]


def test_missing_location_and_instructor_are_tolerated():
    bare = DojoClass(id=3, location_id=1, name="Open Mat", class_type="other", day_of_week=3,
                     start_time="12:00", end_time="13:00")
    upcoming, _ = schedule.generate_instances(make_membership(date(2024, 1, 1)), [bare], set(), TODAY)
    assert upcoming[0].location_name == ""
    assert upcoming[0].instructor_name is None


# ---------- Check-in gate ----------

def test_gate_allows_at_exact_start():
    assert schedule.can_check_in(instance(), at(10, 0)).allowed


def test_gate_allows_until_end_inclusive():
    assert schedule.can_check_in(instance(), at(10, 30)).allowed
    assert schedule.can_check_in(instance(), at(11, 0)).allowed


def test_gate_allows_exactly_one_hour_early():
    assert schedule.can_check_in(instance(), at(9, 0)).allowed


def test_gate_61_minutes_early():
    decision = schedule.can_check_in(instance(), at(8, 59))
    assert not decision.allowed
    assert decision.reason == "Check-in opens in 1 min"


@pytest.mark.parametrize(
    "now, message",
    [
        ((8, 15), "Check-in opens in 45 min"),
        ((8, 0), "Check-in opens in 1h"),
        ((7, 0), "Check-in opens in 2h"),
        ((6, 45), "Check-in opens in 2h 15m"),
    ],
)
def test_gate_wait_message(now, message):
    decision = schedule.can_check_in(instance(), at(*now))
    assert decision.allowed is False
    assert decision.reason == message


def test_gate_ignores_seconds():
    assert schedule.can_check_in(instance(), at(8, 59, 59)).reason == "Check-in opens in 1 min"
    assert schedule.can_check_in(instance(), at(11, 0, 59)).allowed


def test_gate_closed_after_end_without_reason():
    decision = schedule.can_check_in(instance(), at(11, 1))
    assert decision.allowed is False
    assert decision.reason is None


def test_gate_only_today():
    tomorrow = instance(on=TODAY + timedelta(days=1))
    decision = schedule.can_check_in(tomorrow, at(10, 0))
    assert decision.allowed is False
    assert decision.reason is None


def test_gate_accepts_times_with_seconds():
    assert schedule.can_check_in(instance("10:00:00", "11:00:00"), at(9, 30)).allowed


# ---------- Statistics ----------

def _past(on, attended):
    return ClassInstance(
        class_id=1, name="Fundamentals", class_type="bjj", date=on, day_of_week=3,
        start_time="10:00", end_time="11:00", location_name="", instructor_name=None,
        is_today=False, attended=attended,
    )


def test_stats_split_by_month():
    past = [
        _past(date(2024, 5, 8), True),
        _past(date(2024, 5, 1), False),
        _past(date(2024, 4, 24), True),
        _past(date(2024, 4, 17), True),
        _past(date(2024, 3, 31), True),  # two months back: ignored
    ]
    stats = schedule.compute_stats(past, TODAY)
    assert stats.this_month == MonthStats(attended=1, total=2)
    assert stats.last_month == MonthStats(attended=2, total=2)
    assert stats.this_month.rate == 50
    assert stats.last_month.rate == 100
    assert stats.improved is False


def test_stats_from_generator_output():
    attended = {(1, date(2024, 5, 8)), (1, date(2024, 4, 24)), (1, date(2024, 4, 17))}
    _, past = schedule.generate_instances(make_membership(date(2024, 4, 1)), [make_class(1, 3)], attended, TODAY)
    stats = schedule.compute_stats(past, TODAY)
    assert (stats.this_month.attended, stats.this_month.total) == (1, 2)
    assert (stats.last_month.attended, stats.last_month.total) == (2, 2)


def test_stats_year_boundary():
    past = [_past(date(2023, 12, 27), True), _past(date(2024, 1, 3), True), _past(date(2024, 1, 10), True)]
    stats = schedule.compute_stats(past, date(2024, 1, 15))
    assert stats.last_month.total == 1
    assert stats.this_month.attended == 2
    assert stats.improved is True


def test_rate_is_zero_without_classes():
    stats = schedule.compute_stats([], TODAY)
    assert stats.this_month.rate == 0
    assert stats.last_month.rate == 0
    assert stats.improved is False


@pytest.mark.parametrize("attended, total, rate", [(1, 3, 33), (2, 3, 67), (1, 8, 13), (0, 4, 0), (4, 4, 100)])
def test_rate_rounds_half_up(attended, total, rate):
    assert MonthStats(attended, total).rate == rate
