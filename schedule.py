"""
schedule.py
Class occurrences for a member, the self check-in window and monthly attendance stats.

Everything here is pure: callers pass in records already loaded from the
database and the current date/time.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

import config
import utils
from models import AttendanceStats, CheckInDecision, ClassInstance, DojoClass, Membership, MonthStats

HORIZON_DAYS = config.HORIZON_DAYS
EARLY_CHECKIN_MINUTES = config.EARLY_CHECKIN_MINUTES

AttendanceKey = tuple[int, date]


def attendance_key(class_id: int, class_date) -> AttendanceKey:
    return class_id, utils.normalize_date(class_date)


def make_instance(cls: DojoClass, on: date, today: date, attended: bool = False) -> ClassInstance:
    return ClassInstance(
        class_id=cls.id,
        name=cls.name,
        class_type=cls.class_type,
        date=on,
        day_of_week=utils.sunday_weekday(on),
        start_time=cls.start_time,
        end_time=cls.end_time,
        location_name=cls.location_name or "",
        instructor_name=cls.instructor_name,
        is_today=(on == today),
        attended=attended,
    )


def _instances_on(
    on: date,
    classes: list[DojoClass],
    attended: set[AttendanceKey],
    today: date,
) -> list[ClassInstance]:
    weekday = utils.sunday_weekday(on)
    return [
        make_instance(cls, on, today, attended=(cls.id, on) in attended)
        for cls in classes
        if cls.day_of_week == weekday
    ]


def generate_instances(
    membership: Membership | None,
    classes: Iterable[DojoClass],
    attended: Iterable[AttendanceKey],
    today: date | None = None,
) -> tuple[list[ClassInstance], list[ClassInstance]]:
    """
    Expand weekly classes into dated instances around `today`.

    Returns (upcoming, past):
    - upcoming: today through today + HORIZON_DAYS - 1, nearest first
    - past: yesterday back to today - HORIZON_DAYS, nearest first, never
      before the membership's start date (a missing start date means today)

    `classes` must already be filtered to the member's location and tier;
    within a day instances keep the order of `classes`. Without an active
    membership nothing is generated.
    """
    if membership is None or not membership.is_active:
        return [], []

    today = today or date.today()
    classes = list(classes)
    attended = {attendance_key(class_id, d) for class_id, d in attended}
    start = membership.start_date or today

    upcoming: list[ClassInstance] = []
    for offset in range(HORIZON_DAYS):
        upcoming.extend(_instances_on(today + timedelta(days=offset), classes, attended, today))

    past: list[ClassInstance] = []
    for offset in range(1, HORIZON_DAYS + 1):
        on = today - timedelta(days=offset)
        if on < start:
            # Dates only get earlier from here
            break
        past.extend(_instances_on(on, classes, attended, today))

    return upcoming, past


def format_wait(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def can_check_in(instance: ClassInstance, now: datetime) -> CheckInDecision:
    """
    Whether a member may check in to `instance` at `now`.

    Check-in is open from EARLY_CHECKIN_MINUTES before the start until the
    end time (inclusive). Only instances dated today are eligible; seconds
    are ignored.
    """
    if instance.date != now.date():
        return CheckInDecision(False)

    now_mins = now.hour * 60 + now.minute
    start_mins = utils.parse_minutes(instance.start_time)
    end_mins = utils.parse_minutes(instance.end_time)

    if start_mins <= now_mins <= end_mins:
        return CheckInDecision(True)

    wait = start_mins - now_mins
    if 0 < wait <= EARLY_CHECKIN_MINUTES:
        return CheckInDecision(True)
    if wait > EARLY_CHECKIN_MINUTES:
        return CheckInDecision(False, f"Check-in opens in {format_wait(wait - EARLY_CHECKIN_MINUTES)}")

    # Class is over
    return CheckInDecision(False)


def compute_stats(past: Iterable[ClassInstance], today: date | None = None) -> AttendanceStats:
    """Attended/total for the current and previous calendar month."""
    today = today or date.today()
    this_start = today.replace(day=1)
    last_end = this_start - timedelta(days=1)
    last_start = last_end.replace(day=1)

    past = list(past)
    this_month = [i for i in past if i.date >= this_start]
    last_month = [i for i in past if last_start <= i.date <= last_end]

    return AttendanceStats(
        this_month=MonthStats(sum(1 for i in this_month if i.attended), len(this_month)),
        last_month=MonthStats(sum(1 for i in last_month if i.attended), len(last_month)),
    )
