"""
attendance.py
Attendance ledger and the check-in action.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime

import pandas as pd

import catalog
import db
import directory
import schedule
import utils
from models import AttendanceRecord, CheckInResult

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ["id", "class_name", "class_type", "location", "class_date", "check_in_time"]


def attended_keys(member_id: int) -> set[schedule.AttendanceKey]:
    rows = db.fetch_all(
        "SELECT class_id, class_date FROM attendance WHERE member_id = ?", (member_id,)
    )
    return {schedule.attendance_key(r["class_id"], r["class_date"]) for r in rows}


def get_record(class_id: int, member_id: int, class_date: date) -> AttendanceRecord | None:
    row = db.fetch_one(
        "SELECT * FROM attendance WHERE class_id = ? AND member_id = ? AND class_date = ?",
        (class_id, member_id, class_date.isoformat()),
    )
    return AttendanceRecord.from_row(row) if row else None


def list_records(member_id: int, limit: int = 50) -> list[AttendanceRecord]:
    rows = db.fetch_all(
        """
        SELECT * FROM attendance WHERE member_id = ?
        ORDER BY class_date DESC, check_in_time DESC LIMIT ?
        """,
        (member_id, limit),
    )
    return [AttendanceRecord.from_row(r) for r in rows]


def _already(message: str = "Already checked in today") -> CheckInResult:
    return CheckInResult(success=True, already_checked_in=True, message=message)


def check_in(
    class_id: int,
    member_id: int,
    now: datetime | None = None,
    checked_in_by: int | None = None,
) -> CheckInResult:
    """
    Record that `member_id` attended today's occurrence of `class_id`.

    Idempotent: a second call for the same class/member/day reports
    `already_checked_in` instead of adding a row. Self check-in
    (`checked_in_by` is None) must fall inside the check-in window; staff
    check-ins skip the window but not the membership checks.
    """
    now = now or datetime.now()
    today = now.date()

    try:
        if get_record(class_id, member_id, today):
            return _already()

        cls = catalog.get_class(class_id)
        if cls is None or not cls.is_active:
            return CheckInResult(success=False, error="Class not found")

        membership = directory.get_active_membership(member_id, cls.location_id)
        if membership is None:
            return CheckInResult(success=False, error="No active membership at this location")
        if not catalog.is_accessible(cls, membership.membership_type_id):
            return CheckInResult(success=False, error="This class is not included in your membership")
        if cls.day_of_week != utils.sunday_weekday(today):
            return CheckInResult(success=False, error="This class does not run today")

        if checked_in_by is None:
            decision = schedule.can_check_in(schedule.make_instance(cls, today, today), now)
            if not decision.allowed:
                return CheckInResult(success=False, error=decision.reason or "Check-in is closed for this class")

        db.execute(
            """
            INSERT INTO attendance(class_id, member_id, class_date, check_in_time, checked_in_by)
            VALUES(?,?,?,?,?)
            """,
            (class_id, member_id, today.isoformat(), now.isoformat(timespec="seconds"), checked_in_by),
        )
    except sqlite3.IntegrityError:
        # Lost a race with a concurrent check-in for the same day
        return _already()
    except sqlite3.Error:
        logger.exception("Check-in failed for member %s, class %s", member_id, class_id)
        return CheckInResult(success=False, error="Failed to check in")

    logger.info("Member %s checked in to class %s on %s", member_id, class_id, today)
    return CheckInResult(success=True, message="Checked in successfully!")


def history_frame(member_id: int, limit: int = 50) -> pd.DataFrame:
    rows = db.fetch_all(
        """
        SELECT a.id, c.name AS class_name, c.class_type, l.name AS location,
            a.class_date, a.check_in_time
        FROM attendance a
        JOIN classes c ON c.id = a.class_id
        LEFT JOIN locations l ON l.id = c.location_id
        WHERE a.member_id = ?
        ORDER BY a.class_date DESC, a.check_in_time DESC
        LIMIT ?
        """,
        (member_id, limit),
    )
    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    df = pd.DataFrame([dict(r) for r in rows])
    df["class_date"] = pd.to_datetime(df["class_date"].str.slice(0, 10))
    return df


def group_by_month(df: pd.DataFrame) -> list[tuple[str, pd.DataFrame]]:
    """Split a history frame into (\"Month YYYY\", rows) groups, newest month first."""
    if df.empty:
        return []
    periods = df["class_date"].dt.to_period("M")
    groups = []
    for period in sorted(periods.unique(), reverse=True):
        label = period.to_timestamp().strftime("%B %Y")
        groups.append((label, df[periods == period].reset_index(drop=True)))
    return groups


def this_month_count(df: pd.DataFrame, today: date | None = None) -> int:
    if df.empty:
        return 0
    today = today or date.today()
    dates = df["class_date"].dt
    return int(((dates.year == today.year) & (dates.month == today.month)).sum())


def attendance_report(
    location_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> pd.DataFrame:
    """Check-ins per class and date (admin view)."""
    sql = """
        SELECT a.class_date, c.name AS class_name, l.name AS location, COUNT(*) AS check_ins
        FROM attendance a
        JOIN classes c ON c.id = a.class_id
        LEFT JOIN locations l ON l.id = c.location_id
        WHERE 1=1
    """
    params: list = []
    if location_id is not None:
        sql += " AND c.location_id = ?"
        params.append(location_id)
    if start is not None:
        sql += " AND a.class_date >= ?"
        params.append(start.isoformat())
    if end is not None:
        sql += " AND a.class_date <= ?"
        params.append(end.isoformat())
    sql += " GROUP BY a.class_date, c.id ORDER BY a.class_date DESC, c.start_time ASC"
    rows = db.fetch_all(sql, tuple(params))
    if not rows:
        return pd.DataFrame(columns=["class_date", "class_name", "location", "check_ins"])
    return pd.DataFrame([dict(r) for r in rows])


def check_ins_on(day: date | None = None) -> int:
    day = day or date.today()
    row = db.fetch_one("SELECT COUNT(*) AS c FROM attendance WHERE class_date = ?", (day.isoformat(),))
    return int(row["c"])


def class_roster(class_id: int, day: date | None = None) -> pd.DataFrame:
    """Members checked in to a class on a day."""
    day = day or date.today()
    rows = db.fetch_all(
        """
        SELECT m.id AS member_id, m.first_name || ' ' || m.last_name AS member, m.belt_rank, m.stripes,
            a.check_in_time, a.checked_in_by
        FROM attendance a
        JOIN members m ON m.id = a.member_id
        WHERE a.class_id = ? AND a.class_date = ?
        ORDER BY a.check_in_time ASC
        """,
        (class_id, day.isoformat()),
    )
    if not rows:
        return pd.DataFrame(columns=["member_id", "member", "belt_rank", "stripes", "check_in_time", "checked_in_by"])
    return pd.DataFrame([dict(r) for r in rows])
