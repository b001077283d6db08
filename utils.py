"""
utils.py
Validation, dates, exports, sample data.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

import pandas as pd

import db
from models import BELT_RANKS, CLASS_TYPES, KIDS_BELT_RANKS

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d")


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def normalize_date(value) -> date:
    """
    Strip any time-of-day part: accepts a date, a datetime or an ISO string
    such as '2024-05-01' or '2024-05-01T00:00:00Z'.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).split("T")[0][:10])


def sunday_weekday(d: date) -> int:
    """Weekday with 0=Sunday..6=Saturday (Python's weekday() starts on Monday)."""
    return (d.weekday() + 1) % 7


def parse_minutes(hhmm: str) -> int:
    """Minute-of-day from 'HH:MM' (anything after the minutes, e.g. ':SS', is ignored)."""
    hours, minutes = hhmm[:5].split(":")
    return int(hours) * 60 + int(minutes)


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    Negative values go back in time.
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def month_bounds(d: date) -> tuple[date, date]:
    """First and last day of the month containing d."""
    first = d.replace(day=1)
    last = add_months(first, 1) - timedelta(days=1)
    return first, last


def age_on(date_of_birth: date, today: date) -> int:
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def format_price(pence: int) -> str:
    if pence == 0:
        return "Free"
    return f"£{pence / 100:.2f}"


def validate_member_inputs(first_name: str, last_name: str, date_of_birth: str | None, email: str) -> list[str]:
    errors: list[str] = []
    if not first_name.strip():
        errors.append("First name is required.")
    if not last_name.strip():
        errors.append("Last name is required.")
    if date_of_birth:
        try:
            if parse_iso(date_of_birth) > date.today():
                errors.append("Date of birth cannot be in the future.")
        except ValueError:
            errors.append("Date of birth must be a valid ISO date (YYYY-MM-DD).")
    if email.strip() and "@" not in email:
        errors.append("Email address looks invalid.")
    return errors


def validate_class_inputs(name: str, class_type: str, day_of_week, start_time: str, end_time: str) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Class name is required.")
    if class_type not in CLASS_TYPES:
        errors.append(f"Class type must be one of: {', '.join(CLASS_TYPES)}.")
    try:
        if not 0 <= int(day_of_week) <= 6:
            errors.append("Day of week must be between 0 (Sunday) and 6 (Saturday).")
    except (TypeError, ValueError):
        errors.append("Day of week must be a number.")
    if not _TIME_RE.match(start_time or "") or not _TIME_RE.match(end_time or ""):
        errors.append("Times must be in HH:MM format.")
    elif parse_minutes(end_time) <= parse_minutes(start_time):
        errors.append("End time must be after start time.")
    return errors


def validate_membership_type_inputs(name: str, price, age_min, age_max) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Name is required.")
    try:
        if int(price) < 0:
            errors.append("Price cannot be negative.")
    except (TypeError, ValueError):
        errors.append("Price must be a whole number of pence.")
    if age_min is not None and age_max is not None and age_min > age_max:
        errors.append("Minimum age must not exceed maximum age.")
    return errors


def valid_belts(is_child: bool) -> tuple[str, ...]:
    return KIDS_BELT_RANKS if is_child else BELT_RANKS


def rows_to_csv_bytes(rows) -> bytes:
    df = pd.DataFrame([dict(r) for r in rows])
    return df.to_csv(index=False).encode("utf-8")


def frame_to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def insert_sample_data(today: date | None = None) -> None:
    """
    Insert a location, two tiers, a few members and a weekly timetable
    (safe to run multiple times: adds new rows each time).
    """
    today = today or date.today()
    now = datetime.now().isoformat(timespec="seconds")

    loc_id = db.execute(
        "INSERT INTO locations(name, city, max_capacity, is_active) VALUES(?,?,?,1)",
        ("Main Academy", "London", 120),
    )
    adult_tier = db.execute(
        """
        INSERT INTO membership_types(location_id, name, description, price, age_min, age_max, is_active)
        VALUES(?,?,?,?,?,?,1)
        """,
        (loc_id, "Adult Unlimited", "All adult classes", 6000, 16, None),
    )
    kids_tier = db.execute(
        """
        INSERT INTO membership_types(location_id, name, description, price, age_min, age_max, is_active)
        VALUES(?,?,?,?,?,?,1)
        """,
        (loc_id, "Kids", "Kids classes only", 3500, 4, 15),
    )

    members = [
        ("Amir", "Khan", "1990-04-12", "amir@example.com", 0, None, "blue", 2, 1),
        ("Sara", "Ahmed", "1995-09-30", "sara@example.com", 0, None, "white", 3, 0),
    ]
    ids = []
    for m in members:
        mid = db.execute(
            """
            INSERT INTO members(first_name, last_name, date_of_birth, email, is_child, parent_id,
                belt_rank, stripes, is_instructor, created_at)
            VALUES(?,?,?,?,?,?,?,?,?,?)
            """,
            (*m, now),
        )
        ids.append(mid)
    child_id = db.execute(
        """
        INSERT INTO members(first_name, last_name, date_of_birth, is_child, parent_id,
            belt_rank, stripes, is_instructor, created_at)
        VALUES(?,?,?,1,?,'grey',1,0,?)
        """,
        ("Yusuf", "Ahmed", (today - timedelta(days=365 * 9)).isoformat(), ids[1], now),
    )

    start = (today - timedelta(days=21)).isoformat()
    db.executemany(
        """
        INSERT INTO memberships(member_id, location_id, membership_type_id, status, start_date, created_at)
        VALUES(?,?,?,'active',?,?)
        """,
        [
            (ids[1], loc_id, adult_tier, start, now),
            (child_id, loc_id, kids_tier, start, now),
        ],
    )

    timetable = [
        ("Fundamentals", 1, "18:00", "19:00", None),
        ("No-Gi", 3, "19:00", "20:30", adult_tier),
        ("Kids BJJ", 6, "10:00", "11:00", kids_tier),
        ("Open Mat", 0, "11:00", "13:00", None),
    ]
    for name, dow, start_time, end_time, tier in timetable:
        class_id = db.execute(
            """
            INSERT INTO classes(location_id, instructor_id, name, class_type, day_of_week, start_time, end_time, is_active)
            VALUES(?,?,?,'bjj',?,?,?,1)
            """,
            (loc_id, ids[0], name, dow, start_time, end_time),
        )
        if tier is not None:
            db.execute(
                "INSERT INTO class_membership_types(class_id, membership_type_id) VALUES(?,?)",
                (class_id, tier),
            )
