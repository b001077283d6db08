"""
models.py
Lightweight domain records (dataclasses) and constants.

Rows from SQLite are converted with the `from_row` constructors so the
schedule/statistics code only ever sees typed records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

MEMBERSHIP_STATUSES = ("active", "pending", "inactive", "cancelled")

CLASS_TYPES = ("bjj", "other")

# Index matches day_of_week (0=Sunday..6=Saturday)
DAYS_OF_WEEK = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

BELT_RANKS = ("white", "blue", "purple", "brown", "black")

# Kids ranks (under 16)
KIDS_BELT_RANKS = (
    "white", "grey", "grey-white",
    "yellow", "yellow-white",
    "orange", "orange-white",
    "green", "green-white",
)

MAX_STRIPES = 4

STAFF_ROLES = ("admin", "instructor")

VIDEO_CATEGORIES = ("technique", "drill", "competition", "other")

EVENT_TYPES = ("class", "seminar", "retreat", "gathering", "competition", "other")

ANNOUNCEMENT_AUDIENCES = ("all", "members", "instructors")


def _opt_date(value) -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _keys(row) -> set[str]:
    return set(row.keys())


@dataclass(frozen=True)
class Location:
    id: int
    name: str
    city: str | None
    max_capacity: int | None  # None = unlimited
    is_active: bool

    @classmethod
    def from_row(cls, row) -> "Location":
        return cls(
            id=row["id"],
            name=row["name"],
            city=row["city"],
            max_capacity=row["max_capacity"],
            is_active=bool(row["is_active"]),
        )


@dataclass(frozen=True)
class MembershipType:
    id: int
    location_id: int
    name: str
    description: str | None
    price: int  # pence, 0 = free
    age_min: int | None
    age_max: int | None
    is_active: bool

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @classmethod
    def from_row(cls, row) -> "MembershipType":
        return cls(
            id=row["id"],
            location_id=row["location_id"],
            name=row["name"],
            description=row["description"],
            price=int(row["price"]),
            age_min=row["age_min"],
            age_max=row["age_max"],
            is_active=bool(row["is_active"]),
        )


@dataclass(frozen=True)
class Member:
    id: int
    first_name: str
    last_name: str
    date_of_birth: date | None
    email: str | None
    phone: str | None
    is_child: bool
    parent_id: int | None
    belt_rank: str
    stripes: int
    is_instructor: bool

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            date_of_birth=_opt_date(row["date_of_birth"]),
            email=row["email"],
            phone=row["phone"],
            is_child=bool(row["is_child"]),
            parent_id=row["parent_id"],
            belt_rank=row["belt_rank"],
            stripes=int(row["stripes"]),
            is_instructor=bool(row["is_instructor"]),
        )


@dataclass(frozen=True)
class Membership:
    id: int
    member_id: int
    location_id: int
    membership_type_id: int
    status: str  # one of MEMBERSHIP_STATUSES
    start_date: date | None
    end_date: date | None = None
    subscription_ref: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_row(cls, row) -> "Membership":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            location_id=row["location_id"],
            membership_type_id=row["membership_type_id"],
            status=row["status"],
            start_date=_opt_date(row["start_date"]),
            end_date=_opt_date(row["end_date"]),
            subscription_ref=row["subscription_ref"],
        )


@dataclass(frozen=True)
class DojoClass:
    """Recurring weekly class definition."""
    id: int
    location_id: int
    name: str
    class_type: str
    day_of_week: int  # 0=Sunday..6=Saturday
    start_time: str  # HH:MM, local
    end_time: str
    is_active: bool = True
    instructor_id: int | None = None
    location_name: str = ""
    instructor_name: str | None = None
    tier_ids: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def from_row(cls, row, tier_ids=()) -> "DojoClass":
        keys = _keys(row)
        instructor_name = None
        if "instructor_first_name" in keys and row["instructor_first_name"] is not None:
            instructor_name = f"{row['instructor_first_name']} {row['instructor_last_name']}".strip()
        return cls(
            id=row["id"],
            location_id=row["location_id"],
            name=row["name"],
            class_type=row["class_type"],
            day_of_week=int(row["day_of_week"]),
            start_time=row["start_time"],
            end_time=row["end_time"],
            is_active=bool(row["is_active"]),
            instructor_id=row["instructor_id"],
            location_name=(row["location_name"] or "") if "location_name" in keys else "",
            instructor_name=instructor_name,
            tier_ids=frozenset(tier_ids),
        )


@dataclass(frozen=True)
class ClassInstance:
    """One dated occurrence of a DojoClass; derived, never stored."""
    class_id: int
    name: str
    class_type: str
    date: date
    day_of_week: int
    start_time: str
    end_time: str
    location_name: str
    instructor_name: str | None
    is_today: bool
    attended: bool

    @property
    def date_string(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class AttendanceRecord:
    id: int
    class_id: int
    member_id: int
    class_date: date
    check_in_time: datetime
    checked_in_by: int | None = None

    @classmethod
    def from_row(cls, row) -> "AttendanceRecord":
        return cls(
            id=row["id"],
            class_id=row["class_id"],
            member_id=row["member_id"],
            class_date=_opt_date(row["class_date"]),
            check_in_time=datetime.fromisoformat(row["check_in_time"]),
            checked_in_by=row["checked_in_by"],
        )


@dataclass(frozen=True)
class CheckInDecision:
    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class CheckInResult:
    success: bool
    already_checked_in: bool = False
    message: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class MonthStats:
    attended: int
    total: int

    @property
    def rate(self) -> int:
        """Attendance percentage, rounded half up; 0 when there were no classes."""
        if self.total == 0:
            return 0
        return (self.attended * 200 + self.total) // (self.total * 2)


@dataclass(frozen=True)
class AttendanceStats:
    this_month: MonthStats
    last_month: MonthStats

    @property
    def improved(self) -> bool:
        # Raw counts, not rates: the current month is usually partial
        return self.this_month.attended > self.last_month.attended


@dataclass(frozen=True)
class Promotion:
    id: int
    member_id: int
    class_id: int | None
    previous_belt: str
    previous_stripes: int
    new_belt: str
    new_stripes: int
    promoted_by: str | None
    comments: str | None
    promotion_date: date

    @classmethod
    def from_row(cls, row) -> "Promotion":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            class_id=row["class_id"],
            previous_belt=row["previous_belt"],
            previous_stripes=int(row["previous_stripes"]),
            new_belt=row["new_belt"],
            new_stripes=int(row["new_stripes"]),
            promoted_by=row["promoted_by"],
            comments=row["comments"],
            promotion_date=_opt_date(row["promotion_date"]),
        )


@dataclass(frozen=True)
class Video:
    id: int
    title: str
    url: str
    category: str
    belt_level: str | None
    description: str | None
    is_active: bool

    @classmethod
    def from_row(cls, row) -> "Video":
        return cls(
            id=row["id"],
            title=row["title"],
            url=row["url"],
            category=row["category"],
            belt_level=row["belt_level"],
            description=row["description"],
            is_active=bool(row["is_active"]),
        )


@dataclass(frozen=True)
class EmailTemplate:
    id: int
    template_key: str
    name: str
    subject: str
    greeting: str
    body_intro: str
    body_details: str | None
    body_action: str | None
    body_closing: str
    signature: str
    button_text: str | None
    button_url: str | None
    is_active: bool

    @classmethod
    def from_row(cls, row) -> "EmailTemplate":
        return cls(
            id=row["id"],
            template_key=row["template_key"],
            name=row["name"],
            subject=row["subject"],
            greeting=row["greeting"],
            body_intro=row["body_intro"],
            body_details=row["body_details"],
            body_action=row["body_action"],
            body_closing=row["body_closing"],
            signature=row["signature"],
            button_text=row["button_text"],
            button_url=row["button_url"],
            is_active=bool(row["is_active"]),
        )


@dataclass(frozen=True)
class Announcement:
    id: int
    title: str
    message: str
    location_id: int | None  # None = every location
    target_audience: str
    is_active: bool
    expires_at: date | None
    created_at: str
    location_name: str | None = None

    @classmethod
    def from_row(cls, row) -> "Announcement":
        return cls(
            id=row["id"],
            title=row["title"],
            message=row["message"],
            location_id=row["location_id"],
            target_audience=row["target_audience"],
            is_active=bool(row["is_active"]),
            expires_at=_opt_date(row["expires_at"]),
            created_at=row["created_at"],
            location_name=row["location_name"] if "location_name" in _keys(row) else None,
        )


@dataclass(frozen=True)
class Event:
    id: int
    title: str
    description: str | None
    event_type: str
    location_id: int | None
    start_date: date
    end_date: date | None
    start_time: str | None
    end_time: str | None
    max_capacity: int | None
    price: int | None  # pence, None = free
    is_members_only: bool
    is_active: bool
    location_name: str | None = None

    @property
    def last_day(self) -> date:
        return self.end_date or self.start_date

    @classmethod
    def from_row(cls, row) -> "Event":
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            event_type=row["event_type"],
            location_id=row["location_id"],
            start_date=_opt_date(row["start_date"]),
            end_date=_opt_date(row["end_date"]),
            start_time=row["start_time"],
            end_time=row["end_time"],
            max_capacity=row["max_capacity"],
            price=row["price"],
            is_members_only=bool(row["is_members_only"]),
            is_active=bool(row["is_active"]),
            location_name=row["location_name"] if "location_name" in _keys(row) else None,
        )
