"""
directory.py
Membership directory: locations, membership types (tiers), members and memberships.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import pandas as pd

import db
import utils
from models import MEMBERSHIP_STATUSES, Location, Member, Membership, MembershipType

logger = logging.getLogger(__name__)

# Age bounds used when a tier leaves them open
AGE_FLOOR = 0
AGE_CEILING = 999


class MembershipError(ValueError):
    """Raised when a membership change would break a directory rule."""


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _iso(d) -> str | None:
    if d is None or d == "":
        return None
    return d.isoformat() if isinstance(d, date) else str(d)


# ---------- Locations ----------

def create_location(name: str, city: str | None = None, max_capacity: int | None = None) -> int:
    return db.execute(
        "INSERT INTO locations(name, city, max_capacity, is_active) VALUES(?,?,?,1)",
        (name.strip(), city, max_capacity),
    )


def update_location(location_id: int, name: str, city: str | None, max_capacity: int | None) -> None:
    db.execute(
        "UPDATE locations SET name=?, city=?, max_capacity=? WHERE id=?",
        (name.strip(), city, max_capacity, location_id),
    )


def set_location_active(location_id: int, active: bool) -> None:
    db.execute("UPDATE locations SET is_active=? WHERE id=?", (int(active), location_id))


def get_location(location_id: int) -> Location | None:
    row = db.fetch_one("SELECT * FROM locations WHERE id = ?", (location_id,))
    return Location.from_row(row) if row else None


def list_locations(active_only: bool = False) -> list[Location]:
    sql = "SELECT * FROM locations"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY name ASC"
    return [Location.from_row(r) for r in db.fetch_all(sql)]


# ---------- Membership types ----------

def create_membership_type(
    location_id: int,
    name: str,
    price: int = 0,
    age_min: int | None = None,
    age_max: int | None = None,
    description: str | None = None,
) -> int:
    return db.execute(
        """
        INSERT INTO membership_types(location_id, name, description, price, age_min, age_max, is_active)
        VALUES(?,?,?,?,?,?,1)
        """,
        (location_id, name.strip(), description, int(price), age_min, age_max),
    )


def update_membership_type(
    type_id: int,
    name: str,
    price: int,
    age_min: int | None,
    age_max: int | None,
    description: str | None,
) -> None:
    db.execute(
        """
        UPDATE membership_types SET name=?, price=?, age_min=?, age_max=?, description=?
        WHERE id=?
        """,
        (name.strip(), int(price), age_min, age_max, description, type_id),
    )


def set_membership_type_active(type_id: int, active: bool) -> None:
    db.execute("UPDATE membership_types SET is_active=? WHERE id=?", (int(active), type_id))


def get_membership_type(type_id: int) -> MembershipType | None:
    row = db.fetch_one("SELECT * FROM membership_types WHERE id = ?", (type_id,))
    return MembershipType.from_row(row) if row else None


def list_membership_types(location_id: int | None = None, active_only: bool = False) -> list[MembershipType]:
    sql = "SELECT * FROM membership_types WHERE 1=1"
    params: list = []
    if location_id is not None:
        sql += " AND location_id = ?"
        params.append(location_id)
    if active_only:
        sql += " AND is_active = 1"
    sql += " ORDER BY price ASC, name ASC"
    return [MembershipType.from_row(r) for r in db.fetch_all(sql, tuple(params))]


# ---------- Members ----------

def create_member(
    first_name: str,
    last_name: str,
    date_of_birth: date | str | None = None,
    email: str | None = None,
    phone: str | None = None,
    is_child: bool = False,
    parent_id: int | None = None,
    belt_rank: str = "white",
    stripes: int = 0,
    is_instructor: bool = False,
) -> int:
    member_id = db.execute(
        """
        INSERT INTO members(first_name, last_name, date_of_birth, email, phone, is_child, parent_id,
            belt_rank, stripes, is_instructor, created_at)
        VALUES(?,?,?,?,?,?,?,?,?,?,?)
        """,
        (
            first_name.strip(), last_name.strip(), _iso(date_of_birth), email or None, phone or None,
            int(is_child), parent_id, belt_rank, int(stripes), int(is_instructor), _now(),
        ),
    )
    logger.info("Registered member %s (%s %s)", member_id, first_name, last_name)
    return member_id


def update_member(
    member_id: int,
    first_name: str,
    last_name: str,
    date_of_birth: date | str | None,
    email: str | None,
    phone: str | None,
    is_instructor: bool = False,
) -> None:
    db.execute(
        """
        UPDATE members SET first_name=?, last_name=?, date_of_birth=?, email=?, phone=?, is_instructor=?
        WHERE id=?
        """,
        (first_name.strip(), last_name.strip(), _iso(date_of_birth), email or None, phone or None,
         int(is_instructor), member_id),
    )


def get_member(member_id: int) -> Member | None:
    row = db.fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))
    return Member.from_row(row) if row else None


def list_members(search: str = "") -> list[Member]:
    sql = "SELECT * FROM members WHERE 1=1"
    params: list = []
    if search.strip():
        sql += " AND (first_name LIKE ? OR last_name LIKE ? OR email LIKE ? OR phone LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like, like])
    sql += " ORDER BY last_name ASC, first_name ASC"
    return [Member.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def list_children(parent_id: int) -> list[Member]:
    rows = db.fetch_all(
        "SELECT * FROM members WHERE parent_id = ? ORDER BY first_name ASC", (parent_id,)
    )
    return [Member.from_row(r) for r in rows]


def list_instructors() -> list[Member]:
    rows = db.fetch_all("SELECT * FROM members WHERE is_instructor = 1 ORDER BY first_name ASC")
    return [Member.from_row(r) for r in rows]


def delete_member(member_id: int) -> None:
    """Delete a member; memberships, attendance and promotions go with it."""
    db.execute("DELETE FROM members WHERE id = ?", (member_id,))
    logger.info("Deleted member %s", member_id)


def member_age(member: Member, today: date | None = None) -> int | None:
    if member.date_of_birth is None:
        return None
    return utils.age_on(member.date_of_birth, today or date.today())


def eligible_membership_types(member: Member, location_id: int, today: date | None = None) -> list[MembershipType]:
    """Active tiers at the location whose age range contains the member's age."""
    tiers = list_membership_types(location_id, active_only=True)
    age = member_age(member, today)
    if age is None:
        return tiers
    return [
        t for t in tiers
        if (t.age_min if t.age_min is not None else AGE_FLOOR)
        <= age
        <= (t.age_max if t.age_max is not None else AGE_CEILING)
    ]


# ---------- Memberships ----------

def active_membership_count(location_id: int) -> int:
    row = db.fetch_one(
        "SELECT COUNT(*) AS c FROM memberships WHERE location_id = ? AND status = 'active'",
        (location_id,),
    )
    return int(row["c"])


def location_has_capacity(location_id: int) -> bool:
    location = get_location(location_id)
    if location is None:
        return False
    if location.max_capacity is None:
        return True
    return active_membership_count(location_id) < location.max_capacity


def _ensure_can_activate(member_id: int, location_id: int, exclude_id: int | None = None) -> None:
    sql = "SELECT id FROM memberships WHERE member_id = ? AND location_id = ? AND status = 'active'"
    params: list = [member_id, location_id]
    if exclude_id is not None:
        sql += " AND id != ?"
        params.append(exclude_id)
    if db.fetch_one(sql, tuple(params)):
        raise MembershipError("Member already has an active membership at this location.")
    if not location_has_capacity(location_id):
        raise MembershipError("This location is at full capacity.")


def create_membership(
    member_id: int,
    location_id: int,
    membership_type_id: int,
    status: str = "pending",
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    subscription_ref: str | None = None,
) -> int:
    if status not in MEMBERSHIP_STATUSES:
        raise MembershipError(f"Unknown membership status: {status}")
    tier = get_membership_type(membership_type_id)
    if tier is None:
        raise MembershipError("Unknown membership type.")
    if tier.location_id != location_id:
        raise MembershipError("Membership type does not belong to this location.")
    if status == "active":
        _ensure_can_activate(member_id, location_id)
        if start_date is None:
            start_date = date.today()

    membership_id = db.execute(
        """
        INSERT INTO memberships(member_id, location_id, membership_type_id, status, start_date, end_date,
            subscription_ref, created_at)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        (member_id, location_id, membership_type_id, status, _iso(start_date), _iso(end_date),
         subscription_ref, _now()),
    )
    logger.info("Created %s membership %s for member %s at location %s",
                status, membership_id, member_id, location_id)
    return membership_id


def get_membership(membership_id: int) -> Membership | None:
    row = db.fetch_one("SELECT * FROM memberships WHERE id = ?", (membership_id,))
    return Membership.from_row(row) if row else None


def set_membership_status(membership_id: int, status: str) -> None:
    if status not in MEMBERSHIP_STATUSES:
        raise MembershipError(f"Unknown membership status: {status}")
    membership = get_membership(membership_id)
    if membership is None:
        raise MembershipError("Membership not found.")
    stamp_start = False
    if status == "active" and not membership.is_active:
        _ensure_can_activate(membership.member_id, membership.location_id, exclude_id=membership_id)
        stamp_start = membership.start_date is None
    with db.get_conn() as conn:
        if stamp_start:
            conn.execute(
                "UPDATE memberships SET start_date=? WHERE id=?",
                (date.today().isoformat(), membership_id),
            )
        conn.execute("UPDATE memberships SET status=? WHERE id=?", (status, membership_id))
    logger.info("Membership %s: %s -> %s", membership_id, membership.status, status)


def list_memberships(
    member_id: int | None = None,
    location_id: int | None = None,
    status: str | None = None,
) -> list[Membership]:
    sql = "SELECT * FROM memberships WHERE 1=1"
    params: list = []
    if member_id is not None:
        sql += " AND member_id = ?"
        params.append(member_id)
    if location_id is not None:
        sql += " AND location_id = ?"
        params.append(location_id)
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    sql += " ORDER BY id DESC"
    return [Membership.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def get_active_membership(member_id: int, location_id: int | None = None) -> Membership | None:
    """
    The member's active membership (at a location, if given).
    Without a location the earliest-started one wins.
    """
    sql = "SELECT * FROM memberships WHERE member_id = ? AND status = 'active'"
    params: list = [member_id]
    if location_id is not None:
        sql += " AND location_id = ?"
        params.append(location_id)
    # NULL start dates sort last
    sql += " ORDER BY start_date IS NULL, start_date ASC, id ASC LIMIT 1"
    row = db.fetch_one(sql, tuple(params))
    return Membership.from_row(row) if row else None


def memberships_frame():
    """Admin listing joined with member, location and tier names."""
    rows = db.fetch_all(
        """
        SELECT ms.id, m.first_name || ' ' || m.last_name AS member, l.name AS location,
            t.name AS tier, ms.status, ms.start_date, ms.end_date, ms.subscription_ref
        FROM memberships ms
        JOIN members m ON m.id = ms.member_id
        JOIN locations l ON l.id = ms.location_id
        JOIN membership_types t ON t.id = ms.membership_type_id
        ORDER BY ms.id DESC
        """
    )
    return pd.DataFrame([dict(r) for r in rows])
