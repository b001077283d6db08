"""
bulletin.py
Announcements and events shown to members, optionally scoped to one location.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import db
from models import ANNOUNCEMENT_AUDIENCES, EVENT_TYPES, Announcement, Event

logger = logging.getLogger(__name__)

_ANNOUNCEMENT_SELECT = """
    SELECT a.*, l.name AS location_name
    FROM announcements a
    LEFT JOIN locations l ON l.id = a.location_id
"""

_EVENT_SELECT = """
    SELECT e.*, l.name AS location_name
    FROM events e
    LEFT JOIN locations l ON l.id = e.location_id
"""


class BulletinError(ValueError):
    """Raised for an invalid announcement or event."""


def _iso(d) -> str | None:
    if d is None or d == "":
        return None
    return d.isoformat() if isinstance(d, date) else str(d)


# ---------- Announcements ----------

def create_announcement(
    title: str,
    message: str,
    location_id: int | None = None,
    target_audience: str = "all",
    expires_at: date | str | None = None,
) -> int:
    if not title.strip() or not message.strip():
        raise BulletinError("Title and message are required.")
    if target_audience not in ANNOUNCEMENT_AUDIENCES:
        raise BulletinError(f"Unknown audience: {target_audience}")
    announcement_id = db.execute(
        """
        INSERT INTO announcements(title, message, location_id, target_audience, is_active, expires_at, created_at)
        VALUES(?,?,?,?,1,?,?)
        """,
        (title.strip(), message.strip(), location_id, target_audience, _iso(expires_at),
         datetime.now().isoformat(timespec="seconds")),
    )
    logger.info("Posted announcement %s '%s'", announcement_id, title)
    return announcement_id


def set_announcement_active(announcement_id: int, active: bool) -> None:
    db.execute("UPDATE announcements SET is_active=? WHERE id=?", (int(active), announcement_id))


def delete_announcement(announcement_id: int) -> None:
    db.execute("DELETE FROM announcements WHERE id = ?", (announcement_id,))


def list_announcements() -> list[Announcement]:
    rows = db.fetch_all(_ANNOUNCEMENT_SELECT + " ORDER BY a.created_at DESC, a.id DESC")
    return [Announcement.from_row(r) for r in rows]


def current_announcements(
    location_id: int | None = None,
    audience: str | None = None,
    today: date | None = None,
) -> list[Announcement]:
    """
    Active, unexpired announcements, newest first.

    An announcement without a location is shown everywhere; one expiring
    today is still shown. `audience` keeps those aimed at everyone or at
    that audience.
    """
    today = today or date.today()
    sql = _ANNOUNCEMENT_SELECT + " WHERE a.is_active = 1 AND (a.expires_at IS NULL OR a.expires_at >= ?)"
    params: list = [today.isoformat()]
    if location_id is not None:
        sql += " AND (a.location_id IS NULL OR a.location_id = ?)"
        params.append(location_id)
    if audience is not None:
        sql += " AND a.target_audience IN ('all', ?)"
        params.append(audience)
    sql += " ORDER BY a.created_at DESC, a.id DESC"
    return [Announcement.from_row(r) for r in db.fetch_all(sql, tuple(params))]


# ---------- Events ----------

def _validate_event(title: str, event_type: str, start_date, end_date) -> None:
    if not title.strip():
        raise BulletinError("Event title is required.")
    if event_type not in EVENT_TYPES:
        raise BulletinError(f"Unknown event type: {event_type}")
    if start_date in (None, ""):
        raise BulletinError("Start date is required.")
    if end_date not in (None, "") and _iso(end_date) < _iso(start_date):
        raise BulletinError("End date must not be before the start date.")


def create_event(
    title: str,
    start_date: date | str,
    end_date: date | str | None = None,
    location_id: int | None = None,
    event_type: str = "other",
    description: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    max_capacity: int | None = None,
    price: int | None = None,
    is_members_only: bool = False,
) -> int:
    _validate_event(title, event_type, start_date, end_date)
    event_id = db.execute(
        """
        INSERT INTO events(title, description, event_type, location_id, start_date, end_date,
            start_time, end_time, max_capacity, price, is_members_only, is_active)
        VALUES(?,?,?,?,?,?,?,?,?,?,?,1)
        """,
        (title.strip(), description or None, event_type, location_id, _iso(start_date), _iso(end_date),
         start_time or None, end_time or None, max_capacity, price or None, int(is_members_only)),
    )
    logger.info("Created event %s '%s' on %s", event_id, title, _iso(start_date))
    return event_id


def update_event(
    event_id: int,
    title: str,
    start_date: date | str,
    end_date: date | str | None,
    location_id: int | None,
    event_type: str,
    description: str | None,
) -> None:
    _validate_event(title, event_type, start_date, end_date)
    db.execute(
        """
        UPDATE events SET title=?, start_date=?, end_date=?, location_id=?, event_type=?, description=?
        WHERE id=?
        """,
        (title.strip(), _iso(start_date), _iso(end_date), location_id, event_type, description or None, event_id),
    )


def set_event_active(event_id: int, active: bool) -> None:
    db.execute("UPDATE events SET is_active=? WHERE id=?", (int(active), event_id))


def get_event(event_id: int) -> Event | None:
    row = db.fetch_one(_EVENT_SELECT + " WHERE e.id = ?", (event_id,))
    return Event.from_row(row) if row else None


def list_events(active_only: bool = False) -> list[Event]:
    sql = _EVENT_SELECT
    if active_only:
        sql += " WHERE e.is_active = 1"
    sql += " ORDER BY e.start_date ASC, e.id ASC"
    return [Event.from_row(r) for r in db.fetch_all(sql)]


def upcoming_events(location_id: int | None = None, today: date | None = None) -> list[Event]:
    """Active events that have not finished yet, soonest first."""
    today = today or date.today()
    sql = _EVENT_SELECT + " WHERE e.is_active = 1 AND COALESCE(e.end_date, e.start_date) >= ?"
    params: list = [today.isoformat()]
    if location_id is not None:
        sql += " AND (e.location_id IS NULL OR e.location_id = ?)"
        params.append(location_id)
    sql += " ORDER BY e.start_date ASC, e.id ASC"
    return [Event.from_row(r) for r in db.fetch_all(sql, tuple(params))]
