"""
catalog.py
Class catalog: recurring weekly classes per location, optionally limited to some tiers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

import db
import utils
from models import DojoClass

logger = logging.getLogger(__name__)

_CLASS_SELECT = """
    SELECT c.*, l.name AS location_name,
        i.first_name AS instructor_first_name, i.last_name AS instructor_last_name
    FROM classes c
    LEFT JOIN locations l ON l.id = c.location_id
    LEFT JOIN members i ON i.id = c.instructor_id
"""


class ClassDefinitionError(ValueError):
    """Raised for an invalid class definition or tier association."""


def _validate(name: str, class_type: str, day_of_week: int, start_time: str, end_time: str) -> None:
    errors = utils.validate_class_inputs(name, class_type, day_of_week, start_time, end_time)
    if errors:
        raise ClassDefinitionError(" ".join(errors))


def _tiers_by_class(class_ids: list[int]) -> dict[int, set[int]]:
    tiers: dict[int, set[int]] = defaultdict(set)
    if not class_ids:
        return tiers
    placeholders = ",".join("?" * len(class_ids))
    rows = db.fetch_all(
        f"SELECT class_id, membership_type_id FROM class_membership_types WHERE class_id IN ({placeholders})",
        tuple(class_ids),
    )
    for r in rows:
        tiers[r["class_id"]].add(r["membership_type_id"])
    return tiers


def _check_tiers(location_id: int, tier_ids: list[int]) -> None:
    if not tier_ids:
        return
    placeholders = ",".join("?" * len(tier_ids))
    rows = db.fetch_all(
        f"SELECT id, location_id FROM membership_types WHERE id IN ({placeholders})",
        tuple(tier_ids),
    )
    if len(rows) != len(tier_ids) or any(r["location_id"] != location_id for r in rows):
        raise ClassDefinitionError("Membership types must belong to the class's location.")


def create_class(
    location_id: int,
    name: str,
    day_of_week: int,
    start_time: str,
    end_time: str,
    class_type: str = "bjj",
    instructor_id: int | None = None,
    tier_ids: Iterable[int] = (),
) -> int:
    _validate(name, class_type, day_of_week, start_time, end_time)
    tier_ids = sorted(set(tier_ids))
    _check_tiers(location_id, tier_ids)
    with db.get_conn() as conn:
        cur = conn.execute(
            """
            INSERT INTO classes(location_id, instructor_id, name, class_type, day_of_week, start_time, end_time, is_active)
            VALUES(?,?,?,?,?,?,?,1)
            """,
            (location_id, instructor_id, name.strip(), class_type, int(day_of_week), start_time[:5], end_time[:5]),
        )
        class_id = cur.lastrowid
        conn.executemany(
            "INSERT INTO class_membership_types(class_id, membership_type_id) VALUES(?,?)",
            [(class_id, t) for t in tier_ids],
        )
    logger.info("Created class %s '%s' at location %s", class_id, name, location_id)
    return class_id


def update_class(
    class_id: int,
    name: str,
    day_of_week: int,
    start_time: str,
    end_time: str,
    class_type: str = "bjj",
    instructor_id: int | None = None,
) -> None:
    _validate(name, class_type, day_of_week, start_time, end_time)
    db.execute(
        """
        UPDATE classes SET name=?, class_type=?, day_of_week=?, start_time=?, end_time=?, instructor_id=?
        WHERE id=?
        """,
        (name.strip(), class_type, int(day_of_week), start_time[:5], end_time[:5], instructor_id, class_id),
    )


def set_class_active(class_id: int, active: bool) -> None:
    db.execute("UPDATE classes SET is_active=? WHERE id=?", (int(active), class_id))


def set_class_tiers(class_id: int, tier_ids: Iterable[int]) -> None:
    """Replace the tier whitelist of a class; an empty set opens it to every tier."""
    tier_ids = sorted(set(tier_ids))
    cls = db.fetch_one("SELECT location_id FROM classes WHERE id = ?", (class_id,))
    if cls is None:
        raise ClassDefinitionError("Class not found.")
    _check_tiers(cls["location_id"], tier_ids)

    with db.get_conn() as conn:
        conn.execute("DELETE FROM class_membership_types WHERE class_id = ?", (class_id,))
        conn.executemany(
            "INSERT INTO class_membership_types(class_id, membership_type_id) VALUES(?,?)",
            [(class_id, t) for t in tier_ids],
        )


def get_class(class_id: int) -> DojoClass | None:
    row = db.fetch_one(_CLASS_SELECT + " WHERE c.id = ?", (class_id,))
    if row is None:
        return None
    return DojoClass.from_row(row, _tiers_by_class([class_id]).get(class_id, ()))


def list_classes(location_id: int | None = None, active_only: bool = True) -> list[DojoClass]:
    """Classes ordered by weekday then start time."""
    sql = _CLASS_SELECT + " WHERE 1=1"
    params: list = []
    if location_id is not None:
        sql += " AND c.location_id = ?"
        params.append(location_id)
    if active_only:
        sql += " AND c.is_active = 1"
    sql += " ORDER BY c.day_of_week ASC, c.start_time ASC, c.id ASC"
    rows = db.fetch_all(sql, tuple(params))
    tiers = _tiers_by_class([r["id"] for r in rows])
    return [DojoClass.from_row(r, tiers.get(r["id"], ())) for r in rows]


def is_accessible(cls: DojoClass, tier_id: int) -> bool:
    # No tier restrictions = open to every member at the location
    if not cls.tier_ids:
        return True
    return tier_id in cls.tier_ids


def accessible_classes(classes: Iterable[DojoClass], tier_id: int) -> list[DojoClass]:
    return [c for c in classes if is_accessible(c, tier_id)]
