from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

import catalog
import db
import directory

# A Wednesday (day_of_week 3)
TODAY = date(2024, 5, 15)
WEDNESDAY = 3


@pytest.fixture(autouse=True)
def tmp_db(tmp_path, monkeypatch):
    path = tmp_path / "dojo-test.db"
    monkeypatch.setattr(db, "DB_FILE", path)
    db.init_db("$2b$04$placeholderplaceholderplaceholderplaceholderplace")
    return path


@pytest.fixture
def dojo():
    """One location with two tiers, a member on tier `adult` since 2024-05-05, and a Wednesday class."""
    location_id = directory.create_location("Main Academy", "London")
    adult = directory.create_membership_type(location_id, "Adult", price=6000, age_min=16)
    kids = directory.create_membership_type(location_id, "Kids", price=3500, age_min=4, age_max=15)
    member_id = directory.create_member("Amir", "Khan", "1990-04-12", "amir@example.com")
    membership_id = directory.create_membership(
        member_id, location_id, adult, status="active", start_date=date(2024, 5, 5)
    )
    class_id = catalog.create_class(location_id, "Fundamentals", WEDNESDAY, "10:00", "11:00")
    return SimpleNamespace(
        location_id=location_id,
        adult=adult,
        kids=kids,
        member_id=member_id,
        membership_id=membership_id,
        class_id=class_id,
    )


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)
