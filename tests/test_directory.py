from __future__ import annotations

from datetime import date

import pytest

import attendance
import db
import directory
import progression
from conftest import TODAY, at


def test_member_round_trip():
    member_id = directory.create_member(" Amir ", "Khan", date(1990, 4, 12), "amir@example.com", "0700")
    member = directory.get_member(member_id)
    assert member.display_name == "Amir Khan"
    assert member.date_of_birth == date(1990, 4, 12)
    assert member.belt_rank == "white" and member.stripes == 0
    assert not member.is_child


def test_search_members():
    directory.create_member("Amir", "Khan", email="amir@example.com")
    directory.create_member("Sara", "Ahmed", phone="07123")
    assert [m.first_name for m in directory.list_members("kha")] == ["Amir"]
    assert [m.first_name for m in directory.list_members("071")] == ["Sara"]
    assert len(directory.list_members()) == 2


def test_second_active_membership_at_same_location_is_rejected(dojo):
    with pytest.raises(directory.MembershipError):
        directory.create_membership(dojo.member_id, dojo.location_id, dojo.adult, status="active",
                                    start_date=TODAY)


def test_pending_membership_cannot_be_activated_alongside_active(dojo):
    pending = directory.create_membership(dojo.member_id, dojo.location_id, dojo.adult, status="pending")
    with pytest.raises(directory.MembershipError):
        directory.set_membership_status(pending, "active")

    directory.set_membership_status(dojo.membership_id, "inactive")
    directory.set_membership_status(pending, "active")
    assert directory.get_active_membership(dojo.member_id).id == pending
    # Activation fills in a missing start date
    assert directory.get_membership(pending).start_date is not None


def test_active_memberships_at_different_locations(dojo):
    other_location = directory.create_location("Second Site")
    other_tier = directory.create_membership_type(other_location, "Adult")
    second = directory.create_membership(
        dojo.member_id, other_location, other_tier, status="active", start_date=date(2024, 5, 10)
    )
    # Earliest start wins when no location is given
    assert directory.get_active_membership(dojo.member_id).id == dojo.membership_id
    assert directory.get_active_membership(dojo.member_id, other_location).id == second


def test_tier_must_belong_to_location(dojo):
    other_location = directory.create_location("Second Site")
    with pytest.raises(directory.MembershipError):
        directory.create_membership(dojo.member_id, other_location, dojo.adult)


def test_unknown_status_rejected(dojo):
    with pytest.raises(directory.MembershipError):
        directory.create_membership(dojo.member_id, dojo.location_id, dojo.adult, status="waitlist")
    with pytest.raises(directory.MembershipError):
        directory.set_membership_status(dojo.membership_id, "frozen")


def test_capacity_limits_activation():
    location_id = directory.create_location("Small Gym", max_capacity=1)
    tier = directory.create_membership_type(location_id, "Standard", price=4000)
    first = directory.create_member("A", "One")
    second = directory.create_member("B", "Two")

    assert directory.location_has_capacity(location_id)
    directory.create_membership(first, location_id, tier, status="active", start_date=TODAY)
    assert directory.active_membership_count(location_id) == 1
    assert not directory.location_has_capacity(location_id)
    with pytest.raises(directory.MembershipError):
        directory.create_membership(second, location_id, tier, status="active", start_date=TODAY)
    # Pending sign-ups are still allowed
    directory.create_membership(second, location_id, tier, status="pending")


def test_eligible_membership_types_by_age(dojo):
    adult = directory.get_member(dojo.member_id)
    child_id = directory.create_member("Yusuf", "Khan", date(2015, 6, 1), is_child=True, parent_id=dojo.member_id)
    child = directory.get_member(child_id)

    assert [t.name for t in directory.eligible_membership_types(adult, dojo.location_id, TODAY)] == ["Adult"]
    assert [t.name for t in directory.eligible_membership_types(child, dojo.location_id, TODAY)] == ["Kids"]

    directory.set_membership_type_active(dojo.kids, False)
    assert directory.eligible_membership_types(child, dojo.location_id, TODAY) == []


def test_member_age_is_birthday_aware():
    member = directory.get_member(directory.create_member("A", "B", date(2000, 5, 16)))
    assert directory.member_age(member, date(2024, 5, 15)) == 23
    assert directory.member_age(member, date(2024, 5, 16)) == 24


def test_delete_member_cascades(dojo):
    assert attendance.check_in(dojo.class_id, dojo.member_id, now=at(10, 0)).success
    progression.promote(dojo.member_id, "white", 1, "admin", today=TODAY)

    directory.delete_member(dojo.member_id)

    assert directory.get_member(dojo.member_id) is None
    for table in ("memberships", "attendance", "promotions"):
        assert db.fetch_one(f"SELECT COUNT(*) AS c FROM {table}")["c"] == 0


def test_locations_and_types_listing():
    b_site = directory.create_location("B Site")
    directory.create_location("A Site")
    directory.set_location_active(b_site, False)
    assert [loc.name for loc in directory.list_locations()] == ["A Site", "B Site"]
    assert [loc.name for loc in directory.list_locations(active_only=True)] == ["A Site"]

    directory.create_membership_type(b_site, "Premium", price=9000)
    free = directory.create_membership_type(b_site, "Trial", price=0)
    assert [t.name for t in directory.list_membership_types(b_site)] == ["Trial", "Premium"]
    assert directory.get_membership_type(free).is_free


def test_activation_stamps_start_date_with_status(dojo):
    pending = directory.create_membership(dojo.member_id, dojo.location_id, dojo.kids, status="pending")
    with pytest.raises(directory.MembershipError):
        directory.set_membership_status(pending, "active")
    blocked = directory.get_membership(pending)
    assert (blocked.status, blocked.start_date) == ("pending", None)

    directory.set_membership_status(dojo.membership_id, "cancelled")
    directory.set_membership_status(pending, "active")
    activated = directory.get_membership(pending)
    assert activated.status == "active"
    assert activated.start_date == date.today()
