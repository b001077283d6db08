from __future__ import annotations

import pytest

import catalog
import directory


def test_classes_ordered_by_weekday_then_start(dojo):
    catalog.create_class(dojo.location_id, "Evening", 3, "18:00", "19:00")
    catalog.create_class(dojo.location_id, "Sunday Open Mat", 0, "11:00", "13:00")
    catalog.create_class(dojo.location_id, "Early", 3, "07:00", "08:00")

    names = [c.name for c in catalog.list_classes(dojo.location_id)]
    assert names == ["Sunday Open Mat", "Early", "Fundamentals", "Evening"]


def test_class_joins_location_and_instructor(dojo):
    coach = directory.create_member("Amir", "Coach", is_instructor=True)
    class_id = catalog.create_class(dojo.location_id, "No-Gi", 4, "19:00", "20:30", instructor_id=coach)
    cls = catalog.get_class(class_id)
    assert cls.location_name == "Main Academy"
    assert cls.instructor_name == "Amir Coach"
    assert cls.tier_ids == frozenset()
    assert catalog.get_class(dojo.class_id).instructor_name is None


def test_set_class_tiers_replaces_whitelist(dojo):
    catalog.set_class_tiers(dojo.class_id, [dojo.adult, dojo.kids])
    assert catalog.get_class(dojo.class_id).tier_ids == {dojo.adult, dojo.kids}

    catalog.set_class_tiers(dojo.class_id, [dojo.kids])
    cls = catalog.get_class(dojo.class_id)
    assert cls.tier_ids == {dojo.kids}
    assert catalog.is_accessible(cls, dojo.kids)
    assert not catalog.is_accessible(cls, dojo.adult)

    catalog.set_class_tiers(dojo.class_id, [])
    assert catalog.is_accessible(catalog.get_class(dojo.class_id), dojo.adult)


def test_new_tier_is_excluded_from_restricted_classes(dojo):
    catalog.set_class_tiers(dojo.class_id, [dojo.adult])
    new_tier = directory.create_membership_type(dojo.location_id, "Family")
    assert not catalog.is_accessible(catalog.get_class(dojo.class_id), new_tier)


def test_tiers_from_other_location_rejected(dojo):
    elsewhere = directory.create_location("Second Site")
    foreign_tier = directory.create_membership_type(elsewhere, "Adult")
    with pytest.raises(catalog.ClassDefinitionError):
        catalog.set_class_tiers(dojo.class_id, [foreign_tier])
    with pytest.raises(catalog.ClassDefinitionError):
        catalog.set_class_tiers(dojo.class_id, [99999])


@pytest.mark.parametrize(
    "day, start, end",
    [(7, "10:00", "11:00"), (-1, "10:00", "11:00"), (2, "11:00", "10:00"), (2, "25:00", "26:00"), (2, "10", "11")],
)
def test_invalid_class_definitions(dojo, day, start, end):
    with pytest.raises(catalog.ClassDefinitionError):
        catalog.create_class(dojo.location_id, "Bad", day, start, end)


def test_inactive_classes_hidden_by_default(dojo):
    catalog.set_class_active(dojo.class_id, False)
    assert catalog.list_classes(dojo.location_id) == []
    assert len(catalog.list_classes(dojo.location_id, active_only=False)) == 1


def test_update_class(dojo):
    catalog.update_class(dojo.class_id, "Fundamentals 2", 5, "17:30", "18:30")
    cls = catalog.get_class(dojo.class_id)
    assert (cls.name, cls.day_of_week, cls.start_time, cls.end_time) == ("Fundamentals 2", 5, "17:30", "18:30")


def test_rejected_tiers_leave_no_class_behind(dojo):
    elsewhere = directory.create_location("Second Site")
    foreign_tier = directory.create_membership_type(elsewhere, "Adult")
    with pytest.raises(catalog.ClassDefinitionError):
        catalog.create_class(dojo.location_id, "Kids only", 3, "16:00", "17:00", tier_ids=[dojo.kids, foreign_tier])

    classes = catalog.list_classes(dojo.location_id, active_only=False)
    assert [c.name for c in classes] == ["Fundamentals"]
    assert [c.name for c in catalog.accessible_classes(classes, dojo.adult)] == ["Fundamentals"]


def test_create_class_with_tiers(dojo):
    class_id = catalog.create_class(dojo.location_id, "Kids only", 3, "16:00", "17:00", tier_ids=[dojo.kids])
    assert catalog.get_class(class_id).tier_ids == {dojo.kids}
