from __future__ import annotations

from datetime import date, datetime

import pytest

import catalog
import directory
import utils


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-05-08", date(2024, 5, 8)),
        ("2024-05-08T23:30:00Z", date(2024, 5, 8)),
        (datetime(2024, 5, 8, 6, 0), date(2024, 5, 8)),
        (date(2024, 5, 8), date(2024, 5, 8)),
    ],
)
def test_normalize_date(value, expected):
    assert utils.normalize_date(value) == expected


def test_sunday_weekday():
    assert utils.sunday_weekday(date(2024, 5, 12)) == 0  # Sunday
    assert utils.sunday_weekday(date(2024, 5, 15)) == 3  # Wednesday
    assert utils.sunday_weekday(date(2024, 5, 18)) == 6  # Saturday


def test_parse_minutes():
    assert utils.parse_minutes("00:00") == 0
    assert utils.parse_minutes("10:30") == 630
    assert utils.parse_minutes("18:45:59") == 1125


def test_add_months_clamps_day():
    assert utils.add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert utils.add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert utils.add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)
    assert utils.month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


def test_class_validation_messages():
    assert utils.validate_class_inputs("Fundamentals", "bjj", 3, "10:00", "11:00") == []
    errors = utils.validate_class_inputs("", "karate", 9, "11:00", "10:00")
    assert "Class name is required." in errors
    assert "End time must be after start time." in errors
    assert len(errors) == 4


def test_member_and_tier_validation():
    assert utils.validate_member_inputs("Amir", "Khan", "1990-04-12", "amir@example.com") == []
    assert utils.validate_member_inputs("", "", "not-a-date", "nope") == [
        "First name is required.",
        "Last name is required.",
        "Date of birth must be a valid ISO date (YYYY-MM-DD).",
        "Email address looks invalid.",
    ]
    assert utils.validate_membership_type_inputs("Kids", 3500, 4, 15) == []
    assert len(utils.validate_membership_type_inputs("", "abc", 10, 5)) == 3


def test_format_price():
    assert utils.format_price(0) == "Free"
    assert utils.format_price(6000) == "£60.00"


def test_sample_data_builds_a_usable_timetable():
    utils.insert_sample_data(today=date(2024, 5, 15))
    location = directory.list_locations()[0]
    assert len(catalog.list_classes(location.id)) == 4
    assert len(directory.list_memberships(status="active")) == 2
    assert directory.list_instructors()[0].display_name == "Amir Khan"
