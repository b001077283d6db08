"""
portal.py
Loads everything the member "My Classes" screen needs for one profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import attendance
import catalog
import directory
import schedule
from models import AttendanceStats, ClassInstance, Member, Membership, MonthStats


@dataclass
class MemberSchedule:
    membership: Membership | None
    upcoming: list[ClassInstance] = field(default_factory=list)
    past: list[ClassInstance] = field(default_factory=list)
    stats: AttendanceStats = field(
        default_factory=lambda: AttendanceStats(MonthStats(0, 0), MonthStats(0, 0))
    )

    @property
    def has_active_membership(self) -> bool:
        return self.membership is not None

    @property
    def today(self) -> list[ClassInstance]:
        return [i for i in self.upcoming if i.is_today]


def load_member_schedule(
    member_id: int,
    today: date | None = None,
    location_id: int | None = None,
) -> MemberSchedule:
    today = today or date.today()
    membership = directory.get_active_membership(member_id, location_id)
    if membership is None:
        return MemberSchedule(membership=None)

    classes = catalog.accessible_classes(
        catalog.list_classes(membership.location_id, active_only=True),
        membership.membership_type_id,
    )
    upcoming, past = schedule.generate_instances(
        membership, classes, attendance.attended_keys(member_id), today
    )
    return MemberSchedule(
        membership=membership,
        upcoming=upcoming,
        past=past,
        stats=schedule.compute_stats(past, today),
    )


def switchable_profiles(member: Member) -> list[Member]:
    """The member plus any children they are guardian of."""
    return [member] + directory.list_children(member.id)
