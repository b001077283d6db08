"""
progression.py
Belt and stripe bookkeeping.
"""

from __future__ import annotations

import logging
from datetime import date

import db
import directory
import utils
from models import MAX_STRIPES, Promotion

logger = logging.getLogger(__name__)


class PromotionError(ValueError):
    """Raised for an invalid belt/stripe change."""


def promote(
    member_id: int,
    new_belt: str,
    new_stripes: int,
    promoted_by: str | None = None,
    class_id: int | None = None,
    comments: str | None = None,
    today: date | None = None,
) -> int:
    """Record a promotion (keeping the previous rank) and update the member."""
    member = directory.get_member(member_id)
    if member is None:
        raise PromotionError("Member not found.")
    if new_belt not in utils.valid_belts(member.is_child):
        raise PromotionError(f"Unknown belt for this member: {new_belt}")
    if not 0 <= int(new_stripes) <= MAX_STRIPES:
        raise PromotionError(f"Stripes must be between 0 and {MAX_STRIPES}.")
    if (new_belt, int(new_stripes)) == (member.belt_rank, member.stripes):
        raise PromotionError("Member already holds this rank.")

    today = today or date.today()
    with db.get_conn() as conn:
        cur = conn.execute(
            """
            INSERT INTO promotions(member_id, class_id, previous_belt, previous_stripes, new_belt,
                new_stripes, promoted_by, comments, promotion_date)
            VALUES(?,?,?,?,?,?,?,?,?)
            """,
            (member_id, class_id, member.belt_rank, member.stripes, new_belt, int(new_stripes),
             promoted_by, comments or None, today.isoformat()),
        )
        conn.execute(
            "UPDATE members SET belt_rank=?, stripes=? WHERE id=?",
            (new_belt, int(new_stripes), member_id),
        )
        promotion_id = cur.lastrowid

    logger.info(
        "Member %s promoted %s/%s -> %s/%s by %s",
        member_id, member.belt_rank, member.stripes, new_belt, new_stripes, promoted_by,
    )
    return promotion_id


def list_promotions(member_id: int) -> list[Promotion]:
    rows = db.fetch_all(
        "SELECT * FROM promotions WHERE member_id = ? ORDER BY promotion_date DESC, id DESC",
        (member_id,),
    )
    return [Promotion.from_row(r) for r in rows]
