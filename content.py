"""
content.py
Technique video library and the editable email templates.
"""

from __future__ import annotations

import logging
import re

import db
from models import EmailTemplate, Video

logger = logging.getLogger(__name__)

_BOLD = re.compile(r"\*\*(.+?)\*\*")

_TEMPLATE_FIELDS = (
    "name", "subject", "greeting", "body_intro", "body_details", "body_action",
    "body_closing", "signature", "button_text", "button_url",
)

DEFAULT_EMAIL_TEMPLATES = (
    {
        "template_key": "welcome",
        "name": "Welcome",
        "subject": "Welcome to the academy, {{firstName}}!",
        "greeting": "Assalamu alaikum {{firstName}},",
        "body_intro": "We're thrilled to welcome you! Your registration at **{{locationName}}** is complete.",
        "body_details": "**Location:** {{locationName}}\n**Membership:** {{membershipType}}",
        "body_closing": "See you on the mats.",
        "signature": "The Academy Team",
    },
    {
        "template_key": "membership_activated",
        "name": "Membership activated",
        "subject": "Your membership is active, {{firstName}}",
        "greeting": "Assalamu alaikum {{firstName}},",
        "body_intro": "Your membership is now active and you can check in to classes.",
        "body_details": "**Plan:** {{membershipType}}\n**Monthly:** {{price}}\n**Started:** {{startDate}}",
        "body_closing": "See you on the mats.",
        "signature": "The Academy Team",
    },
    {
        "template_key": "announcement",
        "name": "Announcement",
        "subject": "{{announcementTitle}}",
        "greeting": "Assalamu alaikum {{firstName}},",
        "body_intro": "{{announcementMessage}}",
        "body_closing": "",
        "signature": "The Academy Team",
    },
)


# ---------- Videos ----------

def create_video(
    title: str,
    url: str,
    category: str = "technique",
    belt_level: str | None = None,
    description: str | None = None,
) -> int:
    return db.execute(
        "INSERT INTO videos(title, url, category, belt_level, description, is_active) VALUES(?,?,?,?,?,1)",
        (title.strip(), url.strip(), category, belt_level or None, description or None),
    )


def update_video(
    video_id: int,
    title: str,
    url: str,
    category: str,
    belt_level: str | None,
    description: str | None,
) -> None:
    db.execute(
        "UPDATE videos SET title=?, url=?, category=?, belt_level=?, description=? WHERE id=?",
        (title.strip(), url.strip(), category, belt_level or None, description or None, video_id),
    )


def set_video_active(video_id: int, active: bool) -> None:
    db.execute("UPDATE videos SET is_active=? WHERE id=?", (int(active), video_id))


def list_videos(
    active_only: bool = True,
    belt_level: str | None = None,
    category: str | None = None,
) -> list[Video]:
    """Videos for a belt include those with no belt level set."""
    sql = "SELECT * FROM videos WHERE 1=1"
    params: list = []
    if active_only:
        sql += " AND is_active = 1"
    if belt_level:
        sql += " AND (belt_level IS NULL OR belt_level = ?)"
        params.append(belt_level)
    if category:
        sql += " AND category = ?"
        params.append(category)
    sql += " ORDER BY title ASC"
    return [Video.from_row(r) for r in db.fetch_all(sql, tuple(params))]


# ---------- Email templates ----------

def create_email_template(template_key: str, name: str, subject: str, **fields) -> int:
    unknown = set(fields) - set(_TEMPLATE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown template fields: {', '.join(sorted(unknown))}")
    key = template_key.strip()
    if not key:
        raise ValueError("Template key is required.")
    if get_email_template(key, active_only=False) is not None:
        raise ValueError("Template key already exists.")
    values = {"name": name.strip(), "subject": subject, **fields}
    columns = ["template_key", *values]
    template_id = db.execute(
        f"INSERT INTO email_templates({', '.join(columns)}) VALUES({','.join('?' * len(columns))})",
        (key, *values.values()),
    )
    logger.info("Created email template '%s'", key)
    return template_id


def update_email_template(template_id: int, **fields) -> None:
    """Update the given template fields; the key itself is fixed once created."""
    unknown = set(fields) - set(_TEMPLATE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown template fields: {', '.join(sorted(unknown))}")
    if not fields:
        return
    assignments = ", ".join(f"{column}=?" for column in fields)
    db.execute(
        f"UPDATE email_templates SET {assignments} WHERE id=?",
        (*fields.values(), template_id),
    )


def set_email_template_active(template_id: int, active: bool) -> None:
    db.execute("UPDATE email_templates SET is_active=? WHERE id=?", (int(active), template_id))


def get_email_template(template_key: str, active_only: bool = True) -> EmailTemplate | None:
    sql = "SELECT * FROM email_templates WHERE template_key = ?"
    if active_only:
        sql += " AND is_active = 1"
    row = db.fetch_one(sql, (template_key,))
    return EmailTemplate.from_row(row) if row else None


def list_email_templates() -> list[EmailTemplate]:
    return [EmailTemplate.from_row(r) for r in db.fetch_all("SELECT * FROM email_templates ORDER BY name ASC")]


def replace_placeholders(text: str, data: dict[str, str]) -> str:
    """Fill {{key}} placeholders, then turn **bold** into <strong> and newlines into <br>."""
    for key, value in data.items():
        text = text.replace("{{" + key + "}}", str(value))
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    return text.replace("\n", "<br>")


def render_email(template_key: str, data: dict[str, str]) -> tuple[str, str] | None:
    """Subject and HTML body for an active template, or None when there is none."""
    template = get_email_template(template_key)
    if template is None:
        logger.warning("No active email template '%s'", template_key)
        return None

    subject = replace_placeholders(template.subject, data)
    parts = [
        f"<p>{replace_placeholders(template.greeting, data)}</p>",
        f"<p>{replace_placeholders(template.body_intro, data)}</p>",
    ]
    if template.body_details:
        parts.append(f"<p>{replace_placeholders(template.body_details, data)}</p>")
    if template.body_action:
        parts.append(f"<p>{replace_placeholders(template.body_action, data)}</p>")
    if template.button_text and template.button_url:
        url = replace_placeholders(template.button_url, data)
        parts.append(f'<p><a href="{url}">{template.button_text}</a></p>')
    parts.append(f"<p>{replace_placeholders(template.body_closing, data)}</p>")
    parts.append(f"<p><strong>{template.signature}</strong></p>")
    body = "\n".join(parts)
    return subject, f"<html><head><title>{subject}</title></head><body>\n{body}\n</body></html>"


def install_default_templates() -> int:
    """Add any missing default templates; existing ones are left as edited."""
    added = 0
    for template in DEFAULT_EMAIL_TEMPLATES:
        if get_email_template(template["template_key"], active_only=False) is None:
            create_email_template(**template)
            added += 1
    return added
