"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime

import config

logger = logging.getLogger(__name__)

DB_FILE = config.DB_FILE


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Needed for ON DELETE CASCADE (off by default in SQLite)
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS staff_users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'admin' CHECK(role IN ('admin','instructor')),
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        city TEXT,
        max_capacity INTEGER,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS membership_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        price INTEGER NOT NULL DEFAULT 0,
        age_min INTEGER,
        age_max INTEGER,
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY(location_id) REFERENCES locations(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        date_of_birth TEXT,
        email TEXT,
        phone TEXT,
        is_child INTEGER NOT NULL DEFAULT 0,
        parent_id INTEGER,
        belt_rank TEXT NOT NULL DEFAULT 'white',
        stripes INTEGER NOT NULL DEFAULT 0,
        is_instructor INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY(parent_id) REFERENCES members(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memberships (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL,
        location_id INTEGER NOT NULL,
        membership_type_id INTEGER NOT NULL,
        status TEXT NOT NULL CHECK(status IN ('active','pending','inactive','cancelled')),
        start_date TEXT,
        end_date TEXT,
        subscription_ref TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE,
        FOREIGN KEY(location_id) REFERENCES locations(id),
        FOREIGN KEY(membership_type_id) REFERENCES membership_types(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS classes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL,
        instructor_id INTEGER,
        name TEXT NOT NULL,
        class_type TEXT NOT NULL DEFAULT 'bjj',
        day_of_week INTEGER NOT NULL CHECK(day_of_week BETWEEN 0 AND 6),
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY(location_id) REFERENCES locations(id),
        FOREIGN KEY(instructor_id) REFERENCES members(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS class_membership_types (
        class_id INTEGER NOT NULL,
        membership_type_id INTEGER NOT NULL,
        PRIMARY KEY(class_id, membership_type_id),
        FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE,
        FOREIGN KEY(membership_type_id) REFERENCES membership_types(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attendance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        class_id INTEGER NOT NULL,
        member_id INTEGER NOT NULL,
        class_date TEXT NOT NULL,
        check_in_time TEXT NOT NULL,
        checked_in_by INTEGER,
        UNIQUE(class_id, member_id, class_date),
        FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE,
        FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS promotions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL,
        class_id INTEGER,
        previous_belt TEXT NOT NULL,
        previous_stripes INTEGER NOT NULL,
        new_belt TEXT NOT NULL,
        new_stripes INTEGER NOT NULL,
        promoted_by TEXT,
        comments TEXT,
        promotion_date TEXT NOT NULL,
        FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE,
        FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        url TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'technique',
        belt_level TEXT,
        description TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS email_templates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        template_key TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        subject TEXT NOT NULL,
        greeting TEXT NOT NULL DEFAULT '',
        body_intro TEXT NOT NULL DEFAULT '',
        body_details TEXT,
        body_action TEXT,
        body_closing TEXT NOT NULL DEFAULT '',
        signature TEXT NOT NULL DEFAULT '',
        button_text TEXT,
        button_url TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS announcements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        location_id INTEGER,
        target_audience TEXT NOT NULL DEFAULT 'all' CHECK(target_audience IN ('all','members','instructors')),
        is_active INTEGER NOT NULL DEFAULT 1,
        expires_at TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(location_id) REFERENCES locations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        event_type TEXT NOT NULL DEFAULT 'other',
        location_id INTEGER,
        start_date TEXT NOT NULL,
        end_date TEXT,
        start_time TEXT,
        end_time TEXT,
        max_capacity INTEGER,
        price INTEGER,
        is_members_only INTEGER NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY(location_id) REFERENCES locations(id) ON DELETE SET NULL
    )
    """,
    # Small settings table (used to force password change on first login)
    """
    CREATE TABLE IF NOT EXISTS app_settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_attendance_member ON attendance(member_id, class_date)",
    "CREATE INDEX IF NOT EXISTS ix_memberships_member ON memberships(member_id, status)",
]


def _create_tables() -> None:
    with get_conn() as conn:
        for statement in SCHEMA:
            conn.execute(statement)


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default admin if no staff user exists
    - Force password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM staff_users LIMIT 1")
    if not admin:
        now = datetime.now().isoformat(timespec="seconds")
        execute(
            "INSERT INTO staff_users(username, password_hash, role, created_at) VALUES(?,?,?,?)",
            ("admin", default_admin_hash, "admin", now),
        )
        _set_setting("force_password_change", "1")
        logger.info("Created default admin user in %s", DB_FILE)
    elif _get_setting("force_password_change") is None:
        _set_setting("force_password_change", "0")


def ensure_schema() -> None:
    """Create any tables missing from an existing database file."""
    _create_tables()


def is_initialized() -> bool:
    row = fetch_one("SELECT name FROM sqlite_master WHERE type='table' AND name='staff_users'")
    return row is not None


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
