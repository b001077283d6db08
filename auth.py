"""
auth.py
Staff authentication (bcrypt hashing, verify, login, change password).
"""

from __future__ import annotations

from datetime import datetime

import bcrypt

import db
from models import STAFF_ROLES


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bcrypt_secret(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def get_staff_user(username: str):
    return db.fetch_one("SELECT * FROM staff_users WHERE username = ?", (username,))


def login(username: str, password: str) -> bool:
    user = get_staff_user(username)
    if not user:
        return False
    return verify_password(password, user["password_hash"])


def get_role(username: str) -> str | None:
    user = get_staff_user(username)
    return user["role"] if user else None


def is_admin(username: str) -> bool:
    return get_role(username) == "admin"


def create_staff_user(username: str, password: str, role: str = "instructor") -> int:
    if role not in STAFF_ROLES:
        raise ValueError(f"Unknown role: {role}")
    if get_staff_user(username.strip()) is not None:
        raise ValueError("Username already exists.")
    return db.execute(
        "INSERT INTO staff_users(username, password_hash, role, created_at) VALUES(?,?,?,?)",
        (username.strip(), hash_password(password), role, datetime.now().isoformat(timespec="seconds")),
    )


def list_staff_users() -> list:
    return db.fetch_all("SELECT id, username, role, created_at FROM staff_users ORDER BY username ASC")


def change_password(username: str, new_password: str) -> None:
    db.execute(
        "UPDATE staff_users SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    db.clear_force_password_change()
