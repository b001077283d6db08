from __future__ import annotations

import pytest

import auth
import db


@pytest.fixture
def admin():
    db.execute("UPDATE staff_users SET password_hash = ? WHERE username = 'admin'",
               (auth.hash_password("admin123", rounds=4),))
    return "admin"


def test_default_admin_forces_password_change(admin):
    assert auth.get_role(admin) == "admin"
    assert db.is_force_password_change()


def test_login_and_change_password(admin):
    assert auth.login(admin, "admin123")
    assert not auth.login(admin, "wrong")
    assert not auth.login("nobody", "admin123")

    auth.change_password(admin, "s3cure-pass")
    assert auth.login(admin, "s3cure-pass")
    assert not db.is_force_password_change()


def test_long_passwords_are_truncated_to_72_bytes():
    hashed = auth.hash_password("x" * 80, rounds=4)
    assert auth.verify_password("x" * 72, hashed)


def test_create_staff_user():
    auth.create_staff_user("coach", "mat-time", role="instructor")
    assert auth.get_role("coach") == "instructor"
    assert auth.login("coach", "mat-time")
    assert [u["username"] for u in auth.list_staff_users()] == ["admin", "coach"]

    with pytest.raises(ValueError):
        auth.create_staff_user("boss", "whatever", role="owner")


def test_duplicate_username_rejected():
    auth.create_staff_user("coach", "mat-time")
    with pytest.raises(ValueError, match="Username already exists."):
        auth.create_staff_user(" coach ", "other-pass", role="admin")
    assert auth.get_role("coach") == "instructor"


def test_only_admins_are_admins(admin):
    auth.create_staff_user("coach", "mat-time")
    assert auth.is_admin(admin)
    assert not auth.is_admin("coach")
    assert not auth.is_admin("nobody")
