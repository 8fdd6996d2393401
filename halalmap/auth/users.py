from __future__ import annotations

import os
import re
from typing import Any

import bcrypt

_users: dict[str, dict[str, Any]] = {}

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.@-]{3,64}$")
MIN_PASSWORD_LENGTH = 6


class UserExists(ValueError):
    pass


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def create_user(username: str, password: str, role: str = "user") -> dict[str, Any]:
    """Register an account. Raises ``ValueError`` on bad input, ``UserExists`` on a taken name."""
    username = username.strip()
    if not _USERNAME_RE.match(username):
        raise ValueError("Username must be 3-64 letters, digits or . _ @ -")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if username.lower() in _users:
        raise UserExists(f"User {username!r} already exists")
    _users[username.lower()] = {
        "username": username,
        "password_hash": _hash_password(password),
        "role": role,
    }
    return {"username": username, "role": role}


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{username, role}`` or ``None``."""
    record = _users.get(username.strip().lower())
    if record and _verify_password(password, record["password_hash"]):
        return {"username": record["username"], "role": record["role"]}
    return None


def _seed_users() -> None:
    """Demo accounts; the admin password can be overridden from the environment."""
    create_user("user", os.environ.get("HALALMAP_USER_PASSWORD", "user123"))
    create_user("admin", os.environ.get("HALALMAP_ADMIN_PASSWORD", "admin123"), role="admin")


_seed_users()
