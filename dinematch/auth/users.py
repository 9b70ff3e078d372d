from __future__ import annotations

from typing import Any

import bcrypt

_users: dict[str, dict[str, Any]] = {}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def _add_user(username: str, password: str, user_id: str, name: str, role: str = "user") -> None:
    _users[username] = {
        "password_hash": _hash_password(password),
        "user_id": user_id,
        "name": name,
        "role": role,
    }


def _seed_users() -> None:
    """Pre-seed demo diners and an admin on import."""
    _add_user("alice", "alice123", "user-alice", "Alice")
    _add_user("bob", "bob123", "user-bob", "Bob")
    _add_user("carol", "carol123", "user-carol", "Carol")
    _add_user("admin", "admin123", "user-admin", "Admin", role="admin")


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{user_id, username, name, role}`` or ``None``."""
    record = _users.get(username)
    if record and _verify_password(password, record["password_hash"]):
        return {
            "user_id": record["user_id"],
            "username": username,
            "name": record["name"],
            "role": record["role"],
        }
    return None


_seed_users()
