from __future__ import annotations

from fastapi import HTTPException, Request


def get_current_user(request: Request) -> dict | None:
    """Return the diner stored in the cookie session, or ``None``.

    Cookies written without a ``user_id`` count as logged out.
    """
    user = request.session.get("user")
    if not user or not user.get("user_id"):
        return None
    return user


def require_user(request: Request) -> dict:
    """Raise 401 unless a diner is logged in."""
    user = get_current_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(request: Request) -> dict:
    """Raise 401 if not logged in, 403 unless the diner is an admin."""
    user = require_user(request)
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
