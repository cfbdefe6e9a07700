"""
Role dependencies.

Authentication happens upstream (reverse proxy / SSO); this service only
reads the caller's role from the X-User-Role header it forwards. With
AUTH_MODE=demo a missing header falls back to DEMO_ROLE.
"""

import os
from fastapi import HTTPException, Header
from typing import Optional

from hrsync.models.lifecycle import OwnerRole

AUTH_MODE = os.getenv("AUTH_MODE", "demo")  # "demo" or "proxy"

DEMO_ROLE = OwnerRole.ADMIN.value

GENERATOR_ROLES = (OwnerRole.ADMIN.value, OwnerRole.HR.value, OwnerRole.UNIT_LEAD.value)


def get_current_role(x_user_role: Optional[str] = Header(default=None)) -> str:
    """Role forwarded by the proxy, or the demo fallback."""
    if x_user_role:
        return x_user_role.strip().upper()

    if AUTH_MODE == "demo":
        return DEMO_ROLE

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_admin(x_user_role: Optional[str] = Header(default=None)) -> str:
    role = get_current_role(x_user_role)
    if role != OwnerRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return role


def require_hr(x_user_role: Optional[str] = Header(default=None)) -> str:
    """ADMIN or HR."""
    role = get_current_role(x_user_role)
    if role not in (OwnerRole.ADMIN.value, OwnerRole.HR.value):
        raise HTTPException(status_code=403, detail="HR access required")
    return role


def require_task_generator(x_user_role: Optional[str] = Header(default=None)) -> str:
    role = get_current_role(x_user_role)
    if role not in GENERATOR_ROLES:
        raise HTTPException(status_code=403, detail="Forbidden")
    return role
