# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission checks and agent scoping.

Roles map to permission codes statically (permissions/roles.py). Denials are
logged to the security logger; grants are not.

DESIGN PRINCIPLES:
- Fail closed: unknown roles hold no permissions
- Agents only ever see their own agent record and what hangs off it
"""

import logging

from ..extensions import db
from ..models import Agent, User
from ..permissions import get_role_permissions


security_logger = logging.getLogger("dealership.security")


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
) -> None:
    """
    event_type examples:
    - PERMISSION_DENIED
    - AGENT_SCOPE_DENIED
    - LOGIN_FAILED
    """
    security_logger.warning(
        "%s user_id=%s resource=%s action=%s ip=%s reason=%s",
        event_type, user_id, resource, action, ip_address, reason,
    )


def get_user_permissions(user: User) -> set[str]:
    if not user or not user.is_active:
        return set()
    return get_role_permissions(user.role)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(user: User, permission_code: str) -> None:
    if not user_has_permission(user, permission_code):
        raise PermissionDeniedError(f"Missing permission: {permission_code}")


def get_agent_for_user(user: User) -> Agent | None:
    """Agent profile linked to a login, if any."""
    if user is None:
        return None
    return db.session.query(Agent).filter_by(user_id=user.id).first()


def agent_scope_id(user: User) -> int | None:
    """
    Agent id the user is confined to, or None when unrestricted.

    Agent-role users without a linked profile get -1 so every scoped query
    comes back empty.
    """
    if user.role != "agent":
        return None
    agent = get_agent_for_user(user)
    return agent.id if agent else -1


def is_company_scoped(user: User) -> bool:
    """Showroom users only see company stock and company sales."""
    return user.role == "showroom_user"


def ensure_agent_access(user: User, agent_id: int) -> None:
    scope = agent_scope_id(user)
    if scope is not None and scope != agent_id:
        raise PermissionDeniedError("Agents may only access their own records")
