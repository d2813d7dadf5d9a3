"""Role-scoped access policy.

Design:
  - `admin` may act on every resource.
  - `ca` may act on resources assigned to them (the resource's assignee id).
  - `customer` may act on resources they own (the resource's owner id).
  - Any other combination is denied.
  - Single-resource checks fail with the same 404 a missing row produces,
    so callers cannot learn which ids exist outside their scope. Operations that
    are closed to a whole role fail with 403 instead.
  - `scope_clause` expresses the same rule as a SQL filter for listings.

Ownership per resource:
  Client    owner = client.user_id              assignee = client.ca_id
  Filing    owner = filing.client.user_id       assignee = filing.ca_id
  Document  scope of its filing
  Payment   owner = payment.client.user_id      assignee = filing.ca_id, else client.ca_id
"""

from __future__ import annotations

from sqlalchemy import ColumnElement, false, true

from app.middleware.exceptions import AccessDeniedError, ResourceNotFoundError
from app.models.user import User, UserRole


def can_access(
    actor_id: str,
    actor_role: str,
    owner_id: str | None,
    assignee_id: str | None = None,
) -> bool:
    """Pure allow/deny decision for one resource."""
    if actor_role == UserRole.ADMIN:
        return True
    if actor_role == UserRole.CA:
        return assignee_id is not None and actor_id == assignee_id
    if actor_role == UserRole.CUSTOMER:
        return owner_id is not None and actor_id == owner_id
    return False


def ensure_can_access(
    user: User,
    resource: str,
    owner_id: str | None,
    assignee_id: str | None = None,
) -> None:
    """Raise 404 `<resource> not found` unless `user` may see the resource."""
    if not can_access(user.id, user.role, owner_id, assignee_id):
        raise ResourceNotFoundError(resource)


def ensure_role(user: User, *roles: UserRole, message: str | None = None) -> None:
    """Raise 403 unless `user` holds one of `roles`."""
    if user.role not in roles:
        raise AccessDeniedError(
            message or f"Requires role: {', '.join(r.value for r in roles)}"
        )


def scope_clause(
    user: User,
    owner_column: ColumnElement,
    assignee_column: ColumnElement,
) -> ColumnElement[bool]:
    """SQL filter restricting a listing to what `user` may see."""
    if user.role == UserRole.ADMIN:
        return true()
    if user.role == UserRole.CA:
        return assignee_column == user.id
    if user.role == UserRole.CUSTOMER:
        return owner_column == user.id
    return false()
