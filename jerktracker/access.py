"""
Role checks and restaurant scoping.

Every data-touching handler resolves the caller into a ``Principal`` first.
Non-admin callers are confined to records of their own restaurant; the
scoping check runs before any existence check, so a foreign record and a
missing one look the same (403) to them.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from jerktracker.errors import AuthorizationError
from jerktracker.models.user import UserRole

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})


@dataclass(frozen=True)
class Principal:
    """Authenticated caller"""
    id: str
    email: str
    name: str
    role: UserRole
    restaurant_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Principal":
        return cls(
            id=record["id"],
            email=record["email"],
            name=record.get("name") or "",
            role=UserRole(record["role"]),
            restaurant_id=record.get("restaurant_id"),
        )


def require_role(principal: Principal, *roles: UserRole) -> Principal:
    if principal.role not in roles:
        raise AuthorizationError(
            "Insufficient permissions",
            details={
                "required": sorted(role.value for role in roles),
                "current": principal.role.value,
            },
        )
    return principal


def require_admin(principal: Principal) -> Principal:
    return require_role(principal, UserRole.ADMIN)


def require_staff_or_admin(principal: Principal) -> Principal:
    return require_role(principal, *STAFF_ROLES)


def can_access_restaurant(principal: Principal, restaurant_id: Optional[str]) -> bool:
    if principal.is_admin:
        return True
    return principal.restaurant_id is not None and principal.restaurant_id == restaurant_id


def ensure_restaurant_scope(
    principal: Principal,
    restaurant_id: Optional[str],
    message: str = "Access denied. You can only access data from your restaurant.",
) -> None:
    if not can_access_restaurant(principal, restaurant_id):
        raise AuthorizationError(message)


def ensure_record_scope(
    principal: Principal,
    record: Optional[Mapping[str, Any]],
    message: str = "Access denied. You can only access data from your restaurant.",
) -> None:
    """Scope check on a fetched record; a missing record fails for non-admins."""
    if principal.is_admin:
        return
    ensure_restaurant_scope(principal, record.get("restaurant_id") if record else None, message)


def resolve_restaurant_filter(principal: Principal, requested: Optional[str]) -> Optional[str]:
    """
    Restaurant a listing is restricted to. Admins get what they asked for
    (``None`` meaning all restaurants); everyone else gets their own.
    """
    if principal.is_admin:
        return requested
    if requested is not None:
        ensure_restaurant_scope(principal, requested)
    if principal.restaurant_id is None:
        raise AuthorizationError("Your account is not assigned to a restaurant")
    return principal.restaurant_id
