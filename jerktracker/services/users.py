"""UserService: dashboard accounts, registration and login."""

from typing import Any, Dict, List, Optional, Tuple

import structlog

from jerktracker.access import Principal, can_access_restaurant, resolve_restaurant_filter
from jerktracker.errors import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from jerktracker.models.user import UserRole
from jerktracker.security import get_password_hash, verify_password
from jerktracker.storage.base import Entity, Record, StorageAdapter
from jerktracker.timeutil import utcnow

logger = structlog.get_logger()

SELF_SERVICE_ROLES = frozenset({UserRole.STAFF, UserRole.USER})
ADMIN_ONLY_FIELDS = frozenset({"role", "restaurant_id", "is_active"})


def public_user(user: Record) -> Record:
    """User record without the password hash"""
    return {key: value for key, value in user.items() if key != "hashed_password"}


class UserService:
    def __init__(self, storage: StorageAdapter) -> None:
        self.storage = storage

    async def get_by_email(self, email: str) -> Optional[Record]:
        users = await self.storage.query(Entity.USERS, "email", email.lower())
        return users[0] if users else None

    async def _ensure_email_free(self, email: str, user_id: Optional[str] = None) -> None:
        existing = await self.get_by_email(email)
        if existing is not None and existing["id"] != user_id:
            raise ConflictError("A user with this email already exists", details={"email": email})

    async def _ensure_restaurant(self, restaurant_id: Optional[str]) -> None:
        if restaurant_id is not None:
            if await self.storage.get_by_id(Entity.RESTAURANTS, restaurant_id) is None:
                raise NotFoundError("Restaurant")

    async def authenticate(self, email: str, password: str) -> Record:
        """
        Check credentials and stamp ``last_login``.

        Raises:
            AuthenticationError: unknown email, wrong password or disabled account.
        """
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user["hashed_password"]):
            raise AuthenticationError("Incorrect email or password")
        if not user["is_active"]:
            raise AuthenticationError("User account is disabled")
        return await self.storage.update(Entity.USERS, user["id"], {"last_login": utcnow()})

    async def create_user(self, data: Dict[str, Any]) -> Record:
        data = dict(data)
        data["email"] = data["email"].lower()
        role = UserRole(data.get("role") or UserRole.STAFF)
        if role is not UserRole.ADMIN and not data.get("restaurant_id"):
            raise ValidationError(
                "Validation failed",
                details={"fields": {"restaurant_id": "Required for non-admin users"}},
            )
        await self._ensure_email_free(data["email"])
        await self._ensure_restaurant(data.get("restaurant_id"))

        data["hashed_password"] = get_password_hash(data.pop("password"))
        data["role"] = role.value
        user = await self.storage.create(Entity.USERS, data)
        logger.info(
            "User created", user_id=user["id"], role=user["role"], restaurant_id=user["restaurant_id"]
        )
        return user

    async def register(self, data: Dict[str, Any]) -> Record:
        """Self-registration; only staff and plain user roles are accepted"""
        if UserRole(data.get("role") or UserRole.STAFF) not in SELF_SERVICE_ROLES:
            raise ValidationError(
                "Validation failed",
                details={"fields": {"role": "Self-registration is limited to STAFF and USER"}},
            )
        await self._ensure_restaurant(data["restaurant_id"])
        return await self.create_user(data)

    async def list_users(
        self,
        principal: Principal,
        *,
        restaurant_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Record], int]:
        scope = resolve_restaurant_filter(principal, restaurant_id)
        if scope is None:
            users = await self.storage.get_all(Entity.USERS)
        else:
            users = await self.storage.query(Entity.USERS, "restaurant_id", scope)
        users.sort(key=lambda user: (user["created_at"], user["email"]), reverse=True)
        offset = (page - 1) * limit
        return users[offset:offset + limit], len(users)

    async def get_user(self, principal: Principal, user_id: str) -> Record:
        """Readable by the user, admins, and staff of the same restaurant"""
        user = await self.storage.get_by_id(Entity.USERS, user_id)
        if principal.id != user_id and not principal.is_admin:
            same_restaurant = (
                user is not None
                and principal.role is UserRole.STAFF
                and can_access_restaurant(principal, user["restaurant_id"])
            )
            if not same_restaurant:
                raise AuthorizationError("Access denied")
        if user is None:
            raise NotFoundError("User")
        return user

    async def update_user(self, principal: Principal, user_id: str, changes: Dict[str, Any]) -> Record:
        if principal.id != user_id and not principal.is_admin:
            raise AuthorizationError("You can only update your own account")
        restricted = ADMIN_ONLY_FIELDS & set(changes)
        if restricted and not principal.is_admin:
            raise AuthorizationError(
                "Only admins can change role, restaurant or account status",
                details={"fields": sorted(restricted)},
            )
        if await self.storage.get_by_id(Entity.USERS, user_id) is None:
            raise NotFoundError("User")

        changes = dict(changes)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
            await self._ensure_email_free(changes["email"], user_id)
        if "restaurant_id" in changes:
            await self._ensure_restaurant(changes["restaurant_id"])
        if changes.get("password"):
            changes["hashed_password"] = get_password_hash(changes.pop("password"))
        changes.pop("password", None)
        if changes.get("role") is not None:
            changes["role"] = UserRole(changes["role"]).value

        user = await self.storage.update(Entity.USERS, user_id, changes)
        logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return user

    async def delete_user(self, principal: Principal, user_id: str) -> None:
        """Admin-only; orders keep existing with their audit links cleared"""
        if principal.id == user_id:
            raise BusinessRuleError("You cannot delete your own account")
        if await self.storage.get_by_id(Entity.USERS, user_id) is None:
            raise NotFoundError("User")

        for field in ("created_by_id", "updated_by_id"):
            for order in await self.storage.query(Entity.ORDERS, field, user_id):
                await self.storage.update(Entity.ORDERS, order["id"], {field: None})
        await self.storage.delete(Entity.USERS, user_id)
        logger.info("User deleted", user_id=user_id)
