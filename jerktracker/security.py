"""Password hashing and JWT access tokens"""

from datetime import timedelta
from typing import Any, Dict, Mapping

from jose import JWTError, jwt
from passlib.context import CryptContext

from jerktracker.config import Settings
from jerktracker.errors import AuthenticationError
from jerktracker.timeutil import utcnow

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def create_access_token(user: Mapping[str, Any], settings: Settings) -> str:
    """Create JWT access token"""
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user["id"]),
        "restaurant_id": user.get("restaurant_id"),
        "role": getattr(user["role"], "value", user["role"]),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Validate an access token and return its claims.

    Raises:
        AuthenticationError: bad signature, expired, or not an access token.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError("Could not validate credentials", cause=exc)
    if payload.get("sub") is None or payload.get("type") != "access":
        raise AuthenticationError("Could not validate credentials")
    return payload
