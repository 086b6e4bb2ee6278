"""Authentication API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm

from jerktracker.access import Principal, require_admin, require_staff_or_admin
from jerktracker.api.deps import get_app_settings, get_storage, get_user_service
from jerktracker.config import Settings
from jerktracker.errors import AuthenticationError, NotFoundError
from jerktracker.schemas.auth import RegisterRequest, Token, UserResponse
from jerktracker.security import create_access_token, decode_access_token
from jerktracker.services import UserService
from jerktracker.storage import Entity, StorageAdapter

router = APIRouter()

# OAuth2 scheme; missing tokens are reported through the error envelope
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    """Get current authenticated user from token"""
    if not token:
        raise AuthenticationError()
    payload = decode_access_token(token, settings)

    user = await storage.get_by_id(Entity.USERS, payload["sub"])
    if user is None or not user["is_active"]:
        raise AuthenticationError("Could not validate credentials")
    return Principal.from_record(user)


async def get_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    return require_admin(principal)


async def get_staff_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    return require_staff_or_admin(principal)


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    users: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_app_settings),
):
    """Authenticate with email and password and return an access token"""
    user = await users.authenticate(form_data.username, form_data.password)
    return Token(
        access_token=create_access_token(user, settings),
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    users: UserService = Depends(get_user_service),
):
    """Create a staff or user account in an existing restaurant"""
    return await users.register(data.model_dump())


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    storage: StorageAdapter = Depends(get_storage),
):
    """Get current user information"""
    user = await storage.get_by_id(Entity.USERS, principal.id)
    if user is None:
        raise NotFoundError("User")
    return user
