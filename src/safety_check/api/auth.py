"""Authentication API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.database import get_db
from safety_check.models.user import User
from safety_check.schemas.user import (
    AuthResponse,
    UserCreate,
    UserEnvelope,
    UserLogin,
    UserResponse,
)
from safety_check.services.directory import UserDirectory
from safety_check.utils.security import CurrentUser, create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


async def build_user_response(directory: UserDirectory, user: User) -> UserResponse:
    """Password-free projection of a user, including friend IDs."""
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        username=user.username,
        friends=await directory.friend_ids(user.id),
        last_check_in=user.last_check_in,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Register a new user.

    Creates a new user account and returns it with a bearer token.
    The password is securely hashed before storage.

    Raises:
        ConflictError (400): If username or email already exists
    """
    directory = UserDirectory(db)
    user = await directory.create_user(
        email=user_data.email,
        username=user_data.username,
        name=user_data.name,
        password=user_data.password,
    )

    return AuthResponse(
        user=await build_user_response(directory, user),
        token=create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Authenticate user and return a bearer token.

    Accepts either username or email in the emailOrUsername field.

    Raises:
        UnauthenticatedError (401): If credentials are invalid
    """
    directory = UserDirectory(db)
    user = await directory.authenticate(credentials.email_or_username, credentials.password)

    return AuthResponse(
        user=await build_user_response(directory, user),
        token=create_access_token(user.id),
    )


@router.get("/validate", response_model=UserEnvelope)
async def validate(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    """Validate the bearer token and return the user it belongs to."""
    directory = UserDirectory(db)
    return UserEnvelope(user=await build_user_response(directory, current_user))
