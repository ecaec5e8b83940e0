"""Security utilities for password hashing and JWT handling."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Annotated, Any

import bcrypt
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.config import get_settings
from safety_check.database import get_db
from safety_check.schemas.base import MAX_ID
from safety_check.schemas.user import TokenPayload
from safety_check.services.base import UnauthenticatedError

if TYPE_CHECKING:
    from safety_check.models.user import User

# OAuth2 scheme for Bearer token authentication; missing tokens are reported
# by get_current_user so the error body matches every other failure.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(user_id: int | str, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for a user.

    Args:
        user_id: Identifier stored in the "sub" claim.
        expires_delta: Optional custom lifetime. Defaults to the configured
            number of days (7).

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    now = datetime.now(UTC)

    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_access_token_expire_days)

    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT access token.

    Raises:
        UnauthenticatedError: If the token is expired, malformed, or its
            signature does not verify.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError:
        raise UnauthenticatedError("Token expired") from None
    except JWTError:
        raise UnauthenticatedError("Invalid token") from None


def user_id_from_token(token: str) -> int:
    """Resolve a bearer token to the user identifier it was issued for."""
    payload = decode_access_token(token)

    try:
        claims = TokenPayload.model_validate(payload)
    except ValidationError:
        raise UnauthenticatedError("Invalid token") from None

    try:
        user_id = int(claims.sub)
    except ValueError:
        raise UnauthenticatedError("Invalid token") from None

    if not 1 <= user_id <= MAX_ID:
        raise UnauthenticatedError("Invalid token")
    return user_id


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: AsyncSession = Depends(get_db),
):
    """Get the current authenticated user from JWT token.

    This is a FastAPI dependency that validates the JWT token from the
    Authorization header and returns the corresponding user.

    Raises:
        UnauthenticatedError: If the token is missing, invalid, expired, or
            the user no longer exists
    """
    # Import here to avoid circular import
    from safety_check.models.user import User

    if not token:
        raise UnauthenticatedError("No token provided")

    user_id = user_id_from_token(token)

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError("User not found")

    request.state.user = user
    return user


# Type alias for use in route dependencies
CurrentUser = Annotated["User", Depends(get_current_user)]
