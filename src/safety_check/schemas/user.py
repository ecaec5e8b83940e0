"""Pydantic schemas for user and authentication API endpoints."""

from pydantic import EmailStr, Field, field_validator

from safety_check.schemas.base import CamelModel, UTCDateTime


class UserCreate(CamelModel):
    """Schema for user registration."""

    email: EmailStr = Field(description="Valid email address")
    password: str = Field(
        min_length=1,
        max_length=72,
        description="Password (at most 72 bytes)",
    )
    name: str = Field(min_length=1, max_length=100, description="Display name")
    username: str = Field(
        min_length=3,
        max_length=50,
        description="Unique username (3-50 characters)",
    )

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate username contains only allowed characters."""
        if not v.replace("_", "").replace("-", "").isalnum():
            msg = "Username can only contain letters, numbers, underscores, and hyphens"
            raise ValueError(msg)
        return v.lower()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """bcrypt only uses the first 72 bytes of a password."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class UserLogin(CamelModel):
    """Schema for user login request."""

    email_or_username: str = Field(min_length=1, description="Username or email")
    password: str = Field(min_length=1, description="Password")


class UserResponse(CamelModel):
    """Response schema for user data (excludes password)."""

    id: int = Field(description="User ID")
    email: str = Field(description="Email address")
    name: str = Field(description="Display name")
    username: str = Field(description="Username")
    friends: list[int] = Field(default_factory=list, description="IDs of the user's friends")
    last_check_in: UTCDateTime | None = Field(
        default=None, description="When the user last marked themselves safe"
    )


class UserEnvelope(CamelModel):
    """Response wrapping a single user."""

    user: UserResponse


class AuthResponse(UserEnvelope):
    """Response for registration and login."""

    token: str = Field(description="Bearer token valid for 7 days")


class TokenPayload(CamelModel):
    """Schema for decoded JWT token payload."""

    sub: str = Field(description="Subject (user ID as string)")
    iat: UTCDateTime = Field(description="Issued-at timestamp")
    exp: UTCDateTime = Field(description="Expiration timestamp")


class UserSearchResult(CamelModel):
    """A user matching a search query."""

    id: int
    name: str
    username: str
    email: str


class UserSearchResponse(CamelModel):
    users: list[UserSearchResult]


class AdminUserEntry(CamelModel):
    """A user as shown in the admin listing, with relationship counts."""

    id: int
    email: str
    username: str
    name: str
    friends: int = Field(description="Number of friends")
    friend_requests: int = Field(description="Number of pending inbound requests")
    last_check_in: UTCDateTime | None = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class AdminUsersResponse(CamelModel):
    users: list[AdminUserEntry]
