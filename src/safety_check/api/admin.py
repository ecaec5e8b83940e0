"""Admin API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.config import Settings, get_settings
from safety_check.database import get_db
from safety_check.models.user import User
from safety_check.schemas.user import AdminUserEntry, AdminUsersResponse
from safety_check.services.base import ForbiddenError
from safety_check.services.directory import UserDirectory
from safety_check.utils.security import CurrentUser

router = APIRouter(prefix="/admin", tags=["admin"])


def require_admin(user: User, settings: Settings) -> None:
    if user.username not in settings.admin_usernames:
        raise ForbiddenError("Not authorized")


@router.get("/users", response_model=AdminUsersResponse)
async def list_users(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AdminUsersResponse:
    """List every user with friend and pending-request counts.

    Only usernames listed in ADMIN_USERNAMES may call this.
    """
    require_admin(current_user, settings)

    entries = await UserDirectory(db).list_users()
    return AdminUsersResponse(
        users=[
            AdminUserEntry(
                id=entry.user.id,
                email=entry.user.email,
                username=entry.user.username,
                name=entry.user.name,
                friends=entry.friends,
                friend_requests=entry.friend_requests,
                last_check_in=entry.user.last_check_in,
                created_at=entry.user.created_at,
                updated_at=entry.user.updated_at,
            )
            for entry in entries
        ]
    )
