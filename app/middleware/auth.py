from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import AuthenticationError, AuthorizationError
from app.models.user import User
from app.services.auth_provider import AuthProvider, role_required_message

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Validate the Bearer token against the auth provider."""
    if credentials is None:
        raise AuthenticationError("Unauthorized")
    return await AuthProvider(db).verify(credentials.credentials)


async def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


def role_required(role: str):
    """Dependency factory: the caller's profile must carry ``user_type == role``."""

    async def dependency(user: User = Depends(get_current_profile)) -> User:
        if user.user_type != role:
            raise AuthorizationError(role_required_message(role))
        return user

    return dependency


get_current_passenger = role_required("passenger")
get_current_driver = role_required("driver")
get_current_admin = role_required("admin")
