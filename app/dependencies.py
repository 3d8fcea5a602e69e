"""
Per-request service construction.

Services receive their collaborators explicitly; routers ask for them through
these dependencies so tests can swap the publisher or the session.
"""
import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.redis_client import get_redis
from app.services.auth_provider import AuthProvider
from app.services.notifications import RideEventPublisher
from app.services.profiles import ProfileService
from app.services.ride_lifecycle import RideLifecycle


async def get_publisher(redis: aioredis.Redis = Depends(get_redis)) -> RideEventPublisher:
    return RideEventPublisher(redis)


async def get_ride_lifecycle(
    db: AsyncSession = Depends(get_db),
    publisher: RideEventPublisher = Depends(get_publisher),
) -> RideLifecycle:
    return RideLifecycle(db, publisher)


async def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


async def get_auth_provider(db: AsyncSession = Depends(get_db)) -> AuthProvider:
    return AuthProvider(db)
