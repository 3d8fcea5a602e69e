"""
Admin router — unrestricted reads, moderation and forced ride status.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_profile_service, get_ride_lifecycle
from app.middleware.auth import get_current_admin
from app.models.user import User
from app.schemas.schemas import (
    AccountStatusRequest, AdminDriver, AdminDriverListEnvelope, MessageListEnvelope, MessageOut,
    PlatformStats, PublicUser, RideEnvelope, RideListEnvelope, RideOut, RideStatusUpdateRequest,
    UserEnvelope, UserListEnvelope,
)
from app.services.profiles import ProfileService
from app.services.ride_lifecycle import RideLifecycle, ride_to_dict

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(get_current_admin)])


@router.get("/users", response_model=UserListEnvelope)
async def list_users(
    status: Optional[str] = None,
    user_type: Optional[str] = None,
    profiles: ProfileService = Depends(get_profile_service),
):
    users = await profiles.list_users(status=status, user_type=user_type)
    return UserListEnvelope(users=[PublicUser.model_validate(u) for u in users])


@router.put("/users/{user_id}/status", response_model=UserEnvelope)
async def set_user_status(
    user_id: str,
    payload: AccountStatusRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    user = await profiles.set_user_status(user_id, payload.status)
    return UserEnvelope(user=PublicUser.model_validate(user))


@router.get("/drivers", response_model=AdminDriverListEnvelope)
async def list_drivers(profiles: ProfileService = Depends(get_profile_service)):
    rows = await profiles.list_drivers()
    return AdminDriverListEnvelope(drivers=[
        AdminDriver(
            id=driver.id,
            user_id=driver.user_id,
            vehicle_type=driver.vehicle_type,
            vehicle_plate=driver.vehicle_plate,
            current_latitude=driver.current_latitude,
            current_longitude=driver.current_longitude,
            is_online=bool(driver.is_online),
            user=PublicUser.model_validate(user) if user else None,
        )
        for driver, user in rows
    ])


@router.put("/drivers/{driver_id}/status", response_model=UserEnvelope)
async def set_driver_status(
    driver_id: str,
    payload: AccountStatusRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    """``driver_id`` is the drivers-table row id; the owning user is updated."""
    user = await profiles.set_driver_account_status(driver_id, payload.status)
    return UserEnvelope(user=PublicUser.model_validate(user))


@router.get("/rides", response_model=RideListEnvelope)
async def list_rides(
    status: Optional[str] = None,
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    return RideListEnvelope(rides=[RideOut(**r) for r in await rides.admin_rides(status)])


@router.put("/rides/{ride_id}/status", response_model=RideEnvelope)
async def force_ride_status(
    ride_id: str,
    payload: RideStatusUpdateRequest,
    admin: User = Depends(get_current_admin),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.update_status(admin.user_type, admin.id, ride_id, payload.status, fare=payload.fare)
    logger.info("Admin %s forced ride=%s to %s", admin.id, ride_id, ride.status)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.get("/stats", response_model=PlatformStats)
async def platform_stats(rides: RideLifecycle = Depends(get_ride_lifecycle)):
    return PlatformStats(**await rides.platform_stats())


@router.get("/messages", response_model=MessageListEnvelope)
async def list_messages(profiles: ProfileService = Depends(get_profile_service)):
    messages = await profiles.list_messages()
    return MessageListEnvelope(messages=[MessageOut.model_validate(m) for m in messages])
