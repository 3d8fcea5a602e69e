"""
Driver portal router — profile, online status, open requests, own rides,
accept, status updates and support messages. Everything under /driver.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.dependencies import get_profile_service, get_ride_lifecycle
from app.middleware.auth import get_current_driver
from app.models.user import User
from app.schemas.schemas import (
    DriverStatusRequest, MessageEnvelope, MessageOut, MessageRequest, ProfileUpdateRequest, PublicUser,
    RideEnvelope, RideListEnvelope, RideOut, RideStatusUpdateRequest, SuccessResponse, UserEnvelope,
)
from app.services.profiles import ProfileService
from app.services.ride_lifecycle import RideLifecycle, ride_to_dict

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/driver", tags=["Drivers"])


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(user: User = Depends(get_current_driver)):
    return UserEnvelope(user=PublicUser.model_validate(user))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_driver),
    profiles: ProfileService = Depends(get_profile_service),
):
    updated = await profiles.update_profile(user.id, payload, allow_payment=False)
    return UserEnvelope(user=PublicUser.model_validate(updated))


@router.put("/status", response_model=SuccessResponse)
async def update_driver_status(
    payload: DriverStatusRequest,
    user: User = Depends(get_current_driver),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Toggle online flag and/or report the current position."""
    await profiles.set_driver_status(
        user.id,
        is_online=payload.is_online,
        latitude=payload.current_latitude,
        longitude=payload.current_longitude,
    )
    return SuccessResponse()


@router.get("/requests", response_model=RideListEnvelope)
async def open_requests(
    user: User = Depends(get_current_driver),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    return RideListEnvelope(rides=[RideOut(**r) for r in await rides.list_requests(user.id)])


@router.get("/rides", response_model=RideListEnvelope)
async def my_rides(
    status: Optional[str] = None,
    user: User = Depends(get_current_driver),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    return RideListEnvelope(rides=[RideOut(**r) for r in await rides.driver_rides(user.id, status)])


@router.put("/rides/{ride_id}/accept", response_model=RideEnvelope)
async def accept_ride(
    ride_id: str,
    user: User = Depends(get_current_driver),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.accept(user.id, ride_id)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.put("/rides/{ride_id}/status", response_model=RideEnvelope)
async def update_ride_status(
    ride_id: str,
    payload: RideStatusUpdateRequest,
    user: User = Depends(get_current_driver),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.update_status(user.user_type, user.id, ride_id, payload.status)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.post("/messages", status_code=status.HTTP_201_CREATED, response_model=MessageEnvelope)
async def send_message(
    payload: MessageRequest,
    user: User = Depends(get_current_driver),
    profiles: ProfileService = Depends(get_profile_service),
):
    message = await profiles.send_message(user.id, payload.subject, payload.message)
    return MessageEnvelope(message=MessageOut.model_validate(message))
