"""
Passenger profile router — GET/PUT/DELETE /profile, GET /drivers/nearby
"""
from fastapi import APIRouter, Depends

from app.dependencies import get_profile_service
from app.middleware.auth import get_current_passenger
from app.models.user import User
from app.schemas.schemas import (
    NearbyDriver, NearbyDriverListEnvelope, ProfileUpdateRequest, PublicUser, SuccessResponse, UserEnvelope,
)
from app.services.profiles import ProfileService

router = APIRouter(tags=["Passengers"])


@router.get("/profile", response_model=UserEnvelope)
async def get_profile(user: User = Depends(get_current_passenger)):
    return UserEnvelope(user=PublicUser.model_validate(user))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_passenger),
    profiles: ProfileService = Depends(get_profile_service),
):
    updated = await profiles.update_profile(user.id, payload)
    return UserEnvelope(user=PublicUser.model_validate(updated))


@router.delete("/profile", response_model=SuccessResponse)
async def delete_profile(
    user: User = Depends(get_current_passenger),
    profiles: ProfileService = Depends(get_profile_service),
):
    await profiles.delete_passenger(user.id)
    return SuccessResponse()


@router.get("/drivers/nearby", response_model=NearbyDriverListEnvelope)
async def nearby_drivers(
    user: User = Depends(get_current_passenger),
    profiles: ProfileService = Depends(get_profile_service),
):
    drivers = await profiles.nearby_drivers()
    return NearbyDriverListEnvelope(drivers=[NearbyDriver(**d) for d in drivers])
