"""
Passenger rides router — POST /rides, PUT /rides/{id}/{assign,status,pay,cancel},
GET /rides/{history,recent,stats}
"""
import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Header, status

from app.config import get_settings
from app.dependencies import get_ride_lifecycle
from app.errors import ConflictError
from app.middleware.auth import get_current_passenger
from app.middleware.idempotency import (
    check_idempotency, release_idempotency, reserve_idempotency, store_idempotency_result,
)
from app.models.user import User
from app.redis_client import get_redis
from app.schemas.schemas import (
    AssignDriverRequest, PassengerStats, PaymentRequest, RideCreateRequest, RideEnvelope,
    RideListEnvelope, RideOut, RideStatusUpdateRequest,
)
from app.services.ride_lifecycle import RideLifecycle, ride_to_dict

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/rides", tags=["Rides"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RideEnvelope)
async def create_ride(
    payload: RideCreateRequest,
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
    redis: aioredis.Redis = Depends(get_redis),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    # Replays are scoped to the caller so keys cannot leak rides across passengers
    if not idempotency_key:
        ride = await rides.create(user.id, payload)
        return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))

    cached = await check_idempotency(redis, user.id, idempotency_key)
    if cached:
        return cached
    if not await reserve_idempotency(redis, user.id, idempotency_key):
        # The owner may have finished between the two reads
        cached = await check_idempotency(redis, user.id, idempotency_key)
        if cached:
            return cached
        raise ConflictError("A request with this Idempotency-Key is already in progress")

    try:
        ride = await rides.create(user.id, payload)
        body = RideEnvelope(ride=RideOut(**ride_to_dict(ride)))
        await store_idempotency_result(redis, user.id, idempotency_key, 201, body.model_dump())
    finally:
        await release_idempotency(redis, user.id, idempotency_key)
    return body


@router.put("/{ride_id}/assign", response_model=RideEnvelope)
async def assign_driver(
    ride_id: str,
    payload: AssignDriverRequest,
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.assign(user.id, ride_id, payload.driver_id)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.put("/{ride_id}/status", response_model=RideEnvelope)
async def update_ride_status(
    ride_id: str,
    payload: RideStatusUpdateRequest,
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.update_status(
        user.user_type, user.id, ride_id, payload.status,
        fare=payload.fare, payment_method=payload.payment_method,
    )
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.put("/{ride_id}/pay", response_model=RideEnvelope)
async def pay_ride(
    ride_id: str,
    payload: PaymentRequest,
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    """Record payment. The ride stays open until the driver completes it."""
    ride = await rides.mark_paid(user.id, ride_id, payload.fare, payload.payment_method)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.put("/{ride_id}/cancel", response_model=RideEnvelope)
async def cancel_ride(
    ride_id: str,
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    ride = await rides.cancel(user.user_type, user.id, ride_id)
    return RideEnvelope(ride=RideOut(**ride_to_dict(ride)))


@router.get("/history", response_model=RideListEnvelope)
async def ride_history(
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    return RideListEnvelope(rides=[RideOut(**r) for r in await rides.history(user.id)])


@router.get("/recent", response_model=RideListEnvelope)
async def recent_rides(
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    recent = await rides.recent(user.id, limit=settings.recent_rides_limit)
    return RideListEnvelope(rides=[RideOut(**r) for r in recent])


@router.get("/stats", response_model=PassengerStats)
async def ride_stats(
    user: User = Depends(get_current_passenger),
    rides: RideLifecycle = Depends(get_ride_lifecycle),
):
    return PassengerStats(**await rides.passenger_stats(user.id))
