"""
Ride lifecycle controller.

Owns every ride mutation: creation, driver claim (accept / passenger assign),
status updates by passenger, driver or admin, and payment. All writes are
single conditional UPDATEs so that two requests racing on the same row cannot
both win:

  - accept/assign:  ... WHERE driver_id IS NULL OR driver_id = :driver
  - status updates: ... WHERE status = :status_that_was_read   (compare-and-swap)

A zero rowcount is resolved by re-reading the row and raising the matching
error. Committed mutations are published through the injected
RideEventPublisher.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import commit
from app.errors import (
    AuthorizationError, ConflictError, InvalidTransitionError, NotFoundError, ValidationError,
)
from app.models.driver import Driver
from app.models.ride import Ride
from app.models.user import User
from app.schemas.schemas import RideCreateRequest, RideStatusEnum, UserTypeEnum
from app.services.notifications import RideEventPublisher
from app.services.state_machine import (
    ACCEPTABLE_FROM, ACCEPTABLE_PAID_FROM, INITIAL_STATUSES, OPEN_REQUEST_STATUSES, ROLE_TARGETS,
    ensure_progress, paid_from_after, parse_status,
)

logger = logging.getLogger(__name__)

S = RideStatusEnum
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Quantise a fare to cents; rejects negatives and non-numbers."""
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid fare '{value}'")
    if amount < 0:
        raise ValidationError("Fare cannot be negative")
    return amount


def ride_to_dict(ride: Ride, **extra: Any) -> dict[str, Any]:
    data = {
        "id": ride.id,
        "passenger_id": ride.passenger_id,
        "driver_id": ride.driver_id,
        "pickup_location": ride.pickup_location,
        "dropoff_location": ride.dropoff_location,
        "status": ride.status,
        "fare": float(ride.fare or 0),
        "payment_method": ride.payment_method,
        "distance": ride.distance,
        "vehicle_type": ride.vehicle_type,
        "created_at": ride.created_at,
    }
    data.update(extra)
    return data


class RideLifecycle:
    def __init__(self, db: AsyncSession, publisher: RideEventPublisher):
        self.db = db
        self.publisher = publisher

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _reload(self, ride_id: str) -> Optional[Ride]:
        return await self.db.get(Ride, ride_id, populate_existing=True)

    async def _scoped_ride(self, actor_role: str, actor_id: str, ride_id: str) -> Ride:
        ride = await self._reload(ride_id)
        if ride is None:
            raise NotFoundError("Ride not found")
        if actor_role == UserTypeEnum.passenger.value and ride.passenger_id != actor_id:
            raise AuthorizationError("Ride does not belong to this passenger")
        if actor_role == UserTypeEnum.driver.value and ride.driver_id != actor_id:
            raise AuthorizationError("Ride is not assigned to this driver")
        return ride

    async def _publish(self, event_type: str, ride: Ride) -> None:
        await self.publisher.publish(event_type, ride_to_dict(ride))

    async def _compare_and_set(self, ride: Ride, values: dict[str, Any], *scope) -> Ride:
        """Write ``values`` only if the row still has the status we read."""
        ride_id, expected = ride.id, ride.status
        result = await self.db.execute(
            update(Ride)
            .where(Ride.id == ride_id, Ride.status == expected, *scope)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.warning("Stale write on ride=%s (expected status %s)", ride_id, expected)
            raise ConflictError("Ride was modified by another request; reload and retry")
        await commit(self.db)
        updated = await self._reload(ride_id)
        await self._publish("UPDATE", updated)
        return updated

    async def _require_driver(self, driver_id: str) -> User:
        driver = await self.db.get(User, driver_id)
        if driver is None or driver.user_type != UserTypeEnum.driver.value:
            raise NotFoundError("Driver not found")
        return driver

    async def _users_by_id(self, ids: Iterable[Optional[str]]) -> dict[str, User]:
        wanted = {i for i in ids if i}
        if not wanted:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(wanted)))
        return {u.id: u for u in result.scalars().all()}

    async def _with_passengers(self, rides: list[Ride], include_phone: bool = False) -> list[dict]:
        passengers = await self._users_by_id(r.passenger_id for r in rides)
        enriched = []
        for ride in rides:
            p = passengers.get(ride.passenger_id)
            extra = {
                "passenger_name": p.full_name if p else None,
                "passenger_avatar": p.profile_picture_url if p else None,
            }
            if include_phone:
                extra["passenger_phone"] = p.phone if p else None
            enriched.append(ride_to_dict(ride, **extra))
        return enriched

    # ------------------------------------------------------------------
    # creation
    # ------------------------------------------------------------------

    async def create(self, passenger_id: str, payload: RideCreateRequest) -> Ride:
        pickup = (payload.pickup_location or "").strip()
        dropoff = (payload.dropoff_location or "").strip()
        if not pickup or not dropoff:
            raise ValidationError("Pickup and dropoff are required")

        status = S.REQUESTED
        if payload.status:
            status = parse_status(payload.status)
            if status not in INITIAL_STATUSES:
                raise ValidationError(f"A ride cannot be created in status '{status.value}'")

        driver_id = payload.driver_id or None
        if driver_id:
            await self._require_driver(driver_id)

        ride = Ride(
            passenger_id=passenger_id,
            driver_id=driver_id,
            pickup_location=pickup,
            dropoff_location=dropoff,
            status=status.value,
            fare=to_money(payload.fare or 0),
            distance=payload.distance,
            vehicle_type=payload.vehicle_type,
        )
        self.db.add(ride)
        await commit(self.db)
        await self.db.refresh(ride)
        logger.info("Created ride=%s for passenger=%s status=%s", ride.id, passenger_id, ride.status)
        await self._publish("INSERT", ride)
        return ride

    # ------------------------------------------------------------------
    # driver claim
    # ------------------------------------------------------------------

    async def list_requests(self, driver_id: str) -> list[dict]:
        """Open, unassigned rides; offline drivers always get an empty list."""
        result = await self.db.execute(
            select(Driver.is_online).where(Driver.user_id == driver_id).limit(1)
        )
        is_online = result.scalar_one_or_none()
        if not is_online:
            return []

        result = await self.db.execute(
            select(Ride)
            .where(
                Ride.driver_id.is_(None),
                Ride.status.in_([s.value for s in OPEN_REQUEST_STATUSES]),
            )
            .order_by(Ride.created_at.desc())
        )
        rides = list(result.scalars().all())
        logger.info("Driver %s fetched %d open requests", driver_id, len(rides))
        return await self._with_passengers(rides, include_phone=True)

    async def accept(self, driver_id: str, ride_id: str) -> Ride:
        """
        Claim a ride for ``driver_id``.

        Succeeds when the ride is unassigned or already held by this driver.
        The claim is one conditional UPDATE; if another driver got there
        first, nothing is written and ConflictError is raised.
        """
        result = await self.db.execute(
            update(Ride)
            .where(
                Ride.id == ride_id,
                or_(Ride.driver_id.is_(None), Ride.driver_id == driver_id),
                Ride.status.in_([s.value for s in ACCEPTABLE_FROM]),
                or_(
                    Ride.status != S.PAID.value,
                    Ride.paid_from.is_(None),
                    Ride.paid_from.in_([s.value for s in ACCEPTABLE_PAID_FROM]),
                ),
            )
            .values(driver_id=driver_id, status=S.ACCEPTED.value, paid_from=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            ride = await self._reload(ride_id)
            if ride is None:
                raise NotFoundError("Ride not found")
            if ride.driver_id and ride.driver_id != driver_id:
                logger.warning("Driver %s lost ride=%s to driver %s", driver_id, ride_id, ride.driver_id)
                raise ConflictError("Ride already assigned")
            raise InvalidTransitionError(ride.status, S.ACCEPTED.value)

        await commit(self.db)
        ride = await self._reload(ride_id)
        logger.info("Driver %s accepted ride=%s", driver_id, ride_id)
        await self._publish("UPDATE", ride)
        return ride

    async def assign(self, passenger_id: str, ride_id: str, driver_id: Optional[str]) -> Ride:
        """Passenger picks a preferred driver for their ride."""
        if not driver_id:
            raise ValidationError("Driver ID is required")

        ride = await self._scoped_ride(UserTypeEnum.passenger.value, passenger_id, ride_id)
        await self._require_driver(driver_id)
        if ride.driver_id and ride.driver_id != driver_id:
            raise ConflictError("Ride already assigned")
        ensure_progress(S(ride.status), S.ASSIGNED, ride.paid_from)

        return await self._compare_and_set(
            ride,
            {"driver_id": driver_id, "status": S.ASSIGNED.value, "paid_from": None},
            Ride.passenger_id == passenger_id,
            or_(Ride.driver_id.is_(None), Ride.driver_id == driver_id),
        )

    # ------------------------------------------------------------------
    # status changes
    # ------------------------------------------------------------------

    async def update_status(
        self,
        actor_role: str,
        actor_id: str,
        ride_id: str,
        new_status: Optional[str],
        fare: Any = None,
        payment_method: Optional[str] = None,
    ) -> Ride:
        """
        Move a ride to ``new_status`` on behalf of a passenger, driver or admin.

        Passengers and drivers are limited to their own rides and to the
        targets of their role, and must follow the transition table. Admins
        may force any status in the closed set.
        """
        target = parse_status(new_status)
        amount = to_money(fare) if fare is not None else None

        if actor_role == UserTypeEnum.passenger.value and target == S.PAID:
            return await self.mark_paid(actor_id, ride_id, amount, payment_method)

        if target not in ROLE_TARGETS[actor_role]:
            raise AuthorizationError(f"A {actor_role} cannot set ride status to '{target.value}'")

        ride = await self._scoped_ride(actor_role, actor_id, ride_id)
        current = S(ride.status)
        if actor_role != UserTypeEnum.admin.value:
            ensure_progress(current, target, ride.paid_from)

        if current == target and (amount is None or amount == ride.fare):
            return ride

        values: dict[str, Any] = {
            "status": target.value,
            "paid_from": paid_from_after(current, target, ride.paid_from),
        }
        if amount is not None:
            values["fare"] = amount

        scope = []
        if actor_role == UserTypeEnum.passenger.value:
            scope.append(Ride.passenger_id == actor_id)
        elif actor_role == UserTypeEnum.driver.value:
            scope.append(Ride.driver_id == actor_id)

        updated = await self._compare_and_set(ride, values, *scope)
        logger.info("Ride=%s %s -> %s by %s %s", ride_id, current.value, target.value, actor_role, actor_id)
        return updated

    async def cancel(self, actor_role: str, actor_id: str, ride_id: str) -> Ride:
        return await self.update_status(actor_role, actor_id, ride_id, S.CANCELLED.value)

    async def mark_paid(
        self,
        passenger_id: str,
        ride_id: str,
        fare: Any = None,
        payment_method: Optional[str] = None,
    ) -> Ride:
        """
        Record the passenger's payment. This never completes the ride: only
        the driver who performed the trip can move it to ``completed``.
        """
        amount = to_money(fare) if fare is not None else None
        ride = await self._scoped_ride(UserTypeEnum.passenger.value, passenger_id, ride_id)
        current = S(ride.status)
        ensure_progress(current, S.PAID, ride.paid_from)

        values: dict[str, Any] = {
            "status": S.PAID.value,
            "paid_from": paid_from_after(current, S.PAID, ride.paid_from),
            "payment_method": payment_method or ride.payment_method or "Cash",
        }
        if amount is not None:
            values["fare"] = amount

        updated = await self._compare_and_set(ride, values, Ride.passenger_id == passenger_id)
        logger.info("Ride=%s paid %s via %s", ride_id, updated.fare, updated.payment_method)
        return updated

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def history(self, passenger_id: str) -> list[dict]:
        result = await self.db.execute(
            select(Ride).where(Ride.passenger_id == passenger_id).order_by(Ride.created_at.desc())
        )
        return [ride_to_dict(r) for r in result.scalars().all()]

    async def recent(self, passenger_id: str, limit: int = 5) -> list[dict]:
        result = await self.db.execute(
            select(Ride)
            .where(Ride.passenger_id == passenger_id)
            .order_by(Ride.created_at.desc())
            .limit(limit)
        )
        rides = list(result.scalars().all())
        drivers = await self._users_by_id(r.driver_id for r in rides)
        out = []
        for ride in rides:
            d = drivers.get(ride.driver_id) if ride.driver_id else None
            out.append(ride_to_dict(
                ride,
                driver_name=d.full_name if d else None,
                driver_avatar=d.profile_picture_url if d else None,
            ))
        return out

    async def driver_rides(self, driver_id: str, status: Optional[str] = None) -> list[dict]:
        query = select(Ride).where(Ride.driver_id == driver_id)
        if status:
            query = query.where(Ride.status == parse_status(status).value)
        result = await self.db.execute(query.order_by(Ride.created_at.desc()))
        return await self._with_passengers(list(result.scalars().all()))

    async def admin_rides(self, status: Optional[str] = None) -> list[dict]:
        query = select(Ride)
        if status:
            query = query.where(Ride.status == parse_status(status).value)
        result = await self.db.execute(query.order_by(Ride.created_at.desc()))
        return [ride_to_dict(r) for r in result.scalars().all()]

    async def passenger_stats(self, passenger_id: str) -> dict:
        result = await self.db.execute(
            select(Ride.fare).where(Ride.passenger_id == passenger_id).order_by(Ride.created_at.asc())
        )
        fares = [Decimal(str(f or 0)) for f in result.scalars().all()]
        total = sum(fares, Decimal("0")).quantize(CENT)
        return {
            "totalRides": len(fares),
            "totalSpent": float(total),
            "lastFare": float(fares[-1]) if fares else 0.0,
        }

    async def platform_stats(self) -> dict:
        users = await self.db.scalar(select(func.count()).select_from(User))
        drivers = await self.db.scalar(select(func.count()).select_from(Driver))
        result = await self.db.execute(select(Ride.fare))
        fares = [Decimal(str(f or 0)) for f in result.scalars().all()]
        return {
            "totalUsers": users or 0,
            "totalDrivers": drivers or 0,
            "totalRides": len(fares),
            "totalRevenue": float(sum(fares, Decimal("0")).quantize(CENT)),
        }
