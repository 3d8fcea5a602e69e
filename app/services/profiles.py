"""
Profile, driver availability, moderation and support-message operations.

Straight reads and partial updates against ``users``/``drivers``/``messages``;
the only side effect on a driver row is the online flag and location.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import commit
from app.errors import NotFoundError, ValidationError
from app.models.auth_account import AuthAccount
from app.models.driver import Driver
from app.models.message import Message
from app.models.ride import Ride
from app.models.user import User
from app.schemas.schemas import AccountStatusEnum, ProfileUpdateRequest

logger = logging.getLogger(__name__)


def parse_account_status(value: Optional[str]) -> AccountStatusEnum:
    if not value:
        raise ValidationError("Status is required")
    try:
        return AccountStatusEnum(value.strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AccountStatusEnum)
        raise ValidationError(f"Unknown account status '{value}'. Expected one of: {allowed}")


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: str, payload: ProfileUpdateRequest, allow_payment: bool = True) -> User:
        user = await self.get(user_id)
        # Only non-empty values overwrite; notifications may be switched off explicitly
        if payload.full_name:
            user.full_name = payload.full_name
        if payload.phone:
            user.phone = payload.phone
        if payload.profile_picture_url:
            user.profile_picture_url = payload.profile_picture_url
        if allow_payment:
            if payload.payment_method:
                user.payment_method = payload.payment_method
            if payload.notifications_enabled is not None:
                user.notifications_enabled = payload.notifications_enabled
        user.updated_at = datetime.now(timezone.utc)
        await commit(self.db)
        await self.db.refresh(user)
        return user

    async def delete_passenger(self, user_id: str) -> None:
        """Remove a passenger's rides, then the profile and its credentials."""
        await self.db.execute(delete(Ride).where(Ride.passenger_id == user_id))
        await self.db.execute(delete(Message).where(Message.user_id == user_id))
        await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.execute(delete(AuthAccount).where(AuthAccount.id == user_id))
        await commit(self.db)
        logger.info("Deleted passenger user=%s and their rides", user_id)

    # -- driver availability ------------------------------------------------

    async def get_driver_row(self, user_id: str) -> Optional[Driver]:
        result = await self.db.execute(select(Driver).where(Driver.user_id == user_id).limit(1))
        return result.scalar_one_or_none()

    async def set_driver_status(
        self,
        user_id: str,
        is_online: Optional[bool] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Driver:
        driver = await self.get_driver_row(user_id)
        if driver is None:
            raise NotFoundError("Driver not found")
        if is_online is not None:
            driver.is_online = is_online
        if latitude is not None:
            driver.current_latitude = latitude
        if longitude is not None:
            driver.current_longitude = longitude
        await commit(self.db)
        logger.info("Driver user=%s online=%s", user_id, driver.is_online)
        return driver

    async def nearby_drivers(self) -> list[dict]:
        """Online drivers with their public profile. No distance filtering."""
        result = await self.db.execute(
            select(Driver, User)
            .join(User, User.id == Driver.user_id)
            .where(Driver.is_online.is_(True))
        )
        return [
            {
                "id": driver.id,
                "driver_id": driver.user_id,
                "current_latitude": driver.current_latitude,
                "current_longitude": driver.current_longitude,
                "vehicle_plate": driver.vehicle_plate,
                "vehicle_type": driver.vehicle_type,
                "is_online": bool(driver.is_online),
                "full_name": user.full_name,
                "rating": user.rating,
                "total_reviews": user.total_reviews,
                "phone": user.phone,
                "profile_picture_url": user.profile_picture_url,
            }
            for driver, user in result.all()
        ]

    # -- admin moderation ---------------------------------------------------

    async def list_users(self, status: Optional[str] = None, user_type: Optional[str] = None) -> list[User]:
        query = select(User)
        if status:
            query = query.where(User.status == status)
        if user_type:
            query = query.where(User.user_type == user_type)
        result = await self.db.execute(query.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def set_user_status(self, user_id: str, status: Optional[str]) -> User:
        new_status = parse_account_status(status)
        user = await self.get(user_id)
        user.status = new_status.value
        user.updated_at = datetime.now(timezone.utc)
        await commit(self.db)
        await self.db.refresh(user)
        logger.info("User %s status -> %s", user_id, new_status.value)
        return user

    async def list_drivers(self) -> list[tuple[Driver, Optional[User]]]:
        result = await self.db.execute(
            select(Driver, User)
            .outerjoin(User, User.id == Driver.user_id)
            .order_by(Driver.id.desc())
        )
        return [(driver, user) for driver, user in result.all()]

    async def set_driver_account_status(self, driver_row_id: str, status: Optional[str]) -> User:
        """Approve/reject/verify the user behind a ``drivers`` row."""
        new_status = parse_account_status(status)
        driver = await self.db.get(Driver, driver_row_id)
        if driver is None:
            raise NotFoundError("Driver not found")
        return await self.set_user_status(driver.user_id, new_status.value)

    # -- messages -----------------------------------------------------------

    async def send_message(self, user_id: str, subject: Optional[str], message: Optional[str]) -> Message:
        if not message:
            raise ValidationError("Message is required")
        row = Message(user_id=user_id, subject=subject or "Driver message", message=message)
        self.db.add(row)
        await commit(self.db)
        await self.db.refresh(row)
        return row

    async def list_messages(self) -> list[Message]:
        result = await self.db.execute(select(Message).order_by(Message.created_at.desc()))
        return list(result.scalars().all())
