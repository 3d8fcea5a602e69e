from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class UserTypeEnum(str, Enum):
    passenger = "passenger"
    driver = "driver"
    admin = "admin"


class AccountStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    verified = "verified"
    suspended = "suspended"


class RideStatusEnum(str, Enum):
    REQUESTED = "requested"
    PENDING = "pending"
    PAID = "paid"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Auth / profile schemas
# ---------------------------------------------------------------------------
# Required fields are Optional here so that missing ones surface as a 400
# ValidationError from the service layer, matching the other endpoints.

class SignupRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    notifications_enabled: Optional[bool] = None
    vehicle_type: Optional[str] = None
    vehicle_plate: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class PublicUser(BaseModel):
    id: str
    email: str
    full_name: str
    phone: Optional[str] = None
    user_type: UserTypeEnum
    status: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    profile_picture_url: Optional[str] = None
    payment_method: Optional[str] = None
    notifications_enabled: bool = True
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    user: PublicUser


class UserListEnvelope(BaseModel):
    users: list[PublicUser]


class SessionResponse(BaseModel):
    token: str
    refresh_token: str
    user: PublicUser


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    notifications_enabled: Optional[bool] = None
    profile_picture_url: Optional[str] = None


class AccountStatusRequest(BaseModel):
    status: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Driver schemas
# ---------------------------------------------------------------------------

class DriverStatusRequest(BaseModel):
    is_online: Optional[bool] = None
    current_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    current_longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class NearbyDriver(BaseModel):
    id: str
    driver_id: str
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    vehicle_plate: str
    vehicle_type: str
    is_online: bool
    full_name: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    phone: Optional[str] = None
    profile_picture_url: Optional[str] = None


class NearbyDriverListEnvelope(BaseModel):
    drivers: list[NearbyDriver]


class AdminDriver(BaseModel):
    id: str
    user_id: str
    vehicle_type: str
    vehicle_plate: str
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    is_online: bool
    user: Optional[PublicUser] = None


class AdminDriverListEnvelope(BaseModel):
    drivers: list[AdminDriver]


# ---------------------------------------------------------------------------
# Ride schemas
# ---------------------------------------------------------------------------

class RideCreateRequest(BaseModel):
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    driver_id: Optional[str] = None
    status: Optional[str] = None
    fare: Optional[Decimal] = None
    distance: Optional[float] = None
    vehicle_type: Optional[str] = None


class AssignDriverRequest(BaseModel):
    driver_id: Optional[str] = None


class RideStatusUpdateRequest(BaseModel):
    status: Optional[str] = None
    fare: Optional[Decimal] = None
    payment_method: Optional[str] = None


class PaymentRequest(BaseModel):
    fare: Decimal = Field(..., ge=0)
    payment_method: str = "Cash"


class RideOut(BaseModel):
    id: str
    passenger_id: str
    driver_id: Optional[str] = None
    pickup_location: str
    dropoff_location: str
    status: RideStatusEnum
    fare: float
    payment_method: Optional[str] = None
    distance: Optional[float] = None
    vehicle_type: Optional[str] = None
    created_at: datetime
    # Enrichment, filled in by listing endpoints only
    passenger_name: Optional[str] = None
    passenger_avatar: Optional[str] = None
    passenger_phone: Optional[str] = None
    driver_name: Optional[str] = None
    driver_avatar: Optional[str] = None


class RideEnvelope(BaseModel):
    ride: RideOut


class RideListEnvelope(BaseModel):
    rides: list[RideOut]


class PassengerStats(BaseModel):
    totalRides: int
    totalSpent: float
    lastFare: float


class PlatformStats(BaseModel):
    totalUsers: int
    totalDrivers: int
    totalRides: int
    totalRevenue: float


# ---------------------------------------------------------------------------
# Message schemas
# ---------------------------------------------------------------------------

class MessageRequest(BaseModel):
    subject: Optional[str] = None
    message: Optional[str] = None


class MessageOut(BaseModel):
    id: str
    user_id: str
    subject: str
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageEnvelope(BaseModel):
    message: MessageOut


class MessageListEnvelope(BaseModel):
    messages: list[MessageOut]
