import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import String, Float, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class Ride(Base):
    __tablename__ = "rides"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    passenger_id: Mapped[str] = mapped_column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    driver_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    pickup_location: Mapped[str] = mapped_column(String, nullable=False)
    dropoff_location: Mapped[str] = mapped_column(String, nullable=False)

    # requested | pending | paid | assigned | accepted | en_route | arrived |
    # completed | cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="requested", index=True)
    fare: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    # Status the ride was in when it became "paid"; cleared once it leaves "paid"
    paid_from: Mapped[str | None] = mapped_column(String(20), nullable=True)
    distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    vehicle_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Set once at insert; rides carry no updated_at
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
        default=lambda: datetime.now(timezone.utc),
    )
