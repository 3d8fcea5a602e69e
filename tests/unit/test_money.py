"""
Unit tests for fare handling and ride serialisation.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.errors import ValidationError
from app.models.ride import Ride
from app.services.ride_lifecycle import ride_to_dict, to_money


class TestToMoney:
    def test_quantises_to_cents(self):
        assert to_money(120) == Decimal("120.00")
        assert to_money("99.999") == Decimal("100.00")
        assert to_money(Decimal("0.125")) == Decimal("0.13")

    def test_float_input_does_not_drift(self):
        assert to_money(0.1) + to_money(0.2) == Decimal("0.30")

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="negative"):
            to_money(-1)

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError, match="Invalid fare"):
            to_money("ten pesos")


class TestRideToDict:
    def test_fare_is_plain_number_and_extras_merge(self):
        ride = Ride(
            id="r1",
            passenger_id="p1",
            driver_id=None,
            pickup_location="Mall A",
            dropoff_location="Office B",
            status="requested",
            fare=Decimal("120.50"),
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        data = ride_to_dict(ride, passenger_name="Ana")
        assert data["fare"] == 120.5
        assert data["driver_id"] is None
        assert data["passenger_name"] == "Ana"
