from app.models.auth_account import AuthAccount
from app.models.user import User
from app.models.driver import Driver
from app.models.ride import Ride
from app.models.message import Message

__all__ = ["AuthAccount", "User", "Driver", "Ride", "Message"]
