"""
Error taxonomy shared by services and routers.

Services raise these; ``app.main`` maps them to HTTP responses of the form
``{"detail": "<message>"}``. Nothing in the codebase retries on any of them.
"""
from fastapi import status


class RideHailingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RideHailingError):
    """Missing or malformed input, rejected before touching the store."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(RideHailingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(RideHailingError):
    """Wrong role, or the actor does not own / is not assigned the row."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(RideHailingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(RideHailingError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move ride from {current} to {target}")


class StoreError(RideHailingError):
    """Persistence failure; the underlying message is surfaced verbatim."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Store operation failed"
