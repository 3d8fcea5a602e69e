"""
Ride status transition table.

Driver progress only moves forward along
requested -> pending -> assigned -> accepted -> en_route -> arrived -> completed
(forward skips allowed). ``paid`` is a payment checkpoint that can be recorded
before or after a driver accepts. The ride remembers the status it was paid
from (``paid_from``) and leaving ``paid`` is checked against that status, so
payment never rewinds driver progress.
``cancelled`` is reachable from every non-terminal state.
"""
from typing import Optional

from app.errors import InvalidTransitionError, ValidationError
from app.schemas.schemas import RideStatusEnum

S = RideStatusEnum

VALID_TRANSITIONS: dict[RideStatusEnum, frozenset[RideStatusEnum]] = {
    S.REQUESTED: frozenset({S.PENDING, S.PAID, S.ASSIGNED, S.ACCEPTED, S.CANCELLED}),
    S.PENDING: frozenset({S.PAID, S.ASSIGNED, S.ACCEPTED, S.CANCELLED}),
    S.ASSIGNED: frozenset({S.PAID, S.ACCEPTED, S.CANCELLED}),
    S.PAID: frozenset({S.ASSIGNED, S.ACCEPTED, S.EN_ROUTE, S.ARRIVED, S.COMPLETED, S.CANCELLED}),
    S.ACCEPTED: frozenset({S.PAID, S.EN_ROUTE, S.ARRIVED, S.COMPLETED, S.CANCELLED}),
    S.EN_ROUTE: frozenset({S.PAID, S.ARRIVED, S.COMPLETED, S.CANCELLED}),
    S.ARRIVED: frozenset({S.PAID, S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.CANCELLED})

# Statuses a ride may be created in
INITIAL_STATUSES = frozenset({S.REQUESTED, S.PENDING})

# Unassigned rides in these statuses are offered to online drivers
OPEN_REQUEST_STATUSES = (S.REQUESTED, S.PENDING)

# Statuses from which a driver may claim a ride
ACCEPTABLE_FROM = frozenset({S.REQUESTED, S.PENDING, S.ASSIGNED, S.PAID, S.ACCEPTED})

# A paid ride may only be claimed if it was paid before the trip started
ACCEPTABLE_PAID_FROM = frozenset({S.REQUESTED, S.PENDING, S.ASSIGNED, S.ACCEPTED})

# Targets each role may write through its own status endpoint
PASSENGER_TARGETS = frozenset({S.PENDING, S.PAID, S.CANCELLED})
DRIVER_TARGETS = frozenset({S.ACCEPTED, S.EN_ROUTE, S.ARRIVED, S.COMPLETED, S.CANCELLED})
ADMIN_TARGETS = frozenset(RideStatusEnum)

ROLE_TARGETS: dict[str, frozenset[RideStatusEnum]] = {
    "passenger": PASSENGER_TARGETS,
    "driver": DRIVER_TARGETS,
    "admin": ADMIN_TARGETS,
}


def parse_status(value: str | None) -> RideStatusEnum:
    """Map a caller-supplied string onto the closed status set."""
    if not value:
        raise ValidationError("Status is required")
    try:
        return RideStatusEnum(value.strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in RideStatusEnum)
        raise ValidationError(f"Unknown status '{value}'. Expected one of: {allowed}")


def is_valid_transition(current: RideStatusEnum, target: RideStatusEnum) -> bool:
    if current == target:
        return True
    return target in VALID_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: RideStatusEnum, target: RideStatusEnum) -> None:
    if not is_valid_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


def progress_of(current: RideStatusEnum, paid_from: Optional[str]) -> RideStatusEnum:
    """The status a paid ride resumes from; other statuses are their own progress."""
    if current == S.PAID and paid_from:
        return RideStatusEnum(paid_from)
    return current


def ensure_progress(current: RideStatusEnum, target: RideStatusEnum, paid_from: Optional[str] = None) -> None:
    """
    Like ensure_transition, but leaving ``paid`` is judged from the status
    the ride was paid from: arrived -> paid -> en_route is rejected while
    accepted -> paid -> completed is allowed.
    """
    if current == S.PAID and target != S.PAID:
        resumed = progress_of(current, paid_from)
        if resumed != S.PAID and target != resumed and target not in VALID_TRANSITIONS[resumed]:
            raise InvalidTransitionError(current.value, target.value)
    ensure_transition(current, target)


def paid_from_after(current: RideStatusEnum, target: RideStatusEnum, paid_from: Optional[str]) -> Optional[str]:
    """Value of ``paid_from`` once a ride moves from ``current`` to ``target``."""
    if target != S.PAID:
        return None
    if current == S.PAID:
        return paid_from
    return current.value
