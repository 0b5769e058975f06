"""Load lifecycle transitions.

DRAFT -> POSTED -> (SEARCHING | OFFERED) -> ASSIGNED -> PICKUP_PENDING
      -> IN_TRANSIT -> DELIVERED -> COMPLETED

IN_TRANSIT cannot be cancelled directly; it has to go through EXCEPTION.
CANCELLED is terminal, COMPLETED only reopens into EXCEPTION.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from freightfee.services.permissions import Role, parse_role


class LoadStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    SEARCHING = "SEARCHING"
    OFFERED = "OFFERED"
    ASSIGNED = "ASSIGNED"
    PICKUP_PENDING = "PICKUP_PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    EXCEPTION = "EXCEPTION"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    UNPOSTED = "UNPOSTED"


S = LoadStatus

VALID_TRANSITIONS: dict[LoadStatus, tuple[LoadStatus, ...]] = {
    S.DRAFT: (S.POSTED, S.CANCELLED),
    S.POSTED: (S.SEARCHING, S.OFFERED, S.ASSIGNED, S.UNPOSTED, S.CANCELLED, S.EXPIRED),
    S.SEARCHING: (S.OFFERED, S.ASSIGNED, S.EXCEPTION, S.CANCELLED, S.EXPIRED),
    S.OFFERED: (S.ASSIGNED, S.SEARCHING, S.EXCEPTION, S.CANCELLED, S.EXPIRED),
    S.ASSIGNED: (S.PICKUP_PENDING, S.IN_TRANSIT, S.EXCEPTION, S.CANCELLED),
    S.PICKUP_PENDING: (S.IN_TRANSIT, S.EXCEPTION, S.CANCELLED),
    S.IN_TRANSIT: (S.DELIVERED, S.EXCEPTION),
    S.DELIVERED: (S.COMPLETED, S.EXCEPTION),
    S.COMPLETED: (S.EXCEPTION,),
    S.EXCEPTION: (S.SEARCHING, S.ASSIGNED, S.IN_TRANSIT, S.PICKUP_PENDING, S.CANCELLED, S.COMPLETED),
    S.CANCELLED: (),
    S.EXPIRED: (S.POSTED, S.CANCELLED),
    S.UNPOSTED: (S.POSTED, S.CANCELLED),
}

ROLE_PERMISSIONS: dict[Role, frozenset[LoadStatus]] = {
    Role.SHIPPER: frozenset({S.DRAFT, S.POSTED, S.CANCELLED, S.UNPOSTED, S.COMPLETED}),
    Role.CARRIER: frozenset({S.ASSIGNED, S.PICKUP_PENDING, S.IN_TRANSIT, S.DELIVERED, S.EXCEPTION}),
    Role.DISPATCHER: frozenset({S.SEARCHING, S.OFFERED, S.ASSIGNED, S.EXCEPTION, S.CANCELLED}),
    Role.ADMIN: frozenset(LoadStatus),
    Role.SUPER_ADMIN: frozenset(LoadStatus),
}

_DESCRIPTIONS: dict[LoadStatus, str] = {
    S.DRAFT: "Load created but not yet posted to the marketplace",
    S.POSTED: "Load is visible on the marketplace",
    S.SEARCHING: "Dispatch is actively searching for a truck",
    S.OFFERED: "Load has been offered to a carrier",
    S.ASSIGNED: "A truck has been assigned to the load",
    S.PICKUP_PENDING: "Truck is on its way to pickup",
    S.IN_TRANSIT: "Load is in transit to the delivery location",
    S.DELIVERED: "Load delivered, awaiting POD",
    S.COMPLETED: "Trip completed and POD verified; fees settled",
    S.EXCEPTION: "Trip has an exception that needs resolution",
    S.CANCELLED: "Load was cancelled",
    S.EXPIRED: "Posting expired without assignment",
    S.UNPOSTED: "Load was taken off the marketplace",
}


@dataclass
class TransitionCheck:
    valid: bool
    error: str | None = None


def _parse_status(value: str | LoadStatus) -> LoadStatus | None:
    try:
        return LoadStatus(value)
    except ValueError:
        return None


def _value(item: object) -> str:
    return item.value if isinstance(item, enum.Enum) else str(item)


def is_valid_transition(current: str | LoadStatus, new: str | LoadStatus) -> bool:
    current_status = _parse_status(current)
    new_status = _parse_status(new)
    if current_status is None or new_status is None:
        return False
    return new_status in VALID_TRANSITIONS.get(current_status, ())


def can_role_set_status(role: str | Role | None, status: str | LoadStatus) -> bool:
    parsed_role = parse_role(role)
    parsed_status = _parse_status(status)
    if parsed_role is None or parsed_status is None:
        return False
    return parsed_status in ROLE_PERMISSIONS.get(parsed_role, frozenset())


def get_valid_next_states(current: str | LoadStatus) -> list[LoadStatus]:
    current_status = _parse_status(current)
    if current_status is None:
        return []
    return list(VALID_TRANSITIONS.get(current_status, ()))


def validate_state_transition(
    current: str | LoadStatus,
    new: str | LoadStatus,
    role: str | Role | None,
) -> TransitionCheck:
    current_value = _value(current)
    new_value = _value(new)
    if not is_valid_transition(current, new):
        allowed = ", ".join(status.value for status in get_valid_next_states(current)) or "none"
        return TransitionCheck(
            valid=False,
            error=f"Invalid transition from {current_value} to {new_value}. Valid next states: {allowed}",
        )
    if not can_role_set_status(role, new):
        return TransitionCheck(valid=False, error=f"{_value(role)} cannot set status {new_value}")
    return TransitionCheck(valid=True)


def get_status_description(status: str | LoadStatus) -> str:
    parsed = _parse_status(status)
    if parsed is None:
        return "Unknown status"
    return _DESCRIPTIONS[parsed]
