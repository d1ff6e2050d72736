"""Status transition guard: the one place that decides load status changes.

Transition table:

    posted            → assigned           negotiation only (offer acceptance)
    posted            → cancelled          owning shipper
    assigned          → in_transit         assigned carrier / its driver
    in_transit        → delivered_pending  assigned carrier / its driver
    delivered_pending → delivered          owning shipper
    delivered_pending → in_transit         owning shipper (delivery claim rejected)
    assigned | in_transit | delivered_pending → cancelled   owning shipper

``delivered`` and ``cancelled`` are terminal. A carrier never reaches
``delivered`` on its own; the shipper has to confirm it.

The guard is pure: ``plan_transition`` returns the column changes a legal
request implies and raises a typed FreightBoardError otherwise, without
touching the load. Persisting the plan is the caller's job (see
``services.loads.transition_load``).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from freightboard.auth.identity import Identity, ShipperIdentity, acts_for_carrier
from freightboard.middleware.exceptions import (
    IllegalTransitionError,
    InvalidInputError,
    PreconditionFailedError,
    UnauthorizedError,
)
from freightboard.models.load import (
    CARRIER_BOUND_STATUSES,
    TERMINAL_STATUSES,
    Load,
    LoadStatus,
)
from freightboard.models.user import UserRole
from freightboard.utils.clock import utcnow
from freightboard.utils.locks import get_load_locks


class Actor(str, enum.Enum):
    OWNER = "owner"
    ASSIGNED_CARRIER = "assigned_carrier"
    NEGOTIATION = "negotiation"


@dataclass(frozen=True)
class TransitionRule:
    source: LoadStatus
    target: LoadStatus
    actor: Actor
    description: str


TRANSITIONS: tuple[TransitionRule, ...] = (
    TransitionRule(LoadStatus.POSTED, LoadStatus.ASSIGNED, Actor.NEGOTIATION,
                   "assign through offer acceptance"),
    TransitionRule(LoadStatus.POSTED, LoadStatus.CANCELLED, Actor.OWNER,
                   "withdraw the posting"),
    TransitionRule(LoadStatus.ASSIGNED, LoadStatus.IN_TRANSIT, Actor.ASSIGNED_CARRIER,
                   "pick up the freight"),
    TransitionRule(LoadStatus.IN_TRANSIT, LoadStatus.DELIVERED_PENDING, Actor.ASSIGNED_CARRIER,
                   "report delivery"),
    TransitionRule(LoadStatus.DELIVERED_PENDING, LoadStatus.DELIVERED, Actor.OWNER,
                   "confirm delivery"),
    TransitionRule(LoadStatus.DELIVERED_PENDING, LoadStatus.IN_TRANSIT, Actor.OWNER,
                   "reject the delivery claim"),
    TransitionRule(LoadStatus.ASSIGNED, LoadStatus.CANCELLED, Actor.OWNER,
                   "cancel the load"),
    TransitionRule(LoadStatus.IN_TRANSIT, LoadStatus.CANCELLED, Actor.OWNER,
                   "cancel the load"),
    TransitionRule(LoadStatus.DELIVERED_PENDING, LoadStatus.CANCELLED, Actor.OWNER,
                   "cancel the load"),
)

_RULES: dict[tuple[LoadStatus, LoadStatus], TransitionRule] = {
    (rule.source, rule.target): rule for rule in TRANSITIONS
}


def coerce_status(value: LoadStatus | str) -> LoadStatus:
    """Parse a requested status, rejecting unknown values."""
    try:
        return LoadStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in LoadStatus)
        raise InvalidInputError(f"Invalid status {value!r}. Must be one of: {allowed}")


def find_rule(current: LoadStatus, requested: LoadStatus) -> TransitionRule | None:
    return _RULES.get((current, requested))


def authorize_transition(
    current: LoadStatus,
    requested: LoadStatus,
    actor_role: UserRole,
    is_owner: bool,
    is_assigned_carrier: bool,
) -> TransitionRule:
    """Return the matching rule or raise.

    IllegalTransitionError  no row for (current, requested), or a row only
                            negotiation may take
    UnauthorizedError       the row exists but belongs to another actor
    """
    if current in TERMINAL_STATUSES:
        raise IllegalTransitionError(
            f"Load is {current.value}; no further status changes are allowed"
        )

    rule = find_rule(current, requested)
    if rule is None:
        raise IllegalTransitionError(
            f"Cannot move a load from {current.value} to {requested.value}"
        )

    if rule.actor is Actor.NEGOTIATION:
        raise IllegalTransitionError("Loads are assigned only by accepting an offer")

    if rule.actor is Actor.OWNER:
        if actor_role != UserRole.SHIPPER or not is_owner:
            if requested == LoadStatus.DELIVERED:
                raise UnauthorizedError(
                    "Final delivery requires confirmation by the load's shipper"
                )
            raise UnauthorizedError(
                f"Only the shipper who owns this load can {rule.description}"
            )
    elif rule.actor is Actor.ASSIGNED_CARRIER:
        if actor_role not in (UserRole.CARRIER, UserRole.DRIVER) or not is_assigned_carrier:
            raise UnauthorizedError("Only the assigned carrier can update load status")

    return rule


def plan_transition(
    load: Load,
    requested: LoadStatus | str,
    identity: Identity,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Validate ``requested`` for ``identity`` and return the column changes.

    Stamps ``picked_up_at`` the first time the load enters in_transit and
    ``delivered_at`` the first time it is delivered. Cancelling releases
    the carrier binding.
    """
    requested = coerce_status(requested)
    current = LoadStatus(load.status)
    is_owner = isinstance(identity, ShipperIdentity) and identity.id == load.shipper_id

    authorize_transition(
        current,
        requested,
        actor_role=identity.role,
        is_owner=is_owner,
        is_assigned_carrier=acts_for_carrier(identity, load.carrier_id),
    )

    if requested in CARRIER_BOUND_STATUSES and load.carrier_id is None:
        raise PreconditionFailedError(
            f"Load {load.load_number} has no carrier bound; it cannot be {requested.value}"
        )

    now = now or utcnow()
    changes: dict[str, Any] = {"status": requested}
    if requested == LoadStatus.IN_TRANSIT and load.picked_up_at is None:
        changes["picked_up_at"] = now
    elif requested == LoadStatus.DELIVERED and load.delivered_at is None:
        changes["delivered_at"] = now
    elif requested == LoadStatus.CANCELLED:
        changes["carrier_id"] = None
    return changes


def request_transition(
    load: Load,
    requested: LoadStatus | str,
    identity: Identity,
    now: datetime | None = None,
) -> Load:
    """Apply a legal transition to ``load`` in place and return it."""
    changes = plan_transition(load, requested, identity, now)
    for field, value in changes.items():
        setattr(load, field, value)
    return load


def authorize_edit(load: Load, identity: Identity, fields: set[str]) -> None:
    """Descriptive edits: owning shipper only, and only before a carrier is bound."""
    if not isinstance(identity, ShipperIdentity) or identity.id != load.shipper_id:
        raise UnauthorizedError("Only the shipper who owns this load can edit it")

    lock_info = get_load_locks(load)
    conflict = lock_info.check_update(fields)
    if conflict:
        raise PreconditionFailedError(f"{conflict.reason}. {conflict.unlock_hint}")
