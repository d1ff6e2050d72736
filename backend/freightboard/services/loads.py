"""Load registry.

Owns load rows and their status: posting new loads, role-scoped reads,
guarded updates through the transition guard, and administrative deletion.

Every status or field change is written with one conditional UPDATE keyed
on the status the caller observed, so two requests racing on the same
load cannot both apply. The loser gets PRECONDITION_FAILED and must
reload.
"""

import logging
from datetime import date

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import (
    AdminIdentity,
    CarrierIdentity,
    DriverIdentity,
    Identity,
    ShipperIdentity,
    acts_for_carrier,
)
from freightboard.config import settings
from freightboard.middleware.exceptions import (
    InvalidInputError,
    LoadNotFoundError,
    PreconditionFailedError,
    UnauthorizedError,
)
from freightboard.models.chat_message import ChatMessage
from freightboard.models.load import Load, LoadStatus
from freightboard.models.offer import Offer
from freightboard.schemas.load import LoadCreate
from freightboard.services.offers import reject_pending_offers
from freightboard.services.transition_guard import (
    authorize_edit,
    coerce_status,
    plan_transition,
)
from freightboard.utils.activity import log_activity
from freightboard.utils.clock import utcnow
from freightboard.utils.geo import rate_per_mile, route_distance
from freightboard.utils.locks import LOAD_EDITABLE_FIELDS
from freightboard.utils.numbering import generate_load_number

logger = logging.getLogger(__name__)

# Editable fields that may be cleared with an explicit null
NULLABLE_FIELDS = {"reference_number", "pickup_time", "delivery_time"}


def _validate_schedule(pickup: date, delivery: date, check_pickup: bool = True) -> None:
    if check_pickup and pickup < utcnow().date():
        raise InvalidInputError("Pickup date cannot be in the past")
    if delivery < pickup:
        raise InvalidInputError("Delivery date must be on or after the pickup date")


def _carrier_ids(identity: Identity) -> list[str]:
    """Carrier accounts whose assigned loads this identity may see."""
    if isinstance(identity, CarrierIdentity):
        return [identity.id]
    if isinstance(identity, DriverIdentity):
        return [i for i in (identity.id, identity.carrier_id) if i]
    return []


def can_view_load(load: Load, identity: Identity) -> bool:
    if isinstance(identity, AdminIdentity):
        return True
    if isinstance(identity, ShipperIdentity):
        return load.shipper_id == identity.id
    return load.status == LoadStatus.POSTED or acts_for_carrier(identity, load.carrier_id)


async def require_load(db: AsyncSession, load_id: str) -> Load:
    result = await db.execute(
        select(Load)
        .where(Load.id == load_id)
        .execution_options(populate_existing=True)
    )
    load = result.scalar_one_or_none()
    if load is None:
        raise LoadNotFoundError(load_id)
    return load


# ── Create ───────────────────────────────────────────────────


async def create_load(db: AsyncSession, body: LoadCreate, identity: Identity) -> Load:
    """Post a new load for the calling shipper."""
    if not isinstance(identity, ShipperIdentity):
        raise UnauthorizedError("Only shippers can post loads")

    _validate_schedule(body.pickup_date, body.delivery_date)

    origin = body.origin.model_dump()
    destination = body.destination.model_dump()
    distance = route_distance(origin, destination)

    load = Load(
        load_number=await generate_load_number(db),
        reference_number=body.reference_number,
        shipper_id=identity.id,
        origin=origin,
        destination=destination,
        distance_miles=distance,
        load_type=body.load_type,
        equipment_type=body.equipment_type,
        details=body.details.model_dump(),
        pickup_date=body.pickup_date,
        delivery_date=body.delivery_date,
        pickup_time=body.pickup_time,
        delivery_time=body.delivery_time,
        rate=body.rate,
        rate_per_mile=rate_per_mile(body.rate, distance),
        currency=(body.currency or settings.default_currency).upper(),
        contact_info=body.contact_info.model_dump(),
        status=LoadStatus.POSTED,
        posted_at=utcnow(),
    )
    db.add(load)
    await db.flush()

    await log_activity(
        db, identity,
        action="created", entity_type="load",
        entity_id=load.id, entity_code=load.load_number,
        summary=(
            f"Posted {load.origin['city']}, {load.origin['state']} → "
            f"{load.destination['city']}, {load.destination['state']}"
        ),
    )
    logger.info("Load %s posted by shipper %s", load.load_number, identity.id)
    return load


# ── Read ─────────────────────────────────────────────────────


async def list_loads(
    db: AsyncSession,
    identity: Identity,
    *,
    status: str | None = None,
    equipment_type: str | None = None,
    min_rate: float | None = None,
    max_rate: float | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Load], int]:
    """Loads visible to the caller, most recently posted first.

    Shippers see their own loads; carriers and drivers see the open board
    plus the loads bound to their carrier account; admins see everything.
    """
    query = select(Load)
    if isinstance(identity, ShipperIdentity):
        query = query.where(Load.shipper_id == identity.id)
    elif not isinstance(identity, AdminIdentity):
        query = query.where(
            or_(
                Load.status == LoadStatus.POSTED,
                Load.carrier_id.in_(_carrier_ids(identity)),
            )
        )

    if status:
        query = query.where(Load.status == coerce_status(status))
    if equipment_type:
        query = query.where(Load.equipment_type == equipment_type)
    if min_rate is not None:
        query = query.where(Load.rate >= min_rate)
    if max_rate is not None:
        query = query.where(Load.rate <= max_rate)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await db.execute(
        query.order_by(Load.posted_at.desc())
        .limit(limit).offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def get_load(db: AsyncSession, load_id: str, identity: Identity) -> Load:
    load = await require_load(db, load_id)
    if not can_view_load(load, identity):
        raise UnauthorizedError("You do not have access to this load")
    return load


# ── Update ───────────────────────────────────────────────────


def _plan_edits(load: Load, edits: dict) -> dict:
    """Validate descriptive edits and derive the columns they affect."""
    unknown = set(edits) - set(LOAD_EDITABLE_FIELDS)
    if unknown:
        raise InvalidInputError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
    cleared = {k for k, v in edits.items() if v is None and k not in NULLABLE_FIELDS}
    if cleared:
        raise InvalidInputError(f"Fields cannot be cleared: {', '.join(sorted(cleared))}")

    changes = dict(edits)
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()

    if "pickup_date" in edits or "delivery_date" in edits:
        _validate_schedule(
            edits.get("pickup_date", load.pickup_date),
            edits.get("delivery_date", load.delivery_date),
            check_pickup="pickup_date" in edits,
        )

    distance = load.distance_miles
    if "origin" in edits or "destination" in edits:
        distance = route_distance(
            edits.get("origin", load.origin),
            edits.get("destination", load.destination),
        )
        changes["distance_miles"] = distance
    if "rate" in edits or "distance_miles" in changes:
        changes["rate_per_mile"] = rate_per_mile(edits.get("rate", load.rate), distance)
    return changes


async def transition_load(
    db: AsyncSession,
    load_id: str,
    identity: Identity,
    requested_status: str | None = None,
    edits: dict | None = None,
) -> Load:
    """Apply a status change and/or descriptive edits to one load.

    Raises:
        InvalidInputError        nothing requested, or bad field values
        LoadNotFoundError        no such load
        UnauthorizedError        wrong actor for the change
        IllegalTransitionError   no such transition from the current status
        PreconditionFailedError  fields locked, or the load changed under us
    """
    edits = edits or {}
    if requested_status is None and not edits:
        raise InvalidInputError("Nothing to update: provide a status or fields to edit")

    load = await require_load(db, load_id)
    observed = LoadStatus(load.status)

    changes: dict = {}
    if edits:
        authorize_edit(load, identity, set(edits))
        changes.update(_plan_edits(load, edits))
    if requested_status is not None:
        changes.update(plan_transition(load, requested_status, identity))

    stmt = update(Load).where(Load.id == load.id, Load.status == observed)
    if edits:
        stmt = stmt.where(Load.carrier_id.is_(None))
    result = await db.execute(
        stmt.values(**changes).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise PreconditionFailedError(
            f"Load {load.load_number} changed concurrently; reload and try again"
        )

    new_status = changes.get("status", observed)
    swept = 0
    if new_status == LoadStatus.CANCELLED:
        swept = await reject_pending_offers(db, load.id)

    await db.refresh(load)

    if new_status != observed:
        await log_activity(
            db, identity,
            action="status_changed", entity_type="load",
            entity_id=load.id, entity_code=load.load_number,
            summary=f"{observed.value} → {new_status.value}",
            details={"from": observed.value, "to": new_status.value},
        )
        logger.info(
            "Load %s: %s → %s by %s %s",
            load.load_number, observed.value, new_status.value,
            identity.role.value, identity.id,
        )
        if swept:
            logger.info(
                "Rejected %d pending offers on cancelled load %s", swept, load.load_number,
            )
    if edits:
        await log_activity(
            db, identity,
            action="edited", entity_type="load",
            entity_id=load.id, entity_code=load.load_number,
            summary=f"Edited {', '.join(sorted(edits))}",
        )
    return load


# ── Delete ───────────────────────────────────────────────────


async def delete_load(db: AsyncSession, load_id: str, identity: AdminIdentity) -> None:
    """Administrative removal of a load with its offers and chat."""
    load = await require_load(db, load_id)
    load_number = load.load_number

    offers = await db.execute(delete(Offer).where(Offer.load_id == load.id))
    await db.execute(delete(ChatMessage).where(ChatMessage.load_id == load.id))
    await db.delete(load)
    await db.flush()

    await log_activity(
        db, identity,
        action="deleted", entity_type="load",
        entity_id=load_id, entity_code=load_number,
        summary=f"Deleted load {load_number} ({offers.rowcount} offers)",
    )
    logger.info("Load %s deleted by admin %s", load_number, identity.id)
