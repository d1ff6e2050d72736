"""Offer ledger: carrier bids on posted loads.

One row per (load, carrier). The ``uq_offers_load_carrier`` constraint is
what makes that hold under concurrency; the read-before-insert below is
only the fast path. An insert that loses a race trips the constraint
inside a savepoint and is folded into the update path.

Every offer write is tied to the load still being posted. The load row is
locked ``FOR UPDATE`` before it is checked, a resubmission is a conditional
UPDATE, and a fresh insert re-reads the load status inside its savepoint.
An acceptance that commits first turns the write into LOAD_NOT_POSTABLE.
"""

import logging
import math

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import (
    AdminIdentity,
    CarrierIdentity,
    Identity,
    ShipperIdentity,
    hauling_account_id,
)
from freightboard.middleware.exceptions import (
    DuplicateOfferError,
    InvalidAmountError,
    LoadNotFoundError,
    LoadNotPostableError,
    SelfOfferForbiddenError,
    UnauthorizedError,
)
from freightboard.models.load import Load, LoadStatus
from freightboard.models.offer import Offer, OfferStatus
from freightboard.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def _find_offer(db: AsyncSession, load_id: str, carrier_id: str) -> Offer | None:
    result = await db.execute(
        select(Offer)
        .where(Offer.load_id == load_id, Offer.carrier_id == carrier_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _load_is_posted(load_id: str):
    return (
        select(Load.id)
        .where(Load.id == load_id, Load.status == LoadStatus.POSTED)
        .exists()
    )


async def lock_load(db: AsyncSession, load_id: str) -> Load | None:
    """Read a load, holding its row lock until the transaction ends.

    Offer submission and offer resolution both take this lock before
    checking the load, so they serialize on the load row.
    """
    result = await db.execute(
        select(Load)
        .where(Load.id == load_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _resubmit(
    db: AsyncSession, offer: Offer, amount: float, message: str | None,
) -> Offer:
    values = {"amount": amount, "status": OfferStatus.PENDING}
    if message is not None:
        values["message"] = message
    result = await db.execute(
        update(Offer)
        .where(Offer.id == offer.id, _load_is_posted(offer.load_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LoadNotPostableError()
    await db.refresh(offer)
    return offer


def _valid_amount(amount) -> bool:
    if amount is None or isinstance(amount, bool):
        return False
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


async def submit_offer(
    db: AsyncSession,
    load_id: str,
    identity: Identity,
    amount: float | None,
    message: str | None = None,
) -> tuple[Offer, bool]:
    """Create the caller's offer on a posted load, or update the existing one.

    Returns ``(offer, created)``. A resubmission replaces the amount, keeps
    the previous message unless a new one is given, and puts the offer
    back to pending. The load itself is never modified here.
    """
    if not isinstance(identity, CarrierIdentity):
        raise UnauthorizedError("Only carriers can make offers")
    if not _valid_amount(amount):
        raise InvalidAmountError()
    amount = float(amount)

    load = await lock_load(db, load_id)
    if load is None:
        raise LoadNotFoundError(load_id)
    if load.shipper_id == identity.id:
        raise SelfOfferForbiddenError()
    if load.status != LoadStatus.POSTED:
        raise LoadNotPostableError()

    existing = await _find_offer(db, load_id, identity.id)
    if existing is not None:
        offer = await _resubmit(db, existing, amount, message)
        await log_activity(
            db, identity,
            action="offer_updated", entity_type="offer",
            entity_id=offer.id, entity_code=load.load_number,
            summary=f"Updated offer to {amount:,.2f} {load.currency}",
        )
        return offer, False

    offer = Offer(
        load_id=load_id,
        carrier_id=identity.id,
        amount=amount,
        message=message,
        status=OfferStatus.PENDING,
    )
    try:
        async with db.begin_nested():
            db.add(offer)
            await db.flush()
            if not (await db.execute(select(_load_is_posted(load_id)))).scalar():
                raise LoadNotPostableError()
    except IntegrityError:
        logger.info(
            "Concurrent offer insert on load %s by carrier %s; updating instead",
            load.load_number, identity.id,
        )
        existing = await _find_offer(db, load_id, identity.id)
        if existing is None:
            raise DuplicateOfferError()
        return await _resubmit(db, existing, amount, message), False

    await log_activity(
        db, identity,
        action="offer_submitted", entity_type="offer",
        entity_id=offer.id, entity_code=load.load_number,
        summary=f"Offered {amount:,.2f} {load.currency}",
    )
    return offer, True


async def list_offers_for_load(
    db: AsyncSession, load_id: str, identity: Identity,
) -> list[Offer]:
    """All offers on a load, newest first. Owner shipper or admin only."""
    load = await db.get(Load, load_id)
    if load is None:
        raise LoadNotFoundError(load_id)

    is_owner = isinstance(identity, ShipperIdentity) and identity.id == load.shipper_id
    if not (is_owner or isinstance(identity, AdminIdentity)):
        raise UnauthorizedError("Only the load's shipper can view its offers")

    result = await db.execute(
        select(Offer)
        .where(Offer.load_id == load_id)
        .order_by(Offer.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_my_offers(
    db: AsyncSession, identity: Identity, limit: int = 50, offset: int = 0,
) -> tuple[list[Offer], int]:
    """Offers placed by the caller's carrier account, newest first."""
    carrier_id = hauling_account_id(identity)
    if carrier_id is None:
        raise UnauthorizedError("Only carriers and drivers have offers")

    base = select(Offer).where(Offer.carrier_id == carrier_id)
    total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar() or 0
    result = await db.execute(
        base.order_by(Offer.created_at.desc())
        .limit(limit).offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def list_all_offers(
    db: AsyncSession,
    status: OfferStatus | None = None,
    carrier_id: str | None = None,
    shipper_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Offer], int]:
    """Admin oversight listing across every load."""
    query = select(Offer)
    if status is not None:
        query = query.where(Offer.status == status)
    if carrier_id:
        query = query.where(Offer.carrier_id == carrier_id)
    if shipper_id:
        query = query.join(Load, Load.id == Offer.load_id).where(
            Load.shipper_id == shipper_id
        )

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    result = await db.execute(
        query.order_by(Offer.created_at.desc())
        .limit(limit).offset(offset)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def reject_pending_offers(
    db: AsyncSession, load_id: str, except_offer_id: str | None = None,
) -> int:
    """Reject every still-pending offer on a load. Safe to run repeatedly.

    Returns the number of offers moved to rejected.
    """
    stmt = update(Offer).where(
        Offer.load_id == load_id,
        Offer.status == OfferStatus.PENDING,
    )
    if except_offer_id is not None:
        stmt = stmt.where(Offer.id != except_offer_id)
    result = await db.execute(
        stmt.values(status=OfferStatus.REJECTED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
