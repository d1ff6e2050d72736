"""Negotiation coordinator: turns a shipper's decision on one offer into a
consistent load + offer-set state.

Accepting runs in the request transaction as three steps:

  1. claim the load: UPDATE loads ... WHERE id = :id AND status = 'posted'
  2. mark the chosen offer accepted
  3. reject every other pending offer on the load

Step 1 is the serialization point. Of two acceptances racing on the same
load exactly one UPDATE matches a row; the other sees rowcount 0 and fails
with LOAD_ALREADY_ASSIGNED before touching any offer. A rejection is
likewise a conditional UPDATE that matches nothing once the offer was
accepted or the load was claimed. Both paths first lock the load row, the
same lock offer submission takes.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import Identity, ShipperIdentity
from freightboard.middleware.exceptions import (
    InvalidDecisionError,
    LoadAlreadyAssignedError,
    LoadNotFoundError,
    OfferNotFoundError,
    UnauthorizedError,
)
from freightboard.models.load import Load, LoadStatus
from freightboard.models.offer import Offer, OfferStatus
from freightboard.services.offers import lock_load, reject_pending_offers
from freightboard.utils.activity import log_activity
from freightboard.utils.clock import utcnow
from freightboard.utils.geo import rate_per_mile

logger = logging.getLogger(__name__)

DECISIONS = {
    OfferStatus.ACCEPTED.value: OfferStatus.ACCEPTED,
    OfferStatus.REJECTED.value: OfferStatus.REJECTED,
}


def coerce_decision(decision: str | None) -> OfferStatus:
    try:
        return DECISIONS[decision]
    except (KeyError, TypeError):
        raise InvalidDecisionError(str(decision))


async def assign_load_if_posted(db: AsyncSession, load: Load, offer: Offer) -> bool:
    """Compare-and-swap the load from posted to assigned for ``offer``'s carrier.

    Returns False when another transaction got there first.
    """
    result = await db.execute(
        update(Load)
        .where(
            Load.id == load.id,
            Load.status == LoadStatus.POSTED,
            Load.carrier_id.is_(None),
        )
        .values(
            status=LoadStatus.ASSIGNED,
            carrier_id=offer.carrier_id,
            assigned_at=utcnow(),
            rate=offer.amount,
            rate_per_mile=rate_per_mile(offer.amount, load.distance_miles),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def reject_offer_if_open(db: AsyncSession, offer: Offer) -> bool:
    """Reject ``offer`` unless it was accepted or its load left ``posted``.

    Returns False when a competing acceptance committed first.
    """
    load_posted = (
        select(Load.id)
        .where(Load.id == offer.load_id, Load.status == LoadStatus.POSTED)
        .exists()
    )
    result = await db.execute(
        update(Offer)
        .where(
            Offer.id == offer.id,
            Offer.status != OfferStatus.ACCEPTED,
            load_posted,
        )
        .values(status=OfferStatus.REJECTED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def resolve_offer(
    db: AsyncSession,
    offer_id: str,
    decision: str,
    identity: Identity,
) -> tuple[Offer, Load]:
    """Accept or reject an offer on the caller's own posted load."""
    outcome = coerce_decision(decision)

    if not isinstance(identity, ShipperIdentity):
        raise UnauthorizedError("Only shippers can accept or reject offers")

    offer = await db.get(Offer, offer_id, populate_existing=True)
    if offer is None:
        raise OfferNotFoundError(offer_id)

    load = await lock_load(db, offer.load_id)
    if load is None:
        raise LoadNotFoundError(offer.load_id)
    if load.shipper_id != identity.id:
        raise UnauthorizedError("You can only manage offers on your own loads")
    if load.status != LoadStatus.POSTED:
        raise LoadAlreadyAssignedError(LoadStatus(load.status).value)
    await db.refresh(offer)

    if outcome == OfferStatus.REJECTED:
        if not await reject_offer_if_open(db, offer):
            await db.refresh(load)
            raise LoadAlreadyAssignedError(LoadStatus(load.status).value)
        await db.refresh(offer)
        await log_activity(
            db, identity,
            action="offer_rejected", entity_type="offer",
            entity_id=offer.id, entity_code=load.load_number,
            summary=f"Rejected offer of {offer.amount:,.2f} {load.currency}",
        )
        return offer, load

    if not await assign_load_if_posted(db, load, offer):
        await db.refresh(load)
        logger.info(
            "Lost assignment race on load %s for offer %s", load.load_number, offer.id,
        )
        raise LoadAlreadyAssignedError(LoadStatus(load.status).value)

    offer.status = OfferStatus.ACCEPTED
    await db.flush()
    swept = await reject_pending_offers(db, load.id, except_offer_id=offer.id)
    await db.refresh(load)

    await log_activity(
        db, identity,
        action="offer_accepted", entity_type="offer",
        entity_id=offer.id, entity_code=load.load_number,
        summary=f"Accepted {offer.amount:,.2f} {load.currency} from carrier {offer.carrier_id}",
        details={"rejected_siblings": swept},
    )
    logger.info(
        "Load %s assigned to carrier %s at %.2f (%d competing offers rejected)",
        load.load_number, offer.carrier_id, offer.amount, swept,
    )
    return offer, load
