"""Offer router.

Endpoints:
    GET    /api/offers/mine          The caller's carrier offers
    PUT    /api/offers/{id}          Accept or reject an offer (shipper)
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.deps import get_current_identity
from freightboard.auth.identity import Identity
from freightboard.database import get_db
from freightboard.schemas.common import PaginatedResponse
from freightboard.schemas.load import LoadOut
from freightboard.schemas.offer import OfferDecision, OfferOut, OfferResolution, OfferWithLoad
from freightboard.services.negotiation import resolve_offer
from freightboard.services.offers import list_my_offers

router = APIRouter()


@router.get("/mine", response_model=PaginatedResponse[OfferWithLoad])
async def my_offers(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    items, total = await list_my_offers(db, identity, limit=limit, offset=offset)
    return PaginatedResponse[OfferWithLoad](
        items=[OfferWithLoad.model_validate(o) for o in items],
        total=total, limit=limit, offset=offset,
    )


@router.put("/{offer_id}", response_model=OfferResolution)
async def decide_offer(
    offer_id: str,
    body: OfferDecision,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Accepting assigns the load and rejects every other pending offer."""
    offer, load = await resolve_offer(db, offer_id, body.status, identity)
    return OfferResolution(
        offer=OfferOut.model_validate(offer),
        load=LoadOut.model_validate(load),
    )
