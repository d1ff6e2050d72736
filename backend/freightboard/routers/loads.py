"""Load board router.

Endpoints:
    POST   /api/loads/                     Post a load (shipper)
    GET    /api/loads/                     List loads visible to the caller
    GET    /api/loads/{id}                 Load detail with parties
    PATCH  /api/loads/{id}                 Status change and/or field edits
    POST   /api/loads/{id}/offers          Submit or update an offer (carrier)
    GET    /api/loads/{id}/offers          Offers on a load (owner / admin)
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.deps import get_current_identity
from freightboard.auth.identity import Identity
from freightboard.database import get_db
from freightboard.schemas.common import PaginatedResponse
from freightboard.schemas.load import LoadCreate, LoadDetailOut, LoadOut, LoadUpdateRequest
from freightboard.schemas.offer import OfferCreate, OfferOut, OfferWithCarrier
from freightboard.services import loads as load_service
from freightboard.services import offers as offer_service

router = APIRouter()


@router.post("/", response_model=LoadOut, status_code=201)
async def create_load(
    body: LoadCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    load = await load_service.create_load(db, body, identity)
    return LoadOut.model_validate(load)


@router.get("/", response_model=PaginatedResponse[LoadOut])
async def list_loads(
    status: str | None = None,
    equipment_type: str | None = None,
    min_rate: float | None = None,
    max_rate: float | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Role-scoped load listing with optional filters."""
    items, total = await load_service.list_loads(
        db, identity,
        status=status, equipment_type=equipment_type,
        min_rate=min_rate, max_rate=max_rate,
        limit=limit, offset=offset,
    )
    return PaginatedResponse[LoadOut](
        items=[LoadOut.model_validate(load) for load in items],
        total=total, limit=limit, offset=offset,
    )


@router.get("/{load_id}", response_model=LoadDetailOut)
async def get_load(
    load_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    load = await load_service.get_load(db, load_id, identity)
    return LoadDetailOut.model_validate(load)


@router.patch("/{load_id}", response_model=LoadOut)
async def update_load(
    load_id: str,
    body: LoadUpdateRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Move a load through its lifecycle or edit its descriptive fields."""
    load = await load_service.transition_load(
        db, load_id, identity,
        requested_status=body.status,
        edits=body.edits(),
    )
    return LoadOut.model_validate(load)


@router.post("/{load_id}/offers", response_model=OfferOut, status_code=201)
async def submit_offer(
    load_id: str,
    body: OfferCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """201 for a new offer, 200 when the carrier's existing offer was updated."""
    offer, created = await offer_service.submit_offer(
        db, load_id, identity, body.amount, body.message,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return OfferOut.model_validate(offer)


@router.get("/{load_id}/offers", response_model=list[OfferWithCarrier])
async def list_offers(
    load_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    offers = await offer_service.list_offers_for_load(db, load_id, identity)
    return [OfferWithCarrier.model_validate(o) for o in offers]
