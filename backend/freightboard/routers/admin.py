"""Admin-only router for marketplace oversight.

Endpoints:
    GET    /api/admin/offers              Every offer, filterable
    GET    /api/admin/activity            Activity log
    DELETE /api/admin/loads/{load_id}     Remove a load with its offers and chat
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.deps import require_admin
from freightboard.auth.identity import AdminIdentity
from freightboard.database import get_db
from freightboard.models.activity_log import ActivityLog
from freightboard.models.offer import OfferStatus
from freightboard.schemas.admin import ActivityEntry, ActivityListResponse
from freightboard.schemas.common import PaginatedResponse
from freightboard.schemas.offer import OfferWithLoad
from freightboard.services.loads import delete_load
from freightboard.services.offers import list_all_offers

router = APIRouter()


@router.get("/offers", response_model=PaginatedResponse[OfferWithLoad])
async def list_offers(
    status: OfferStatus | None = Query(None),
    carrier_id: str | None = Query(None),
    shipper_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: AdminIdentity = Depends(require_admin),
):
    items, total = await list_all_offers(
        db, status=status, carrier_id=carrier_id, shipper_id=shipper_id,
        limit=limit, offset=offset,
    )
    return PaginatedResponse[OfferWithLoad](
        items=[OfferWithLoad.model_validate(o) for o in items],
        total=total, limit=limit, offset=offset,
    )


@router.get("/activity", response_model=ActivityListResponse)
async def list_activity(
    entity_type: str | None = Query(None),
    action: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _admin: AdminIdentity = Depends(require_admin),
):
    """List activity log entries with optional filters."""
    query = select(ActivityLog)
    count_query = select(func.count()).select_from(ActivityLog)

    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
        count_query = count_query.where(ActivityLog.entity_type == entity_type)
    if action:
        query = query.where(ActivityLog.action == action)
        count_query = count_query.where(ActivityLog.action == action)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(
        query.order_by(ActivityLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    items = [ActivityEntry.model_validate(a) for a in result.scalars().all()]
    return ActivityListResponse(items=items, total=total)


@router.delete("/loads/{load_id}", status_code=204)
async def remove_load(
    load_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminIdentity = Depends(require_admin),
):
    await delete_load(db, load_id, admin)
