"""Pydantic schemas for admin oversight endpoints."""

from datetime import datetime

from pydantic import BaseModel


class ActivityEntry(BaseModel):
    id: str
    user_id: str
    role: str
    action: str
    entity_type: str
    entity_id: str | None = None
    entity_code: str | None = None
    summary: str | None = None
    details: dict | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ActivityListResponse(BaseModel):
    items: list[ActivityEntry]
    total: int
