"""Pydantic schemas for offers and offer decisions."""

from datetime import datetime

from pydantic import BaseModel, Field

from freightboard.models.offer import OfferStatus
from freightboard.schemas.load import LoadOut, LoadSummary, PartySummary


class OfferCreate(BaseModel):
    # Checked by the ledger so a bad amount is reported as INVALID_AMOUNT
    amount: float | None = None
    message: str | None = Field(None, max_length=2000)


class OfferDecision(BaseModel):
    status: str


class OfferOut(BaseModel):
    id: str
    load_id: str
    carrier_id: str
    amount: float
    message: str | None
    status: OfferStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OfferWithCarrier(OfferOut):
    carrier: PartySummary


class OfferWithLoad(OfferOut):
    load: LoadSummary


class OfferResolution(BaseModel):
    offer: OfferOut
    load: LoadOut
