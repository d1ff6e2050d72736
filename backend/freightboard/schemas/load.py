"""Pydantic schemas for posting, reading and updating loads."""

from datetime import date, datetime

from pydantic import BaseModel, Field, computed_field

from freightboard.models.load import LoadStatus


class LoadLocation(BaseModel):
    address: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=50)
    zip_code: str = Field(..., max_length=20)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class LoadDetails(BaseModel):
    weight: float = Field(..., gt=0)
    length: float | None = None
    width: float | None = None
    height: float | None = None
    pieces: int | None = Field(None, ge=1)
    description: str | None = None
    special_instructions: str | None = None
    hazmat: bool = False
    temperature_controlled: bool = False
    temperature_min: float | None = None
    temperature_max: float | None = None


class ContactPerson(BaseModel):
    name: str | None = None
    phone: str | None = None
    email: str | None = None


class ContactInfo(BaseModel):
    pickup: ContactPerson = Field(default_factory=ContactPerson)
    delivery: ContactPerson = Field(default_factory=ContactPerson)


class LoadCreate(BaseModel):
    reference_number: str | None = Field(None, max_length=100)
    origin: LoadLocation
    destination: LoadLocation
    load_type: str = Field(..., max_length=50)
    equipment_type: str = Field(..., max_length=50)
    details: LoadDetails
    pickup_date: date
    delivery_date: date
    pickup_time: str | None = Field(None, max_length=50)
    delivery_time: str | None = Field(None, max_length=50)
    rate: float = Field(..., gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)


class LoadUpdateRequest(BaseModel):
    """PATCH body: a status change, descriptive edits, or both.

    ``status`` is kept as a plain string so unknown values reach the
    transition guard and come back as INVALID_INPUT.
    """
    status: str | None = None

    reference_number: str | None = Field(None, max_length=100)
    origin: LoadLocation | None = None
    destination: LoadLocation | None = None
    load_type: str | None = Field(None, max_length=50)
    equipment_type: str | None = Field(None, max_length=50)
    details: LoadDetails | None = None
    pickup_date: date | None = None
    delivery_date: date | None = None
    pickup_time: str | None = Field(None, max_length=50)
    delivery_time: str | None = Field(None, max_length=50)
    rate: float | None = Field(None, gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    contact_info: ContactInfo | None = None

    def edits(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"status"})


class PartySummary(BaseModel):
    id: str
    full_name: str
    company_name: str | None = None
    email: str
    phone: str | None = None
    mc_number: str | None = None

    model_config = {"from_attributes": True}


class LoadSummary(BaseModel):
    id: str
    load_number: str
    origin: dict
    destination: dict
    equipment_type: str
    pickup_date: date
    delivery_date: date
    rate: float
    currency: str
    status: LoadStatus

    model_config = {"from_attributes": True}


class LoadOut(BaseModel):
    id: str
    load_number: str
    reference_number: str | None
    shipper_id: str
    carrier_id: str | None
    origin: dict
    destination: dict
    distance_miles: float | None
    load_type: str
    equipment_type: str
    details: dict
    pickup_date: date
    delivery_date: date
    pickup_time: str | None
    delivery_time: str | None
    rate: float
    rate_per_mile: float | None
    currency: str
    contact_info: dict
    status: LoadStatus
    posted_at: datetime | None
    assigned_at: datetime | None
    picked_up_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def chat_open(self) -> bool:
        return self.carrier_id is not None and self.status != LoadStatus.DELIVERED


class LoadDetailOut(LoadOut):
    shipper: PartySummary | None = None
    carrier: PartySummary | None = None
