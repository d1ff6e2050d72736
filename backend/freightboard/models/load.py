"""Load: a shippable job posted by a shipper.

Lifecycle:  posted → assigned → in_transit → delivered_pending → delivered
            (posted | assigned | in_transit | delivered_pending) → cancelled

``carrier_id`` is bound exactly once, when an offer is accepted, and is
non-null only while the load is assigned, in transit, awaiting delivery
confirmation, or delivered.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Date, DateTime, Enum as SAEnum, Float, ForeignKey, Index, JSON, String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freightboard.database import Base
from freightboard.utils.clock import utcnow


class LoadStatus(str, enum.Enum):
    POSTED = "posted"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED_PENDING = "delivered_pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses in which a carrier is bound to the load
CARRIER_BOUND_STATUSES = frozenset({
    LoadStatus.ASSIGNED,
    LoadStatus.IN_TRANSIT,
    LoadStatus.DELIVERED_PENDING,
    LoadStatus.DELIVERED,
})

TERMINAL_STATUSES = frozenset({LoadStatus.DELIVERED, LoadStatus.CANCELLED})


class Load(Base):
    __tablename__ = "loads"
    __table_args__ = (
        Index("ix_loads_shipper_status_posted", "shipper_id", "status", "posted_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    load_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), index=True)

    # ── Parties ──────────────────────────────────────────────
    shipper_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    carrier_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), index=True
    )

    # ── Route ────────────────────────────────────────────────
    # {"address", "city", "state", "zip_code", "latitude", "longitude"}
    origin: Mapped[dict] = mapped_column(JSON, nullable=False)
    destination: Mapped[dict] = mapped_column(JSON, nullable=False)
    distance_miles: Mapped[float | None] = mapped_column(Float)

    # ── Freight ──────────────────────────────────────────────
    # "Full Truckload", "Less Than Truckload", "Partial Load", ...
    load_type: Mapped[str] = mapped_column(String(50), nullable=False)
    # "Dry Van", "Flatbed", "Refrigerated", ...
    equipment_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # {"weight", "length", "width", "height", "pieces", "description",
    #  "special_instructions", "hazmat", "temperature_controlled", ...}
    details: Mapped[dict] = mapped_column(JSON, nullable=False)

    # ── Schedule ─────────────────────────────────────────────
    pickup_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    pickup_time: Mapped[str | None] = mapped_column(String(50))
    delivery_time: Mapped[str | None] = mapped_column(String(50))

    # ── Pricing ──────────────────────────────────────────────
    # Overwritten with the accepted offer's amount at assignment
    rate: Mapped[float] = mapped_column(Float, nullable=False)
    rate_per_mile: Mapped[float | None] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # {"pickup": {"name", "phone", "email"}, "delivery": {...}}
    contact_info: Mapped[dict] = mapped_column(JSON, nullable=False)

    # ── Status ───────────────────────────────────────────────
    status: Mapped[LoadStatus] = mapped_column(
        SAEnum(
            LoadStatus,
            native_enum=False,
            length=30,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=LoadStatus.POSTED,
        nullable=False,
        index=True,
    )
    # Each stamped the first time the matching transition happens, never reset
    posted_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime)
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime)

    # ── Metadata ─────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # ── Relationships ────────────────────────────────────────
    shipper = relationship("User", foreign_keys=[shipper_id], lazy="selectin")
    carrier = relationship("User", foreign_keys=[carrier_id], lazy="selectin")
