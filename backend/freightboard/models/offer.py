"""Offer: a carrier's bid on a posted load.

At most one row exists per (load_id, carrier_id); the database constraint
is what guarantees it. A resubmission updates the existing row and puts it
back to ``pending``.

Lifecycle:  pending → accepted | rejected
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime, Enum as SAEnum, Float, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freightboard.database import Base
from freightboard.utils.clock import utcnow


class OfferStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = (
        UniqueConstraint("load_id", "carrier_id", name="uq_offers_load_carrier"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    load_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("loads.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    carrier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[OfferStatus] = mapped_column(
        SAEnum(
            OfferStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=OfferStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    load = relationship("Load", lazy="selectin")
    carrier = relationship("User", lazy="selectin")
