import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from freightboard.database import Base
from freightboard.utils.clock import utcnow


class UserRole(str, enum.Enum):
    SHIPPER = "shipper"
    CARRIER = "carrier"
    DRIVER = "driver"
    ADMIN = "admin"


class User(Base):
    """Marketplace account.

    Registration and password login live outside this service; rows here
    are only read to resolve the bearer token into an identity.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    company_name: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(20))

    # Carriers: FMCSA motor-carrier number shown to shippers on offers
    mc_number: Mapped[str | None] = mapped_column(String(20))

    # Drivers: the carrier account they haul for (null = independent)
    carrier_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id")
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )
