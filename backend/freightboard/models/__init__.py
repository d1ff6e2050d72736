"""Aggregate model imports for Alembic auto-detection."""

from freightboard.models.user import User, UserRole  # noqa: F401
from freightboard.models.load import Load, LoadStatus  # noqa: F401
from freightboard.models.offer import Offer, OfferStatus  # noqa: F401
from freightboard.models.chat_message import ChatMessage  # noqa: F401
from freightboard.models.activity_log import ActivityLog  # noqa: F401
