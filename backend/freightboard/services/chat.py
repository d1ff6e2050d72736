"""Chat gate for the shipper ↔ carrier conversation on a load.

Chat is open only while a carrier is bound and the load is not yet
delivered. Both reading and posting are refused on a closed chat.
Messages are append-only.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import (
    AdminIdentity,
    Identity,
    ShipperIdentity,
    acts_for_carrier,
)
from freightboard.config import settings
from freightboard.middleware.exceptions import (
    ChatClosedError,
    InvalidInputError,
    LoadNotFoundError,
    UnauthorizedError,
)
from freightboard.models.chat_message import ChatMessage
from freightboard.models.load import Load, LoadStatus
from freightboard.utils.clock import to_naive_utc, utcnow


def is_chat_open(load: Load) -> bool:
    return load.carrier_id is not None and load.status != LoadStatus.DELIVERED


def is_participant(load: Load, identity: Identity) -> bool:
    if isinstance(identity, AdminIdentity):
        return True
    if isinstance(identity, ShipperIdentity):
        return identity.id == load.shipper_id
    return acts_for_carrier(identity, load.carrier_id)


async def open_chat(db: AsyncSession, load_id: str, identity: Identity) -> Load:
    """Return the load if the caller may use its chat right now."""
    load = await db.get(Load, load_id, populate_existing=True)
    if load is None:
        raise LoadNotFoundError(load_id)
    if not is_participant(load, identity):
        raise UnauthorizedError("You are not a participant in this load's chat")
    if not is_chat_open(load):
        if load.carrier_id is None:
            raise ChatClosedError("Chat opens once a carrier is assigned to the load")
        raise ChatClosedError("Chat is closed for delivered loads")
    return load


async def get_messages(
    db: AsyncSession,
    load_id: str,
    identity: Identity,
    since: datetime | None = None,
) -> list[ChatMessage]:
    """Messages on the load in send order, optionally only those after ``since``."""
    await open_chat(db, load_id, identity)

    query = select(ChatMessage).where(ChatMessage.load_id == load_id)
    if since is not None:
        query = query.where(ChatMessage.created_at > to_naive_utc(since))
    result = await db.execute(
        query.order_by(ChatMessage.created_at, ChatMessage.id)
    )
    return list(result.scalars().all())


async def post_message(
    db: AsyncSession, load_id: str, identity: Identity, text: str | None,
) -> ChatMessage:
    await open_chat(db, load_id, identity)

    body = (text or "").strip()
    if not body:
        raise InvalidInputError("Message cannot be empty")
    if len(body) > settings.chat_max_message_length:
        raise InvalidInputError(
            f"Message too long (max {settings.chat_max_message_length} characters)"
        )

    message = ChatMessage(
        load_id=load_id,
        sender_id=identity.id,
        message=body,
        created_at=utcnow(),
    )
    db.add(message)
    await db.flush()
    return message
