"""Load chat router.

Endpoints:
    GET    /api/loads/{id}/chat?since=   Messages after ``since`` (ISO 8601)
    POST   /api/loads/{id}/chat          Append a message
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.deps import get_current_identity
from freightboard.auth.identity import Identity
from freightboard.database import get_db
from freightboard.schemas.chat import ChatMessageCreate, ChatMessageList, ChatMessageOut
from freightboard.services import chat as chat_service

router = APIRouter()


@router.get("/{load_id}/chat", response_model=ChatMessageList)
async def get_chat(
    load_id: str,
    since: datetime | None = None,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    messages = await chat_service.get_messages(db, load_id, identity, since)
    return ChatMessageList(
        messages=[ChatMessageOut.model_validate(m) for m in messages],
        since=since,
    )


@router.post("/{load_id}/chat", response_model=ChatMessageOut, status_code=201)
async def post_chat(
    load_id: str,
    body: ChatMessageCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    message = await chat_service.post_message(db, load_id, identity, body.message)
    return ChatMessageOut.model_validate(message)
