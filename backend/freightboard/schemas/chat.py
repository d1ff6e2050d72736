"""Pydantic schemas for load chat."""

from datetime import datetime

from pydantic import BaseModel


class ChatMessageCreate(BaseModel):
    message: str


class ChatMessageOut(BaseModel):
    id: str
    load_id: str
    sender_id: str
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ChatMessageList(BaseModel):
    messages: list[ChatMessageOut]
    since: datetime | None = None
