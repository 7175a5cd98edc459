from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)
    on_click_link: str | None = Field(default=None, max_length=2048)


class MessageAccepted(BaseModel):
    message_id: str


class MessageStatsRead(BaseModel):
    domain: str
    message_id: str
    sent: int
    delivered: int
    not_delivered: int

    model_config = {"from_attributes": True}


class BroadcastMessage(BaseModel):
    """브로드캐스트 1회 호출마다 생성되는 메시지. 생성 이후 변경하지 않는다."""

    message_id: str
    domain: str
    title: str
    body: str
    on_click_link: str | None = None
    created_at: datetime

    model_config = {"frozen": True}
