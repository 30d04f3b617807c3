from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SupportTicketCreateIn(BaseModel):
    subject: str = Field(min_length=4, max_length=180)
    category: str = Field(default="general", min_length=3, max_length=40)
    message: str = Field(min_length=12, max_length=6000)


class SupportTicketStatusUpdateIn(BaseModel):
    status: str = Field(min_length=3, max_length=24)
    resolution_note: str | None = Field(default=None, max_length=6000)


class SupportTicketOut(BaseModel):
    id: int
    user_id: int
    requester_name: str
    requester_email: str
    subject: str
    category: str
    status: str
    message: str
    resolution_note: str | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None
