from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from schooldesk.schemas.base import APIModel

NoticeType = Literal["Announcement", "Alert", "Reminder"]


class NoticeCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    type: NoticeType = "Announcement"
    is_public: bool = False
    published_at: Optional[datetime] = None
    recipient_ids: Optional[List[int]] = None


class NoticePatch(APIModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    type: Optional[NoticeType] = None
    is_public: Optional[bool] = None
    published_at: Optional[datetime] = None
