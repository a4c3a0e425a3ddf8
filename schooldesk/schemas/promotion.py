from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from schooldesk.schemas.base import APIModel


class PromotionApprove(APIModel):
    comments: Optional[str] = Field(None, max_length=1000)


class PromotionReject(APIModel):
    comments: str = Field(..., min_length=1, max_length=1000)


class PromotionOverride(APIModel):
    student_ids: List[int] = Field(..., min_length=1)
    decision: Literal["promote", "repeat", "probation", "graduated"]
    reason: Optional[str] = Field(None, max_length=500)
