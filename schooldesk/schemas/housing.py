from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from schooldesk.schemas.base import APIModel

HostelType = Literal["boys", "girls", "mixed"]


class HostelCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: Optional[HostelType] = None
    capacity: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    warden_id: Optional[int] = None


class HostelPatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    type: Optional[HostelType] = None
    capacity: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    warden_id: Optional[int] = None
