from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field

from schooldesk.schemas.base import APIModel

USERNAME_PATTERN = r"^[\w.@+-]{3,}$"


class LoginRequest(APIModel):
    username: str = Field(..., pattern=USERNAME_PATTERN, max_length=80)
    password: str = Field(..., min_length=1)


class RegisterRequest(APIModel):
    username: str = Field(..., pattern=USERNAME_PATTERN, max_length=80)
    password: str = Field(..., min_length=8)
    role: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    school_id: Optional[int] = None


class MaintenanceToggle(APIModel):
    school_id: int
    locked: bool
    reason: Optional[str] = Field(None, max_length=255)
