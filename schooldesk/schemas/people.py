from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import EmailStr, Field

from schooldesk.schemas.base import APIModel


class StudentCreate(APIModel):
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    admission_number: str = Field(..., min_length=1, max_length=40)
    gender: Optional[Literal["male", "female", "other"]] = None
    date_of_birth: Optional[date] = None
    class_section_id: Optional[int] = None


class StudentPatch(APIModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=80)
    last_name: Optional[str] = Field(None, min_length=1, max_length=80)
    admission_number: Optional[str] = Field(None, min_length=1, max_length=40)
    gender: Optional[Literal["male", "female", "other"]] = None
    date_of_birth: Optional[date] = None
    class_section_id: Optional[int] = None


class EnrollmentScores(APIModel):
    average_score: Optional[Decimal] = Field(None, ge=0, le=100)
    failed_subjects: int = Field(0, ge=0)


class StaffCreate(APIModel):
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    department_role: Optional[str] = Field(None, max_length=80)
    user_id: Optional[int] = None


class StaffPatch(APIModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=80)
    last_name: Optional[str] = Field(None, min_length=1, max_length=80)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    department_role: Optional[str] = Field(None, max_length=80)
    user_id: Optional[int] = None


class SchoolCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    address: Optional[str] = Field(None, max_length=255)
    contact_number: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None


class SchoolPatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    address: Optional[str] = Field(None, max_length=255)
    contact_number: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
