from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import Field, model_validator

from schooldesk.schemas.base import APIModel


def _check_range(start, end):
    if start and end and end <= start:
        raise ValueError("The end date must be after the start date.")


# -----------------------------
# Academic sessions
# -----------------------------
class AcademicSessionCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    start_date: date
    end_date: date
    is_current: bool = False

    @model_validator(mode="after")
    def dates_in_order(self):
        _check_range(self.start_date, self.end_date)
        return self


class AcademicSessionPatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: Optional[bool] = None

    @model_validator(mode="after")
    def dates_in_order(self):
        _check_range(self.start_date, self.end_date)
        return self


# -----------------------------
# Terms
# -----------------------------
# Closing and reopening go through their own endpoints.
TermStatus = Literal["pending", "active"]


class TermCreate(APIModel):
    academic_session_id: int
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    start_date: date
    end_date: date
    status: TermStatus = "pending"
    color: Optional[str] = Field(None, max_length=20)

    @model_validator(mode="after")
    def dates_in_order(self):
        _check_range(self.start_date, self.end_date)
        return self


class TermPatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[TermStatus] = None
    color: Optional[str] = Field(None, max_length=20)

    @model_validator(mode="after")
    def dates_in_order(self):
        _check_range(self.start_date, self.end_date)
        return self


class TermReopen(APIModel):
    new_end_date: date
    reason: str = Field(..., min_length=1, max_length=500)


# -----------------------------
# Timetables
# -----------------------------
class TimeTableCreate(APIModel):
    term_id: int
    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    effective_date: Optional[date] = None
    status: Literal["active", "inactive"] = "inactive"
    section_ids: List[int] = Field(default_factory=list)


class TimeTablePatch(APIModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    effective_date: Optional[date] = None
    status: Optional[Literal["active", "inactive"]] = None
    section_ids: Optional[List[int]] = None


# -----------------------------
# Class levels and sections
# -----------------------------
class ClassLevelCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=80)
    sequence: int = Field(..., ge=1)


class ClassSectionCreate(APIModel):
    class_level_id: int
    name: str = Field(..., min_length=1, max_length=80)
