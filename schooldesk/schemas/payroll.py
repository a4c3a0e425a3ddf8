from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field, model_validator

from schooldesk.schemas.base import APIModel


class PayrollCreate(APIModel):
    staff_id: int
    salary_id: int
    bonus: Decimal = Field(Decimal("0"), ge=0)
    deduction: Decimal = Field(Decimal("0"), ge=0)
    payment_date: date
    description: Optional[str] = Field(None, max_length=1000)


class PayrollPatch(APIModel):
    salary_id: Optional[int] = None
    bonus: Optional[Decimal] = Field(None, ge=0)
    deduction: Optional[Decimal] = Field(None, ge=0)
    payment_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=1000)


class SalaryCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    base_salary: Decimal = Field(..., ge=0)
    description: Optional[str] = None


class SalaryStructureCreate(APIModel):
    salary_id: int
    department_role: str = Field(..., min_length=1, max_length=80)
    amount: Decimal
    effective_date: date


class SalaryAddonCreate(APIModel):
    staff_id: int
    type: Literal["bonus", "allowance", "overtime", "deduction"]
    amount: Decimal = Field(..., ge=0)
    effective_date: date
    recurrence_end_date: Optional[date] = None

    @model_validator(mode="after")
    def end_after_start(self):
        if self.recurrence_end_date and self.recurrence_end_date < self.effective_date:
            raise ValueError("The recurrence end date must be on or after the effective date.")
        return self
