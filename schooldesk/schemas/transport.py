from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from schooldesk.schemas.base import APIModel


class VehicleCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    registration_number: str = Field(..., min_length=1, max_length=40)
    capacity: Optional[int] = Field(None, ge=1)
    fuel_type: Optional[str] = Field(None, max_length=40)
    staff_id: Optional[int] = None


class VehiclePatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    registration_number: Optional[str] = Field(None, min_length=1, max_length=40)
    capacity: Optional[int] = Field(None, ge=1)
    fuel_type: Optional[str] = Field(None, max_length=40)
    staff_id: Optional[int] = None


class DriverAssign(APIModel):
    staff_id: int
    options: Optional[Dict[str, Any]] = None


class RouteCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    fee: Decimal = Field(Decimal("0"), ge=0)
    vehicle_ids: List[int] = Field(default_factory=list)


class RoutePatch(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    fee: Optional[Decimal] = Field(None, ge=0)
    vehicle_ids: Optional[List[int]] = None
