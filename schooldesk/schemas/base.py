from typing import List
from pydantic import BaseModel, ConfigDict, Field


class APIModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class IdList(APIModel):
    ids: List[int] = Field(..., min_length=1)


class BulkDelete(IdList):
    force: bool = False
