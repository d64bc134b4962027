from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from kitabayar.schemas.base import CamelModel, Money, blank_to_none


class BillTypeBase(CamelModel):
    category_id: int
    name: str
    description: Optional[str] = None
    base_amount: Money = Field(ge=0)
    is_active: bool = True

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class BillTypeCreate(BillTypeBase):
    pass


class BillTypeUpdate(BillTypeBase):
    pass


class BillTypeOut(BillTypeBase):
    id: int
    created_at: datetime
    updated_at: datetime
