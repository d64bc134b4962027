from datetime import datetime
from typing import Optional, List

from pydantic import field_validator

from kitabayar.schemas.base import CamelModel, blank_to_none
from kitabayar.schemas.bill_type import BillTypeOut
from kitabayar.schemas.bill_period import BillPeriodOut


class BillCategoryBase(CamelModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True

    @field_validator("name", "description", "color", "icon", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return blank_to_none(v)


class BillCategoryCreate(BillCategoryBase):
    pass


class BillCategoryUpdate(BillCategoryBase):
    pass


class BillCategoryOut(BillCategoryBase):
    id: int
    bill_types_count: int = 0
    periods_count: int = 0
    created_at: datetime
    updated_at: datetime


class BillCategoryDetailOut(BillCategoryOut):
    bill_types: List[BillTypeOut] = []
    periods: List[BillPeriodOut] = []
