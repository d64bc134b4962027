from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase (fullName), Python uses snake_case (full_name)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def blank_to_none(v):
    """Trim strings; blank ones become None."""
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


# Rupiah amounts: Decimal in Python, plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
