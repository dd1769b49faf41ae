"""Lead schemas."""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional


class LeadUpsert(BaseModel):
    """Create a lead, or update status/follow-up/price of the lead with this name."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    status: Literal["pending", "contacted", "interested", "accepted", "close"]
    start_date: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    price: Optional[float] = Field(None, ge=0)


class LeadResponse(BaseModel):
    id: int
    name: str
    start_date: datetime
    next_follow_up: Optional[datetime] = None
    status: str
    price: float
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
