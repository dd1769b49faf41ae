"""Billing and billing ID schemas."""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional

BillingStatusValue = Literal["pending", "inprogress", "completed"]


class BillingCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    task_name: str = Field(..., min_length=1, max_length=200)
    billing_id: str = Field(..., min_length=1, max_length=200)
    total_hours: float = Field(..., ge=0)
    status: BillingStatusValue = "pending"


class BillingStatusUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    billing_id: int
    status: BillingStatusValue


class BillingResponse(BaseModel):
    id: int
    task_name: str
    billing_id: str
    total_hours: float
    status: str
    created_at: datetime
    created_by: Optional[str] = None


class BillingIDCreate(BaseModel):
    name: str = Field(..., max_length=200)


class BillingIDResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
