from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from api.schemas.common import canonical_uuid


class InitiateRfqRequest(BaseModel):
    invited_vendor_ids: List[str] = Field(..., min_length=1)
    deadline: datetime
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("invited_vendor_ids")
    @classmethod
    def dedupe_vendors(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(canonical_uuid(vid) for vid in v))

    @field_validator("deadline", mode="before")
    @classmethod
    def parse_deadline(cls, v):
        # Accepts a bare date ("2026-11-01") as well as ISO 8601 datetimes.
        if isinstance(v, str):
            try:
                v = datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                raise ValueError("Invalid deadline format (use ISO 8601)")
        if isinstance(v, datetime) and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class RfqLineItemResponse(BaseModel):
    id: str
    line_number: int
    name: str
    description: Optional[str] = None
    quantity: int
    unit: str

    model_config = {"from_attributes": True}


class RfqResponse(BaseModel):
    id: str
    rfq_number: str
    material_request_id: str
    project_id: str
    project_name: str
    status: str
    deadline: str
    is_past_deadline: bool
    invited_vendor_ids: List[str] = []
    notes: Optional[str] = None
    created_by: str
    awarded_bid_id: Optional[str] = None
    awarded_vendor_id: Optional[str] = None
    awarded_at: Optional[str] = None
    closed_at: Optional[str] = None
    line_items: List[RfqLineItemResponse] = []
    created_at: str

    model_config = {"from_attributes": True}
