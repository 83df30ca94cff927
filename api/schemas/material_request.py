from datetime import date
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from api.models.material_request import MaterialRequestStatus
from api.schemas.bid import BidResponse
from api.schemas.common import canonical_uuid
from api.schemas.rfq import RfqResponse

Priority = Literal["High", "Medium", "Low"]


class MaterialLine(BaseModel):
    name: str = Field(..., max_length=300)
    spec: str = Field("", max_length=1000)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("material name must not be empty")
        return v


class MaterialRequestCreate(BaseModel):
    project_id: str
    materials: List[MaterialLine] = Field(..., min_length=1, max_length=100)
    required_by: date
    priority: Priority
    notes: Optional[str] = Field(None, max_length=1000)


class MaterialRequestUpdate(BaseModel):
    materials: Optional[List[MaterialLine]] = Field(None, min_length=1, max_length=100)
    required_by: Optional[date] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = Field(None, max_length=1000)


class StatusTransitionRequest(BaseModel):
    status: MaterialRequestStatus
    comment: Optional[str] = Field(None, max_length=500)


class AwardRequest(BaseModel):
    bid_id: str

    @field_validator("bid_id")
    @classmethod
    def canonical_bid_id(cls, v: str) -> str:
        return canonical_uuid(v)


class MaterialRequestResponse(BaseModel):
    id: str
    project_id: str
    project_name: str
    materials: List[MaterialLine] = []
    required_by: str
    priority: str
    status: str
    status_label: str
    requested_by: str
    notes: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class BoardColumn(BaseModel):
    id: str
    title: str
    statuses: List[str]
    requests: List[MaterialRequestResponse] = []


class AwardResponse(BaseModel):
    material_request: MaterialRequestResponse
    rfq: RfqResponse
    bid: BidResponse
