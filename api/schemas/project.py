from typing import Optional
from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    client_name: Optional[str] = Field(None, max_length=200)


class ProjectResponse(BaseModel):
    id: str
    name: str
    client_name: Optional[str] = None
    created_at: str

    model_config = {"from_attributes": True}
