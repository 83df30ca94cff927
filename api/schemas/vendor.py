from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    category: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9 ]{7,20}$")
    rating: Optional[float] = Field(None, ge=0, le=5)
    payment_terms: Optional[str] = Field(None, max_length=200)
    specialization: Optional[str] = Field(None, max_length=200)


class VendorResponse(BaseModel):
    id: str
    name: str
    category: str
    email: str
    phone: Optional[str] = None
    rating: Optional[float] = None
    payment_terms: Optional[str] = None
    specialization: Optional[str] = None
    is_active: bool
    created_at: str

    model_config = {"from_attributes": True}
