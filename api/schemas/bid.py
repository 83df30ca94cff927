from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from api.models.bid import PricingMode
from api.schemas.common import canonical_uuid


class BidLinePrice(BaseModel):
    rfq_item_id: str
    unit_price_cents: int = Field(..., ge=0)
    remarks: Optional[str] = Field(None, max_length=500)

    @field_validator("rfq_item_id")
    @classmethod
    def canonical_item_id(cls, v: str) -> str:
        return canonical_uuid(v)


class BidSubmit(BaseModel):
    """Vendor quotation against an RFQ.

    Both ``items`` and ``lumpsum_cents`` may be filled in; ``pricing_mode``
    decides which one is used and the other is ignored.
    """

    vendor_id: Optional[str] = None
    pricing_mode: PricingMode = PricingMode.ITEMIZED
    items: List[BidLinePrice] = []
    lumpsum_cents: Optional[int] = Field(None, ge=1)
    delivery_timeline: str = Field(..., min_length=1, max_length=100)
    payment_terms: Optional[str] = Field(None, max_length=200)
    warranty: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("vendor_id")
    @classmethod
    def canonical_vendor_id(cls, v: Optional[str]) -> Optional[str]:
        return canonical_uuid(v) if v else None

    @model_validator(mode="after")
    def check_mode_values(self):
        if self.pricing_mode == PricingMode.ITEMIZED and not self.items:
            raise ValueError("itemized bids need a unit price for each RFQ item")
        if self.pricing_mode == PricingMode.LUMPSUM and self.lumpsum_cents is None:
            raise ValueError("lumpsum bids need lumpsum_cents")
        return self


class BidLineItemResponse(BaseModel):
    rfq_item_id: str
    quantity: int
    unit_price_cents: int
    total_cents: int
    remarks: Optional[str] = None

    model_config = {"from_attributes": True}


class BidResponse(BaseModel):
    id: str
    rfq_id: str
    vendor_id: str
    vendor_name: str
    pricing_mode: str
    revision: int
    submitted_at: str
    validity_date: str
    items: List[BidLineItemResponse] = []
    total_cents: int
    delivery_timeline: str
    payment_terms: Optional[str] = None
    warranty: Optional[str] = None
    status: str
    notes: Optional[str] = None
    is_updated: bool
    is_current: Optional[bool] = None

    model_config = {"from_attributes": True}


class LowestBidResponse(BaseModel):
    rfq_id: str
    bidder_count: int
    lowest: Optional[BidResponse] = None


class ComparativeStatementRow(BaseModel):
    bid: BidResponse
    vendor_category: Optional[str] = None
    vendor_rating: Optional[float] = None
    is_current: bool
    l_rank: Optional[int] = None


class ComparativeStatementResponse(BaseModel):
    rfq_id: str
    rfq_number: str
    material_request_id: str
    project_name: str
    rfq_status: str
    item_count: int
    bidder_count: int
    lowest_bid_id: Optional[str] = None
    lowest_total_cents: Optional[int] = None
    top_rated_vendor_id: Optional[str] = None
    awarded_bid_id: Optional[str] = None
    rows: List[ComparativeStatementRow] = []
