import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    BigInteger,
    Boolean,
    Integer,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base


class PricingMode(str, enum.Enum):
    ITEMIZED = "itemized"
    LUMPSUM = "lumpsum"


class BidStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    SHORTLISTED = "SHORTLISTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Bid(Base):
    """One submission by a vendor against an RFQ.

    Rows are insert-only. A re-submission is a new row with the next
    ``revision`` for the same (rfq_id, vendor_id); the pair's current bid is
    the latest one (see ``api.services.bid_evaluation.current_bids``).
    """

    __tablename__ = "bids"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    rfq_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("rfqs.id"), nullable=False
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False
    )
    vendor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    pricing_mode: Mapped[str] = mapped_column(String(10), nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    validity_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivery_timeline: Mapped[str] = mapped_column(String(100), nullable=False)
    payment_terms: Mapped[Optional[str]] = mapped_column(String(200))
    warranty: Mapped[Optional[str]] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default=BidStatus.SUBMITTED.value)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_updated: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_by: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "rfq_id", "vendor_id", "revision", name="uq_bid_vendor_revision"
        ),
        CheckConstraint(
            "pricing_mode IN ('itemized','lumpsum')", name="chk_bid_pricing_mode"
        ),
        CheckConstraint("total_cents >= 0", name="chk_bid_total"),
        Index("idx_bids_rfq", "rfq_id"),
        Index("idx_bids_vendor", "vendor_id"),
    )


class BidLineItem(Base):
    __tablename__ = "bid_line_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    bid_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bids.id", ondelete="CASCADE"),
        nullable=False,
    )
    rfq_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("rfq_line_items.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("bid_id", "rfq_item_id", name="uq_bid_line_item"),
        CheckConstraint("unit_price_cents >= 0", name="chk_bid_line_price"),
        Index("idx_bid_items_bid", "bid_id"),
    )
