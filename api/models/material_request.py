import enum
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String,
    Date,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base


class MaterialRequestStatus(str, enum.Enum):
    RFQ_PENDING = "RFQ_PENDING"
    BIDDING_OPEN = "BIDDING_OPEN"
    UNDER_EVALUATION = "UNDER_EVALUATION"
    NEGOTIATION = "NEGOTIATION"
    PO_READY = "PO_READY"
    ORDER_PLACED = "ORDER_PLACED"
    DELIVERED = "DELIVERED"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    MaterialRequestStatus.RFQ_PENDING: "RFQ Pending",
    MaterialRequestStatus.BIDDING_OPEN: "Bidding Open",
    MaterialRequestStatus.UNDER_EVALUATION: "Under Evaluation",
    MaterialRequestStatus.NEGOTIATION: "Negotiation",
    MaterialRequestStatus.PO_READY: "PO Ready",
    MaterialRequestStatus.ORDER_PLACED: "Order Placed",
    MaterialRequestStatus.DELIVERED: "Delivered",
}

PRIORITIES = ("High", "Medium", "Low")


class MaterialRequest(Base):
    __tablename__ = "material_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id"), nullable=False
    )
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    # [{"name": ..., "spec": ...}]
    materials: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    required_by: Mapped[date] = mapped_column(Date, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=MaterialRequestStatus.RFQ_PENDING.value
    )
    requested_by: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "priority IN ('High','Medium','Low')", name="chk_mr_priority"
        ),
        CheckConstraint(
            "status IN ('RFQ_PENDING','BIDDING_OPEN','UNDER_EVALUATION',"
            "'NEGOTIATION','PO_READY','ORDER_PLACED','DELIVERED')",
            name="chk_mr_status",
        ),
        Index("idx_mr_project", "project_id"),
        Index("idx_mr_status", "status"),
    )
