"""RFQ lookups, closing and response shaping."""

from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
import structlog

from api.models.rfq import Rfq, RfqLineItem, RfqStatus
from api.schemas.rfq import RfqLineItemResponse, RfqResponse
from api.services.audit_service import create_audit_log
from api.services.store import ProcurementStore

logger = structlog.get_logger()


def rfq_to_response(
    rfq: Rfq, line_items: list[RfqLineItem], now: Optional[datetime] = None
) -> RfqResponse:
    now = now or datetime.utcnow()
    return RfqResponse(
        id=str(rfq.id),
        rfq_number=rfq.rfq_number,
        material_request_id=str(rfq.material_request_id),
        project_id=str(rfq.project_id),
        project_name=rfq.project_name,
        status=rfq.status,
        deadline=rfq.deadline.isoformat(),
        is_past_deadline=rfq.deadline < now,
        invited_vendor_ids=list(rfq.invited_vendor_ids or []),
        notes=rfq.notes,
        created_by=rfq.created_by,
        awarded_bid_id=str(rfq.awarded_bid_id) if rfq.awarded_bid_id else None,
        awarded_vendor_id=str(rfq.awarded_vendor_id) if rfq.awarded_vendor_id else None,
        awarded_at=rfq.awarded_at.isoformat() if rfq.awarded_at else None,
        closed_at=rfq.closed_at.isoformat() if rfq.closed_at else None,
        line_items=[
            RfqLineItemResponse(
                id=str(li.id),
                line_number=li.line_number,
                name=li.name,
                description=li.description,
                quantity=li.quantity,
                unit=li.unit,
            )
            for li in sorted(line_items, key=lambda li: li.line_number)
        ],
        created_at=rfq.created_at.isoformat() if rfq.created_at else "",
    )


async def get_rfq_or_404(
    store: ProcurementStore, rfq_id: str, for_update: bool = False
) -> Rfq:
    rfq = await store.get_rfq(rfq_id, for_update=for_update)
    if not rfq:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "RFQ not found"},
        )
    return rfq


def ensure_vendor_invited(rfq: Rfq, vendor_id) -> None:
    if str(vendor_id) not in (rfq.invited_vendor_ids or []):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "VENDOR_NOT_INVITED", "message": "Vendor was not invited to this RFQ"},
        )


async def close_rfq(store: ProcurementStore, rfq_id: str, actor: dict) -> Rfq:
    """Stop accepting bids. The material request status is left alone."""
    rfq = await get_rfq_or_404(store, rfq_id, for_update=True)
    if rfq.status != RfqStatus.OPEN:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "RFQ_NOT_OPEN", "message": f"RFQ is already {rfq.status}"},
        )

    rfq.status = RfqStatus.CLOSED.value
    rfq.closed_at = datetime.utcnow()
    await store.save(rfq)

    await create_audit_log(
        store, actor, "RFQ_CLOSED", "RFQ", rfq.id,
        before_state={"status": RfqStatus.OPEN.value},
        after_state={"status": RfqStatus.CLOSED.value},
    )
    logger.info("rfq_closed", rfq_id=str(rfq.id), rfq_number=rfq.rfq_number)
    return rfq
