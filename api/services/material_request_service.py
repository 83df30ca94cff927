"""
Material request lifecycle.

    RFQ_PENDING -> BIDDING_OPEN -> UNDER_EVALUATION <-> NEGOTIATION
                -> PO_READY -> ORDER_PLACED -> DELIVERED

BIDDING_OPEN is entered only through initiate_rfq() and PO_READY only through
award_bid(); every other edge is a manual transition. All functions write
through the caller's store (no commit), so an action that touches several
rows (RFQ insert + status flip, award + RFQ close) commits or rolls back as
one unit with the request session.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
import structlog

from api.config import settings
from api.models.bid import Bid
from api.models.material_request import MaterialRequest, MaterialRequestStatus as S
from api.models.rfq import Rfq, RfqLineItem, RfqStatus
from api.models.vendor import Vendor
from api.schemas.material_request import MaterialRequestCreate, MaterialRequestUpdate
from api.schemas.rfq import InitiateRfqRequest
from api.services.audit_service import create_audit_log
from api.services.bid_evaluation import current_bids
from api.services.store import ProcurementStore

logger = structlog.get_logger()

ENTITY_TYPE = "MATERIAL_REQUEST"
RFQ_PREFIX = "RFQ"

MANUAL_TRANSITIONS: dict[S, frozenset] = {
    S.RFQ_PENDING: frozenset(),
    S.BIDDING_OPEN: frozenset({S.UNDER_EVALUATION, S.NEGOTIATION}),
    S.UNDER_EVALUATION: frozenset({S.NEGOTIATION}),
    S.NEGOTIATION: frozenset({S.UNDER_EVALUATION}),
    S.PO_READY: frozenset({S.ORDER_PLACED}),
    S.ORDER_PLACED: frozenset({S.DELIVERED}),
    S.DELIVERED: frozenset(),
}

# Targets that only a dedicated action may reach, with the states it starts from.
ACTION_TRANSITIONS: dict[S, frozenset] = {
    S.BIDDING_OPEN: frozenset({S.RFQ_PENDING}),
    S.PO_READY: frozenset({S.UNDER_EVALUATION, S.NEGOTIATION}),
}

BOARD_COLUMNS = [
    ("rfq", "RFQ Pending", (S.RFQ_PENDING,)),
    ("bidding", "Bidding Open", (S.BIDDING_OPEN,)),
    ("evaluation", "Under Evaluation", (S.UNDER_EVALUATION, S.NEGOTIATION)),
    ("ordered", "Order Placed", (S.PO_READY, S.ORDER_PLACED)),
    ("delivered", "Delivered", (S.DELIVERED,)),
]


@dataclass
class RfqInitiation:
    request: MaterialRequest
    rfq: Rfq
    line_items: list[RfqLineItem]
    vendors: list[Vendor]


@dataclass
class AwardResult:
    request: MaterialRequest
    rfq: Rfq
    bid: Bid
    vendor: Optional[Vendor]


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _snapshot(mr: MaterialRequest) -> dict:
    return {
        "status": mr.status,
        "priority": mr.priority,
        "required_by": mr.required_by.isoformat() if mr.required_by else None,
        "materials": list(mr.materials or []),
        "notes": mr.notes,
    }


def can_transition(current: str, target: str) -> bool:
    return S(target) in MANUAL_TRANSITIONS.get(S(current), frozenset())


async def get_material_request_or_404(
    store: ProcurementStore, mr_id: str, for_update: bool = False
) -> MaterialRequest:
    mr = await store.get_material_request(mr_id, for_update=for_update)
    if not mr:
        raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "Material request not found")
    return mr


async def create_material_request(
    store: ProcurementStore, body: MaterialRequestCreate, actor: dict
) -> MaterialRequest:
    project = await store.get_project(body.project_id)
    if not project:
        raise _error(status.HTTP_400_BAD_REQUEST, "PROJECT_NOT_FOUND", "Project not found")

    now = datetime.utcnow()
    mr = MaterialRequest(
        project_id=project.id,
        project_name=project.name,
        materials=[m.model_dump() for m in body.materials],
        required_by=body.required_by,
        priority=body.priority,
        status=S.RFQ_PENDING.value,
        requested_by=actor["user_id"],
        notes=body.notes,
        created_at=now,
        updated_at=now,
    )
    await store.add(mr)
    await create_audit_log(
        store, actor, "MATERIAL_REQUEST_CREATED", ENTITY_TYPE, mr.id,
        after_state=_snapshot(mr),
    )
    logger.info("material_request_created", mr_id=str(mr.id), project_id=str(project.id))
    return mr


async def update_material_request(
    store: ProcurementStore, mr_id: str, body: MaterialRequestUpdate, actor: dict
) -> MaterialRequest:
    mr = await get_material_request_or_404(store, mr_id, for_update=True)
    if mr.status != S.RFQ_PENDING:
        raise _error(
            status.HTTP_409_CONFLICT,
            "MATERIAL_REQUEST_LOCKED",
            f"Cannot edit a material request in '{mr.status}' status",
        )

    before = _snapshot(mr)
    if body.materials is not None:
        mr.materials = [m.model_dump() for m in body.materials]
    if body.required_by is not None:
        mr.required_by = body.required_by
    if body.priority is not None:
        mr.priority = body.priority
    if body.notes is not None:
        mr.notes = body.notes
    mr.updated_at = datetime.utcnow()
    await store.save(mr)

    await create_audit_log(
        store, actor, "MATERIAL_REQUEST_UPDATED", ENTITY_TYPE, mr.id,
        before_state=before, after_state=_snapshot(mr),
    )
    return mr


async def transition_status(
    store: ProcurementStore, mr_id: str, target: S, actor: dict, comment: Optional[str] = None
) -> MaterialRequest:
    mr = await get_material_request_or_404(store, mr_id, for_update=True)
    current = S(mr.status)

    if not can_transition(current, target):
        if current in ACTION_TRANSITIONS.get(target, frozenset()):
            action = "initiate an RFQ" if target == S.BIDDING_OPEN else "award a bid"
            raise _error(
                status.HTTP_409_CONFLICT,
                "TRANSITION_REQUIRES_ACTION",
                f"Moving to '{target.value}' requires you to {action}",
            )
        raise _error(
            status.HTTP_409_CONFLICT,
            "INVALID_STATUS_TRANSITION",
            f"Cannot move material request from '{current.value}' to '{target.value}'",
        )

    before = _snapshot(mr)
    mr.status = target.value
    mr.updated_at = datetime.utcnow()
    await store.save(mr)

    after = _snapshot(mr)
    if comment:
        after["comment"] = comment
    await create_audit_log(
        store, actor, "STATUS_CHANGED", ENTITY_TYPE, mr.id,
        before_state=before, after_state=after,
    )
    logger.info(
        "material_request_transitioned",
        mr_id=str(mr.id), from_status=current.value, to_status=target.value,
    )
    return mr


async def _generate_rfq_number(store: ProcurementStore, now: datetime) -> str:
    count = await store.count_rfqs() + 1
    return f"{RFQ_PREFIX}-{now.year}-{count:04d}"


async def initiate_rfq(
    store: ProcurementStore, mr_id: str, body: InitiateRfqRequest, actor: dict
) -> RfqInitiation:
    """Open bidding for a material request: create its RFQ and flip it to BIDDING_OPEN."""
    if not body.invited_vendor_ids:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "NO_VENDORS_SELECTED",
            "Select at least one vendor to invite",
        )

    mr = await get_material_request_or_404(store, mr_id, for_update=True)

    if await store.get_rfq_for_request(mr.id) is not None:
        raise _error(
            status.HTTP_409_CONFLICT, "RFQ_ALREADY_EXISTS",
            "An RFQ has already been issued for this material request",
        )
    if mr.status != S.RFQ_PENDING:
        raise _error(
            status.HTTP_409_CONFLICT, "INVALID_STATUS_TRANSITION",
            f"Bidding can only start from '{S.RFQ_PENDING.value}' (current: '{mr.status}')",
        )

    now = datetime.utcnow()
    if body.deadline.date() < now.date():
        raise _error(
            status.HTTP_400_BAD_REQUEST, "DEADLINE_IN_PAST",
            "Bidding deadline cannot be in the past",
        )

    vendors = await store.get_vendors(body.invited_vendor_ids)
    found = {str(v.id) for v in vendors}
    missing = [vid for vid in body.invited_vendor_ids if vid not in found]
    if missing:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "VENDOR_NOT_FOUND",
            f"Unknown vendor id(s): {', '.join(missing)}",
        )
    inactive = [str(v.id) for v in vendors if not v.is_active]
    if inactive:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "VENDOR_INACTIVE",
            f"Inactive vendor id(s): {', '.join(inactive)}",
        )

    rfq = Rfq(
        rfq_number=await _generate_rfq_number(store, now),
        material_request_id=mr.id,
        project_id=mr.project_id,
        project_name=mr.project_name,
        status=RfqStatus.OPEN.value,
        deadline=body.deadline,
        invited_vendor_ids=[str(v.id) for v in vendors],
        notes=body.notes,
        created_by=actor["user_id"],
        created_at=now,
    )
    await store.add(rfq)

    # Quantities are not captured on material lines; every item goes out as 1 unit.
    line_items = [
        RfqLineItem(
            rfq_id=rfq.id,
            line_number=idx,
            name=m["name"],
            description=m.get("spec") or None,
            quantity=1,
            unit=settings.RFQ_DEFAULT_UNIT,
        )
        for idx, m in enumerate(mr.materials or [], start=1)
    ]
    await store.add_all(line_items)

    before = _snapshot(mr)
    mr.status = S.BIDDING_OPEN.value
    mr.updated_at = now
    await store.save(mr)

    await create_audit_log(
        store, actor, "RFQ_INITIATED", ENTITY_TYPE, mr.id,
        before_state=before,
        after_state={**_snapshot(mr), "rfq_id": str(rfq.id), "rfq_number": rfq.rfq_number},
    )
    logger.info(
        "rfq_initiated",
        mr_id=str(mr.id), rfq_id=str(rfq.id), rfq_number=rfq.rfq_number,
        vendor_count=len(vendors),
    )
    return RfqInitiation(request=mr, rfq=rfq, line_items=line_items, vendors=vendors)


async def award_bid(
    store: ProcurementStore, mr_id: str, bid_id: str, actor: dict
) -> AwardResult:
    """Award the chosen bid: close the RFQ and move the request to PO_READY.

    No price rule is applied; staff may pick any bid on the RFQ.
    """
    mr = await get_material_request_or_404(store, mr_id, for_update=True)
    if S(mr.status) not in ACTION_TRANSITIONS[S.PO_READY]:
        raise _error(
            status.HTTP_409_CONFLICT, "INVALID_STATUS_TRANSITION",
            f"Cannot award a material request in '{mr.status}' status",
        )

    rfq = await store.get_rfq_for_request(mr.id)
    if not rfq:
        raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "No RFQ found for this material request")

    bid = await store.get_bid(bid_id)
    if not bid or bid.rfq_id != rfq.id:
        raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "Bid not found for this RFQ")

    log = await store.list_bids(rfq_id=rfq.id)
    latest = current_bids(log).get(str(bid.vendor_id))
    is_current = latest is not None and latest.id == bid.id
    vendor = await store.get_vendor(bid.vendor_id)

    now = datetime.utcnow()
    rfq.status = RfqStatus.CLOSED.value
    rfq.closed_at = rfq.closed_at or now
    rfq.awarded_bid_id = bid.id
    rfq.awarded_vendor_id = bid.vendor_id
    rfq.awarded_at = now
    await store.save(rfq)

    before = _snapshot(mr)
    mr.status = S.PO_READY.value
    mr.updated_at = now
    await store.save(mr)

    await create_audit_log(
        store, actor, "BID_AWARDED", ENTITY_TYPE, mr.id,
        before_state=before,
        after_state={
            **_snapshot(mr),
            "rfq_id": str(rfq.id),
            "bid_id": str(bid.id),
            "vendor_id": str(bid.vendor_id),
            "total_cents": bid.total_cents,
        },
    )
    logger.info(
        "bid_awarded",
        mr_id=str(mr.id), rfq_id=str(rfq.id), bid_id=str(bid.id),
        vendor_id=str(bid.vendor_id), total_cents=bid.total_cents,
        is_current_bid=is_current,
    )
    return AwardResult(request=mr, rfq=rfq, bid=bid, vendor=vendor)


def group_board(requests: list[MaterialRequest]) -> list[tuple[str, str, tuple, list[MaterialRequest]]]:
    """Bucket requests into the sourcing board's columns, keeping input order."""
    columns = []
    for column_id, title, statuses in BOARD_COLUMNS:
        wanted = {s.value for s in statuses}
        columns.append(
            (column_id, title, statuses, [r for r in requests if r.status in wanted])
        )
    return columns
