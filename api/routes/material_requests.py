from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
import structlog

from api.middleware.auth import get_current_user
from api.middleware.authorization import SOURCING_ROLES, STAFF_ROLES, require_roles
from api.middleware.store import get_store
from api.models.material_request import MaterialRequest, MaterialRequestStatus
from api.schemas.audit_log import AuditLogResponse
from api.schemas.bid import ComparativeStatementResponse
from api.schemas.common import PaginatedResponse, build_pagination
from api.schemas.material_request import (
    AwardRequest,
    AwardResponse,
    BoardColumn,
    MaterialLine,
    MaterialRequestCreate,
    MaterialRequestResponse,
    MaterialRequestUpdate,
    StatusTransitionRequest,
)
from api.schemas.rfq import InitiateRfqRequest, RfqResponse
from api.services import material_request_service as mr_service
from api.services.bid_service import bid_to_response, load_bid_items
from api.services.comparative_statement import build_comparative_statement
from api.services.notification_service import (
    bid_awarded_context,
    rfq_issued_context,
    send_notification,
)
from api.services.rfq_service import rfq_to_response
from api.services.store import ProcurementStore

logger = structlog.get_logger()
router = APIRouter()


def _to_response(mr: MaterialRequest) -> MaterialRequestResponse:
    return MaterialRequestResponse(
        id=str(mr.id),
        project_id=str(mr.project_id),
        project_name=mr.project_name,
        materials=[MaterialLine(**m) for m in (mr.materials or [])],
        required_by=mr.required_by.isoformat(),
        priority=mr.priority,
        status=mr.status,
        status_label=MaterialRequestStatus(mr.status).label,
        requested_by=mr.requested_by,
        notes=mr.notes,
        created_at=mr.created_at.isoformat() if mr.created_at else "",
        updated_at=mr.updated_at.isoformat() if mr.updated_at else "",
    )


def _parse_statuses(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    statuses = [s.strip() for s in raw.split(",") if s.strip()]
    try:
        return [MaterialRequestStatus(s).value for s in statuses]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_STATUS", "message": f"Unknown status in '{raw}'"},
        )


@router.get("", response_model=PaginatedResponse[MaterialRequestResponse])
async def list_material_requests(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    mr_status: Optional[str] = Query(None, alias="status"),
    project_id: Optional[str] = Query(None),
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    requests, total = await store.list_material_requests(
        statuses=_parse_statuses(mr_status),
        project_id=project_id,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return PaginatedResponse(
        data=[_to_response(mr) for mr in requests],
        pagination=build_pagination(page, limit, total),
    )


@router.post("", response_model=MaterialRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_material_request(
    body: MaterialRequestCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    mr = await mr_service.create_material_request(store, body, current_user)
    return _to_response(mr)


@router.get("/board", response_model=list[BoardColumn])
async def get_board(
    project_id: Optional[str] = Query(None),
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    """Sourcing board: every request grouped into its workflow column."""
    requests, _ = await store.list_material_requests(project_id=project_id)
    return [
        BoardColumn(
            id=column_id,
            title=title,
            statuses=[s.value for s in statuses],
            requests=[_to_response(mr) for mr in column_requests],
        )
        for column_id, title, statuses, column_requests in mr_service.group_board(requests)
    ]


@router.get("/{mr_id}", response_model=MaterialRequestResponse)
async def get_material_request(
    mr_id: str,
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    return _to_response(await mr_service.get_material_request_or_404(store, mr_id))


@router.patch("/{mr_id}", response_model=MaterialRequestResponse)
async def update_material_request(
    mr_id: str,
    body: MaterialRequestUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    mr = await mr_service.update_material_request(store, mr_id, body, current_user)
    return _to_response(mr)


@router.post("/{mr_id}/transition", response_model=MaterialRequestResponse)
async def transition_material_request(
    mr_id: str,
    body: StatusTransitionRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    mr = await mr_service.transition_status(
        store, mr_id, body.status, current_user, comment=body.comment
    )
    return _to_response(mr)


@router.post("/{mr_id}/rfq", response_model=RfqResponse, status_code=status.HTTP_201_CREATED)
async def initiate_rfq(
    mr_id: str,
    body: InitiateRfqRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    result = await mr_service.initiate_rfq(store, mr_id, body, current_user)

    background_tasks.add_task(
        send_notification,
        "rfq_issued",
        [v.email for v in result.vendors],
        rfq_issued_context(result.rfq, len(result.line_items)),
    )
    logger.info(
        "notification_queued",
        template_id="rfq_issued", rfq_id=str(result.rfq.id), recipients=len(result.vendors),
    )
    return rfq_to_response(result.rfq, result.line_items)


@router.post("/{mr_id}/award", response_model=AwardResponse)
async def award_bid(
    mr_id: str,
    body: AwardRequest,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    result = await mr_service.award_bid(store, mr_id, body.bid_id, current_user)

    if result.vendor and result.vendor.email:
        background_tasks.add_task(
            send_notification,
            "bid_awarded",
            [result.vendor.email],
            bid_awarded_context(result.rfq, result.bid, result.vendor),
        )
        logger.info(
            "notification_queued",
            template_id="bid_awarded", rfq_id=str(result.rfq.id), recipients=1,
        )

    rfq_items = await store.list_rfq_items([result.rfq.id])
    bid_items = await load_bid_items(store, [result.bid])
    return AwardResponse(
        material_request=_to_response(result.request),
        rfq=rfq_to_response(result.rfq, rfq_items),
        bid=bid_to_response(result.bid, bid_items.get(str(result.bid.id), [])),
    )


@router.get("/{mr_id}/comparative-statement", response_model=ComparativeStatementResponse)
async def get_comparative_statement(
    mr_id: str,
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    mr = await mr_service.get_material_request_or_404(store, mr_id)
    rfq = await store.get_rfq_for_request(mr.id)
    if not rfq:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "No RFQ has been issued for this material request"},
        )
    return await build_comparative_statement(store, rfq)


@router.get("/{mr_id}/history", response_model=list[AuditLogResponse])
async def get_history(
    mr_id: str,
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    mr = await mr_service.get_material_request_or_404(store, mr_id)
    logs = await store.list_audit_logs(mr_service.ENTITY_TYPE, mr.id)
    return [
        AuditLogResponse(
            id=str(log.id),
            actor_id=log.actor_id,
            actor_email=log.actor_email,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=str(log.entity_id),
            before_state=log.before_state,
            after_state=log.after_state,
            changed_fields=log.changed_fields,
            created_at=log.created_at.isoformat() if log.created_at else "",
        )
        for log in logs
    ]
