from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from api.middleware.auth import get_current_user
from api.middleware.authorization import SOURCING_ROLES, STAFF_ROLES, is_vendor, require_roles
from api.middleware.store import get_store
from api.models.rfq import RfqLineItem
from api.schemas.bid import (
    BidResponse,
    BidSubmit,
    ComparativeStatementResponse,
    LowestBidResponse,
)
from api.schemas.common import PaginatedResponse, build_pagination
from api.schemas.rfq import RfqResponse
from api.services.bid_service import bid_to_response, list_rfq_bids, submit_bid
from api.services.comparative_statement import build_comparative_statement, get_lowest_bid
from api.services.rfq_service import (
    close_rfq,
    ensure_vendor_invited,
    get_rfq_or_404,
    rfq_to_response,
)
from api.services.store import ProcurementStore
from api.services.vendor_service import require_vendor_for_user

logger = structlog.get_logger()
router = APIRouter()

BIDDER_ROLES = SOURCING_ROLES + ("vendor",)


@router.get("", response_model=PaginatedResponse[RfqResponse])
async def list_rfqs(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=50),
    rfq_status: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    store: ProcurementStore = Depends(get_store),
):
    """RFQs newest first. Vendors only see the RFQs they were invited to."""
    invited_vendor_id = None
    if is_vendor(current_user):
        vendor = await require_vendor_for_user(store, current_user)
        invited_vendor_id = str(vendor.id)

    rfqs, total = await store.list_rfqs(
        status=rfq_status,
        invited_vendor_id=invited_vendor_id,
        offset=(page - 1) * limit,
        limit=limit,
    )

    # Batch-load line items for the page
    items_by_rfq: dict[str, list[RfqLineItem]] = {}
    for li in await store.list_rfq_items([r.id for r in rfqs]):
        items_by_rfq.setdefault(str(li.rfq_id), []).append(li)

    now = datetime.utcnow()
    return PaginatedResponse(
        data=[rfq_to_response(r, items_by_rfq.get(str(r.id), []), now) for r in rfqs],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/{rfq_id}", response_model=RfqResponse)
async def get_rfq(
    rfq_id: str,
    current_user: dict = Depends(get_current_user),
    store: ProcurementStore = Depends(get_store),
):
    rfq = await get_rfq_or_404(store, rfq_id)
    if is_vendor(current_user):
        vendor = await require_vendor_for_user(store, current_user)
        ensure_vendor_invited(rfq, vendor.id)
    return rfq_to_response(rfq, await store.list_rfq_items([rfq.id]))


@router.post("/{rfq_id}/close", response_model=RfqResponse)
async def close(
    rfq_id: str,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    rfq = await close_rfq(store, rfq_id, current_user)
    return rfq_to_response(rfq, await store.list_rfq_items([rfq.id]))


@router.get("/{rfq_id}/bids", response_model=list[BidResponse])
async def list_bids(
    rfq_id: str,
    current_user: dict = Depends(get_current_user),
    store: ProcurementStore = Depends(get_store),
):
    """Bid log of the RFQ. Vendors see only their own submissions."""
    rfq = await get_rfq_or_404(store, rfq_id)
    vendor_id = None
    if is_vendor(current_user):
        vendor = await require_vendor_for_user(store, current_user)
        ensure_vendor_invited(rfq, vendor.id)
        vendor_id = vendor.id
    elif current_user["role"] not in STAFF_ROLES:
        logger.warning(
            "rfq_bids_access_denied",
            rfq_id=str(rfq.id), user_id=current_user["user_id"], role=current_user["role"],
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "INSUFFICIENT_PERMISSIONS", "message": "Cannot view bids"},
        )
    return await list_rfq_bids(store, rfq.id, vendor_id=vendor_id)


@router.post("/{rfq_id}/bids", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def create_bid(
    rfq_id: str,
    body: BidSubmit,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*BIDDER_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    bid, items = await submit_bid(store, rfq_id, body, current_user)
    if not is_vendor(current_user):
        logger.info(
            "bid_entered_on_behalf",
            rfq_id=str(bid.rfq_id), bid_id=str(bid.id),
            vendor_id=str(bid.vendor_id), user_id=current_user["user_id"],
        )
    return bid_to_response(bid, items, is_current=True)


@router.get("/{rfq_id}/comparative-statement", response_model=ComparativeStatementResponse)
async def get_comparative_statement(
    rfq_id: str,
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    rfq = await get_rfq_or_404(store, rfq_id)
    return await build_comparative_statement(store, rfq)


@router.get("/{rfq_id}/lowest-bid", response_model=LowestBidResponse)
async def lowest_bid(
    rfq_id: str,
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    rfq = await get_rfq_or_404(store, rfq_id)
    return await get_lowest_bid(store, rfq)
