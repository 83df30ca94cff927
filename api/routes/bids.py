from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from api.middleware.auth import get_current_user
from api.middleware.authorization import STAFF_ROLES, is_vendor, require_roles
from api.middleware.store import get_store
from api.schemas.bid import BidResponse
from api.services.bid_evaluation import current_bids
from api.services.bid_service import bid_to_response, list_vendor_bids, load_bid_items
from api.services.store import ProcurementStore
from api.services.vendor_service import require_vendor_for_user

logger = structlog.get_logger()
router = APIRouter()


@router.get("/mine", response_model=list[BidResponse])
async def my_bids(
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("vendor")),
    store: ProcurementStore = Depends(get_store),
):
    """The calling vendor's bids across all RFQs, newest first."""
    vendor = await require_vendor_for_user(store, current_user)
    return await list_vendor_bids(store, vendor.id)


@router.get("/{bid_id}", response_model=BidResponse)
async def get_bid(
    bid_id: str,
    current_user: dict = Depends(get_current_user),
    store: ProcurementStore = Depends(get_store),
):
    bid = await store.get_bid(bid_id)
    not_found = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "NOT_FOUND", "message": "Bid not found"},
    )
    if not bid:
        raise not_found

    if is_vendor(current_user):
        vendor = await require_vendor_for_user(store, current_user)
        if bid.vendor_id != vendor.id:
            logger.warning(
                "bid_lookup_denied",
                bid_id=str(bid.id), vendor_id=str(vendor.id), owner_id=str(bid.vendor_id),
            )
            raise not_found
    elif current_user["role"] not in STAFF_ROLES:
        raise not_found

    pair_log = await store.list_bids(rfq_id=bid.rfq_id, vendor_id=bid.vendor_id)
    latest = current_bids(pair_log).get(str(bid.vendor_id))
    is_current = latest is not None and latest.id == bid.id
    items = await load_bid_items(store, [bid])
    return bid_to_response(bid, items.get(str(bid.id), []), is_current)
