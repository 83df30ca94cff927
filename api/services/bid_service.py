"""
Bid submission.

Each call appends a bid row (plus its line items) to the log; nothing that is
already stored is edited. See api.services.bid_evaluation for how the
vendor's current bid and L1 are derived from the log.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
import structlog

from api.config import settings
from api.models.bid import Bid, BidLineItem, BidStatus, PricingMode
from api.models.rfq import RfqLineItem, RfqStatus
from api.models.vendor import Vendor
from api.schemas.bid import BidLineItemResponse, BidLinePrice, BidResponse, BidSubmit
from api.services.audit_service import create_audit_log
from api.services.bid_evaluation import current_bids, itemized_total
from api.services.rfq_service import ensure_vendor_invited, get_rfq_or_404
from api.services.store import ProcurementStore
from api.services.vendor_service import require_vendor_for_user

logger = structlog.get_logger()


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def bid_to_response(
    bid: Bid, items: list[BidLineItem], is_current: Optional[bool] = None
) -> BidResponse:
    return BidResponse(
        id=str(bid.id),
        rfq_id=str(bid.rfq_id),
        vendor_id=str(bid.vendor_id),
        vendor_name=bid.vendor_name,
        pricing_mode=bid.pricing_mode,
        revision=bid.revision,
        submitted_at=bid.submitted_at.isoformat(),
        validity_date=bid.validity_date.isoformat(),
        items=[
            BidLineItemResponse(
                rfq_item_id=str(li.rfq_item_id),
                quantity=li.quantity,
                unit_price_cents=li.unit_price_cents,
                total_cents=li.total_cents,
                remarks=li.remarks,
            )
            for li in items
        ],
        total_cents=bid.total_cents,
        delivery_timeline=bid.delivery_timeline,
        payment_terms=bid.payment_terms,
        warranty=bid.warranty,
        status=bid.status,
        notes=bid.notes,
        is_updated=bool(bid.is_updated),
        is_current=is_current,
    )


async def load_bid_items(store: ProcurementStore, bids: list[Bid]) -> dict[str, list[BidLineItem]]:
    """Line items grouped by bid id (as str)."""
    items_by_bid: dict[str, list[BidLineItem]] = defaultdict(list)
    for li in await store.list_bid_items([b.id for b in bids]):
        items_by_bid[str(li.bid_id)].append(li)
    return items_by_bid


def price_lines(
    rfq_items: list[RfqLineItem], prices: list[BidLinePrice]
) -> tuple[list[tuple[RfqLineItem, BidLinePrice]], int]:
    """Match submitted unit prices to RFQ items; every item priced exactly once."""
    by_id = {str(item.id): item for item in rfq_items}
    priced: list[tuple[RfqLineItem, BidLinePrice]] = []
    seen: set[str] = set()

    for price in prices:
        item = by_id.get(price.rfq_item_id)
        if item is None:
            raise _error(
                status.HTTP_400_BAD_REQUEST, "BID_ITEM_UNKNOWN",
                f"Item {price.rfq_item_id} is not part of this RFQ",
            )
        if price.rfq_item_id in seen:
            raise _error(
                status.HTTP_400_BAD_REQUEST, "BID_ITEM_DUPLICATE",
                f"Item {price.rfq_item_id} is priced more than once",
            )
        seen.add(price.rfq_item_id)
        priced.append((item, price))

    missing = [item.name for item in rfq_items if str(item.id) not in seen]
    if missing:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "BID_ITEMS_INCOMPLETE",
            f"Missing unit price for: {', '.join(missing)}",
        )

    total = itemized_total((p.unit_price_cents, item.quantity) for item, p in priced)
    return priced, total


async def _resolve_bidder(
    store: ProcurementStore, body: BidSubmit, actor: dict
) -> Vendor:
    if actor.get("role") == "vendor":
        vendor = await require_vendor_for_user(store, actor)
        if body.vendor_id and body.vendor_id != str(vendor.id):
            raise _error(
                status.HTTP_403_FORBIDDEN, "FORBIDDEN",
                "Vendors can only bid on their own behalf",
            )
        return vendor

    if not body.vendor_id:
        raise _error(
            status.HTTP_400_BAD_REQUEST, "VENDOR_REQUIRED",
            "vendor_id is required when bidding on a vendor's behalf",
        )
    vendor = await store.get_vendor(body.vendor_id)
    if not vendor:
        raise _error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", "Vendor not found")
    return vendor


async def submit_bid(
    store: ProcurementStore, rfq_id: str, body: BidSubmit, actor: dict
) -> tuple[Bid, list[BidLineItem]]:
    """Append a bid for the caller's vendor to the RFQ's bid log."""
    rfq = await get_rfq_or_404(store, rfq_id)
    if rfq.status != RfqStatus.OPEN:
        raise _error(
            status.HTTP_409_CONFLICT, "RFQ_NOT_OPEN",
            f"RFQ is {rfq.status}, bids are no longer accepted",
        )

    vendor = await _resolve_bidder(store, body, actor)
    ensure_vendor_invited(rfq, vendor.id)

    # Only the selected mode's values count; the other set is ignored.
    if body.pricing_mode == PricingMode.ITEMIZED:
        rfq_items = await store.list_rfq_items([rfq.id])
        priced, total_cents = price_lines(rfq_items, body.items)
    else:
        priced, total_cents = [], body.lumpsum_cents

    previous = await store.latest_revision(rfq.id, vendor.id)
    now = datetime.utcnow()
    bid = Bid(
        rfq_id=rfq.id,
        vendor_id=vendor.id,
        vendor_name=vendor.name,
        pricing_mode=body.pricing_mode.value,
        revision=previous + 1,
        submitted_at=now,
        validity_date=now + timedelta(days=settings.BID_VALIDITY_DAYS),
        total_cents=total_cents,
        delivery_timeline=body.delivery_timeline,
        payment_terms=body.payment_terms or vendor.payment_terms,
        warranty=body.warranty,
        status=BidStatus.SUBMITTED.value,
        notes=body.notes,
        is_updated=previous > 0,
        submitted_by=actor["user_id"],
    )
    await store.add(bid)

    line_items = [
        BidLineItem(
            bid_id=bid.id,
            rfq_item_id=item.id,
            quantity=item.quantity,
            unit_price_cents=price.unit_price_cents,
            total_cents=price.unit_price_cents * item.quantity,
            remarks=price.remarks,
        )
        for item, price in priced
    ]
    if line_items:
        await store.add_all(line_items)

    await create_audit_log(
        store, actor, "BID_SUBMITTED", "BID", bid.id,
        after_state={
            "rfq_id": str(rfq.id),
            "vendor_id": str(vendor.id),
            "revision": bid.revision,
            "pricing_mode": bid.pricing_mode,
            "total_cents": bid.total_cents,
        },
    )
    logger.info(
        "bid_submitted",
        rfq_id=str(rfq.id),
        bid_id=str(bid.id),
        vendor_id=str(vendor.id),
        revision=bid.revision,
        pricing_mode=bid.pricing_mode,
        total_cents=bid.total_cents,
        past_deadline=rfq.deadline < now,
    )
    return bid, line_items


async def list_rfq_bids(
    store: ProcurementStore, rfq_id, vendor_id=None
) -> list[BidResponse]:
    """Bid log of an RFQ in submission order, each flagged is_current."""
    log = await store.list_bids(rfq_id=rfq_id)
    current_ids = {str(b.id) for b in current_bids(log).values()}
    if vendor_id is not None:
        log = [b for b in log if str(b.vendor_id) == str(vendor_id)]
    items_by_bid = await load_bid_items(store, log)
    return [
        bid_to_response(b, items_by_bid.get(str(b.id), []), str(b.id) in current_ids)
        for b in log
    ]


async def list_vendor_bids(store: ProcurementStore, vendor_id) -> list[BidResponse]:
    """A vendor's bids across RFQs, newest first."""
    log = await store.list_bids(vendor_id=vendor_id)
    by_rfq: dict[str, list[Bid]] = defaultdict(list)
    for b in log:
        by_rfq[str(b.rfq_id)].append(b)
    current_ids = {
        str(b.id) for bids in by_rfq.values() for b in current_bids(bids).values()
    }
    items_by_bid = await load_bid_items(store, log)
    return [
        bid_to_response(b, items_by_bid.get(str(b.id), []), str(b.id) in current_ids)
        for b in reversed(log)
    ]
