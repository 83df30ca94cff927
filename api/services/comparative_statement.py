"""
Comparative statement: every bid on an RFQ side by side with the vendor's
category and rating, ranked by price over the current bids.
"""

from api.models.rfq import Rfq
from api.schemas.bid import (
    ComparativeStatementResponse,
    ComparativeStatementRow,
    LowestBidResponse,
)
from api.services.bid_evaluation import (
    current_bids,
    lowest_bid,
    rank_current_bids,
    top_rated_vendor,
)
from api.services.bid_service import bid_to_response, load_bid_items
from api.services.store import ProcurementStore


async def get_lowest_bid(store: ProcurementStore, rfq: Rfq) -> LowestBidResponse:
    log = await store.list_bids(rfq_id=rfq.id)
    best = lowest_bid(log)
    lowest = None
    if best is not None:
        items_by_bid = await load_bid_items(store, [best])
        lowest = bid_to_response(best, items_by_bid.get(str(best.id), []), True)
    return LowestBidResponse(
        rfq_id=str(rfq.id),
        bidder_count=len(current_bids(log)),
        lowest=lowest,
    )


async def build_comparative_statement(
    store: ProcurementStore, rfq: Rfq
) -> ComparativeStatementResponse:
    log = await store.list_bids(rfq_id=rfq.id)
    current = current_bids(log)
    current_ids = {str(b.id) for b in current.values()}
    ranks = rank_current_bids(log)

    vendors = {
        str(v.id): v for v in await store.get_vendors([b.vendor_id for b in log])
    }
    ratings = {
        vid: float(v.rating) for vid, v in vendors.items() if v.rating is not None
    }
    items_by_bid = await load_bid_items(store, log)
    rfq_items = await store.list_rfq_items([rfq.id])

    rows = []
    for bid in log:
        bid_id = str(bid.id)
        vendor = vendors.get(str(bid.vendor_id))
        is_current = bid_id in current_ids
        rows.append(
            ComparativeStatementRow(
                bid=bid_to_response(bid, items_by_bid.get(bid_id, []), is_current),
                vendor_category=vendor.category if vendor else None,
                vendor_rating=ratings.get(str(bid.vendor_id)),
                is_current=is_current,
                l_rank=ranks.get(bid_id),
            )
        )

    best = lowest_bid(log)
    return ComparativeStatementResponse(
        rfq_id=str(rfq.id),
        rfq_number=rfq.rfq_number,
        material_request_id=str(rfq.material_request_id),
        project_name=rfq.project_name,
        rfq_status=rfq.status,
        item_count=len(rfq_items),
        bidder_count=len(current),
        lowest_bid_id=str(best.id) if best else None,
        lowest_total_cents=best.total_cents if best else None,
        top_rated_vendor_id=top_rated_vendor(log, ratings),
        awarded_bid_id=str(rfq.awarded_bid_id) if rfq.awarded_bid_id else None,
        rows=rows,
    )
