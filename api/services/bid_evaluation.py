"""
Bid evaluation: projections over the append-only bid log.

The log holds every submission. The "current" bid of a vendor is derived,
never stored:

    current_bids(log)  = last record per vendor, ordered by (submitted_at, revision)
    lowest_bid(log)    = min total_cents over current_bids(log)

Everything that needs "the vendor's bid" or "L1" goes through these
functions so the reduction lives in one place.
"""

from typing import Iterable, Optional

from api.models.bid import Bid


def log_order(bid: Bid) -> tuple:
    """Sort key for the bid log: submission time, then revision."""
    return (bid.submitted_at, bid.revision)


def current_bids(bids: Iterable[Bid]) -> dict[str, Bid]:
    """Latest bid per vendor, keyed by vendor id (as str)."""
    latest: dict[str, Bid] = {}
    for bid in bids:
        key = str(bid.vendor_id)
        held = latest.get(key)
        if held is None or log_order(bid) > log_order(held):
            latest[key] = bid
    return latest


def lowest_bid(bids: Iterable[Bid]) -> Optional[Bid]:
    """L1: the cheapest of the vendors' current bids.

    Equal totals go to the earlier submission.
    """
    current = current_bids(bids).values()
    if not current:
        return None
    return min(current, key=lambda b: (b.total_cents, log_order(b)))


def rank_current_bids(bids: Iterable[Bid]) -> dict[str, int]:
    """Price ranks (1 = L1) for current bids, keyed by bid id (as str)."""
    ordered = sorted(
        current_bids(bids).values(),
        key=lambda b: (b.total_cents, log_order(b)),
    )
    return {str(b.id): rank for rank, b in enumerate(ordered, start=1)}


def top_rated_vendor(bids: Iterable[Bid], ratings: dict[str, float]) -> Optional[str]:
    """T1: the best-rated vendor among current bidders (unrated vendors last)."""
    best_id: Optional[str] = None
    best_rating: Optional[float] = None
    for vendor_id in current_bids(bids):
        rating = ratings.get(vendor_id)
        if rating is None:
            continue
        if best_rating is None or rating > best_rating:
            best_id, best_rating = vendor_id, rating
    return best_id


def itemized_total(lines: Iterable[tuple[int, int]]) -> int:
    """Sum of unit_price_cents * quantity over (unit_price_cents, quantity) pairs."""
    return sum(unit_price * quantity for unit_price, quantity in lines)
