"""
HTTP lifecycle test: material request -> RFQ -> bids -> comparative
statement -> award, driven through the FastAPI app against the in-memory store.
"""

from datetime import date, datetime, timedelta

import pytest
from structlog.testing import capture_logs

from api.models.rfq import Rfq

API = "/api/v1"


def _deadline() -> str:
    return (datetime.utcnow() + timedelta(days=7)).isoformat()


async def _create_request(client, headers, project_id, materials=None):
    return await client.post(
        f"{API}/material-requests",
        json={
            "project_id": project_id,
            "materials": materials or [
                {"name": "Wall Paint", "spec": "Azure Blue"},
                {"name": "Acoustic Panels", "spec": "2x4ft"},
            ],
            "required_by": (date.today() + timedelta(days=10)).isoformat(),
            "priority": "High",
        },
        headers=headers,
    )


@pytest.mark.asyncio
async def test_full_bidding_lifecycle(client, store, seeded, buyer, site_engineer, as_vendor, auth_headers):
    buyer_h = auth_headers(buyer)
    vendor_a, vendor_b, vendor_c = seeded["vendors"]
    a_h = auth_headers(as_vendor(vendor_a))
    b_h = auth_headers(as_vendor(vendor_b))
    c_h = auth_headers(as_vendor(vendor_c))

    # 1. Site raises a material request
    resp = await _create_request(client, auth_headers(site_engineer), str(seeded["project"].id))
    assert resp.status_code == 201, resp.text
    mr = resp.json()
    assert mr["status"] == "RFQ_PENDING"
    assert mr["status_label"] == "RFQ Pending"
    mr_id = mr["id"]

    # 2. Zero vendors: rejected, nothing written
    resp = await client.post(
        f"{API}/material-requests/{mr_id}/rfq",
        json={"invited_vendor_ids": [], "deadline": _deadline()},
        headers=buyer_h,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert store.rows[Rfq] == []
    assert (await client.get(f"{API}/material-requests/{mr_id}", headers=buyer_h)).json()["status"] == "RFQ_PENDING"

    # 3. Initiate RFQ to A and B
    resp = await client.post(
        f"{API}/material-requests/{mr_id}/rfq",
        json={"invited_vendor_ids": [str(vendor_a.id), str(vendor_b.id)], "deadline": _deadline()},
        headers=buyer_h,
    )
    assert resp.status_code == 201, resp.text
    rfq = resp.json()
    rfq_id = rfq["id"]
    assert rfq["status"] == "OPEN"
    assert rfq["is_past_deadline"] is False
    assert [(li["quantity"], li["unit"]) for li in rfq["line_items"]] == [(1, "nos"), (1, "nos")]
    assert (await client.get(f"{API}/material-requests/{mr_id}", headers=buyer_h)).json()["status"] == "BIDDING_OPEN"

    # Second initiation conflicts
    resp = await client.post(
        f"{API}/material-requests/{mr_id}/rfq",
        json={"invited_vendor_ids": [str(vendor_a.id)], "deadline": _deadline()},
        headers=buyer_h,
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "RFQ_ALREADY_EXISTS"

    # 4. Vendor inbox only shows invitations
    assert (await client.get(f"{API}/rfqs", headers=a_h)).json()["pagination"]["total"] == 1
    assert (await client.get(f"{API}/rfqs", headers=c_h)).json()["pagination"]["total"] == 0
    assert (await client.get(f"{API}/rfqs/{rfq_id}", headers=c_h)).status_code == 403

    # 5. Bids: A itemized 100, A revises lumpsum 90, B lumpsum 95
    item_ids = [li["id"] for li in rfq["line_items"]]
    resp = await client.post(
        f"{API}/rfqs/{rfq_id}/bids",
        json={
            "pricing_mode": "itemized",
            "items": [
                {"rfq_item_id": item_ids[0], "unit_price_cents": 60},
                {"rfq_item_id": item_ids[1], "unit_price_cents": 40},
            ],
            "delivery_timeline": "10 days",
        },
        headers=a_h,
    )
    assert resp.status_code == 201, resp.text
    a1 = resp.json()
    assert a1["total_cents"] == 100
    assert a1["is_updated"] is False

    resp = await client.post(
        f"{API}/rfqs/{rfq_id}/bids",
        json={"pricing_mode": "lumpsum", "lumpsum_cents": 90, "delivery_timeline": "8 days"},
        headers=a_h,
    )
    a2 = resp.json()
    assert a2["revision"] == 2
    assert a2["is_updated"] is True
    assert a2["items"] == []

    resp = await client.post(
        f"{API}/rfqs/{rfq_id}/bids",
        json={"pricing_mode": "lumpsum", "lumpsum_cents": 95, "delivery_timeline": "2 weeks"},
        headers=b_h,
    )
    b1 = resp.json()
    assert b1["payment_terms"] == "30 days Credit"

    # Uninvited vendor cannot bid
    resp = await client.post(
        f"{API}/rfqs/{rfq_id}/bids",
        json={"pricing_mode": "lumpsum", "lumpsum_cents": 50, "delivery_timeline": "1 week"},
        headers=c_h,
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "VENDOR_NOT_INVITED"

    # 6. L1 is A's revised 90
    resp = await client.get(f"{API}/rfqs/{rfq_id}/lowest-bid", headers=buyer_h)
    assert resp.json()["lowest"]["id"] == a2["id"]
    assert resp.json()["lowest"]["total_cents"] == 90
    assert resp.json()["bidder_count"] == 2

    # 7. Vendors see only their own bids and not the comparison
    own = (await client.get(f"{API}/rfqs/{rfq_id}/bids", headers=a_h)).json()
    assert {b["vendor_id"] for b in own} == {str(vendor_a.id)}
    assert [b["is_current"] for b in own] == [False, True]
    assert (await client.get(f"{API}/rfqs/{rfq_id}/comparative-statement", headers=a_h)).status_code == 403
    mine = (await client.get(f"{API}/bids/mine", headers=a_h)).json()
    assert [b["id"] for b in mine] == [a2["id"], a1["id"]]
    assert (await client.get(f"{API}/bids/{b1['id']}", headers=a_h)).status_code == 404

    # 8. Comparative statement via the material request
    cs = (await client.get(f"{API}/material-requests/{mr_id}/comparative-statement", headers=buyer_h)).json()
    assert cs["rfq_id"] == rfq_id
    assert cs["lowest_bid_id"] == a2["id"]
    assert len(cs["rows"]) == 3

    # 9. Award needs evaluation first
    resp = await client.post(f"{API}/material-requests/{mr_id}/award", json={"bid_id": b1["id"]}, headers=buyer_h)
    assert resp.status_code == 409
    resp = await client.post(
        f"{API}/material-requests/{mr_id}/transition",
        json={"status": "UNDER_EVALUATION"},
        headers=buyer_h,
    )
    assert resp.json()["status"] == "UNDER_EVALUATION"

    # 10. Award B (not L1)
    resp = await client.post(f"{API}/material-requests/{mr_id}/award", json={"bid_id": b1["id"]}, headers=buyer_h)
    assert resp.status_code == 200, resp.text
    award = resp.json()
    assert award["material_request"]["status"] == "PO_READY"
    assert award["rfq"]["status"] == "CLOSED"
    assert award["rfq"]["awarded_bid_id"] == b1["id"]
    assert award["bid"]["status"] == "SUBMITTED"

    # 11. RFQ closed for bidding
    resp = await client.post(
        f"{API}/rfqs/{rfq_id}/bids",
        json={"pricing_mode": "lumpsum", "lumpsum_cents": 80, "delivery_timeline": "1 week"},
        headers=a_h,
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "RFQ_NOT_OPEN"

    # 12. Order placed, history and board
    await client.post(f"{API}/material-requests/{mr_id}/transition", json={"status": "ORDER_PLACED"}, headers=buyer_h)
    history = (await client.get(f"{API}/material-requests/{mr_id}/history", headers=buyer_h)).json()
    assert [h["action"] for h in history] == [
        "MATERIAL_REQUEST_CREATED",
        "RFQ_INITIATED",
        "STATUS_CHANGED",
        "BID_AWARDED",
        "STATUS_CHANGED",
    ]
    board = (await client.get(f"{API}/material-requests/board", headers=buyer_h)).json()
    columns = {c["id"]: [r["id"] for r in c["requests"]] for c in board}
    assert mr_id in columns["ordered"]
    assert str(seeded["mr"].id) in columns["rfq"]


@pytest.mark.asyncio
async def test_blank_material_name_rejected(client, seeded, site_engineer, auth_headers, store):
    resp = await _create_request(
        client, auth_headers(site_engineer), str(seeded["project"].id),
        materials=[{"name": "   ", "spec": "anything"}],
    )
    assert resp.status_code == 422
    listing = (await client.get(f"{API}/material-requests", headers=auth_headers(site_engineer))).json()
    assert listing["pagination"]["total"] == 1  # only the seeded request


@pytest.mark.asyncio
async def test_execution_role_cannot_issue_rfq(client, seeded, site_engineer, auth_headers):
    resp = await client.post(
        f"{API}/material-requests/{seeded['mr'].id}/rfq",
        json={"invited_vendor_ids": [str(seeded["vendors"][0].id)], "deadline": _deadline()},
        headers=auth_headers(site_engineer),
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
async def test_requests_need_a_token(client, seeded):
    resp = await client.get(f"{API}/material-requests")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_TOKEN_MISSING"


@pytest.mark.asyncio
async def test_status_filter_and_unknown_status(client, seeded, buyer, auth_headers):
    h = auth_headers(buyer)
    ok = (await client.get(f"{API}/material-requests?status=RFQ_PENDING,BIDDING_OPEN", headers=h)).json()
    assert ok["pagination"]["total"] == 1
    bad = await client.get(f"{API}/material-requests?status=SHIPPED", headers=h)
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_vendor_profile_and_catalogue(client, seeded, buyer, as_vendor, auth_headers):
    vendor = seeded["vendors"][1]
    me = (await client.get(f"{API}/vendors/me", headers=auth_headers(as_vendor(vendor)))).json()
    assert me["id"] == str(vendor.id)
    assert me["rating"] == pytest.approx(4.9)

    painting = (await client.get(f"{API}/vendors?category=Painting", headers=auth_headers(buyer))).json()
    assert [v["name"] for v in painting] == ["Paint Masters"]

    resp = await client.post(
        f"{API}/vendors",
        json={"name": "Glass Co", "category": "Glazing", "email": "info@paintmasters.com"},
        headers=auth_headers(buyer),
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_close_rfq_endpoint(client, seeded, buyer, auth_headers):
    h = auth_headers(buyer)
    rfq = (await client.post(
        f"{API}/material-requests/{seeded['mr'].id}/rfq",
        json={"invited_vendor_ids": [str(seeded["vendors"][0].id)], "deadline": _deadline()},
        headers=h,
    )).json()

    resp = await client.post(f"{API}/rfqs/{rfq['id']}/close", headers=h)
    assert resp.status_code == 200
    assert resp.json()["status"] == "CLOSED"
    assert resp.json()["closed_at"] is not None
    again = await client.post(f"{API}/rfqs/{rfq['id']}/close", headers=h)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_route_events_are_logged(client, seeded, buyer, as_vendor, auth_headers):
    vendor_a, vendor_b, _ = seeded["vendors"]
    buyer_h = auth_headers(buyer)

    with capture_logs() as logs:
        rfq = (await client.post(
            f"{API}/material-requests/{seeded['mr'].id}/rfq",
            json={"invited_vendor_ids": [str(vendor_a.id), str(vendor_b.id)], "deadline": _deadline()},
            headers=buyer_h,
        )).json()
        # staff keying in a phoned-in quote
        bid = (await client.post(
            f"{API}/rfqs/{rfq['id']}/bids",
            json={"vendor_id": str(vendor_b.id), "pricing_mode": "lumpsum",
                  "lumpsum_cents": 500, "delivery_timeline": "1 week"},
            headers=buyer_h,
        )).json()
        denied = await client.get(f"{API}/bids/{bid['id']}", headers=auth_headers(as_vendor(vendor_a)))

    assert denied.status_code == 404
    events = {entry["event"]: entry for entry in logs}
    assert events["notification_queued"]["template_id"] == "rfq_issued"
    assert events["notification_queued"]["recipients"] == 2
    assert events["bid_entered_on_behalf"]["vendor_id"] == str(vendor_b.id)
    assert events["bid_lookup_denied"]["owner_id"] == str(vendor_b.id)
