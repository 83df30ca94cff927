"""
Store failures surfacing through the HTTP layer: a unique-constraint race on
RFQ creation maps to 409 CONFLICT, a dropped connection to 503.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from api.models.rfq import Rfq

API = "/api/v1"


@pytest.fixture
def racing_store(store, seeded, monkeypatch):
    """Store whose RFQ insert loses the race on uq_rfq_material_request."""
    original_add = store.add

    async def add(obj):
        if isinstance(obj, Rfq):
            raise IntegrityError(
                "INSERT INTO rfqs ...", {},
                Exception('duplicate key value violates unique constraint "uq_rfq_material_request"'),
            )
        return await original_add(obj)

    monkeypatch.setattr(store, "add", add)
    return store


@pytest.mark.asyncio
async def test_concurrent_rfq_insert_returns_conflict(client, racing_store, seeded, buyer, auth_headers):
    resp = await client.post(
        f"{API}/material-requests/{seeded['mr'].id}/rfq",
        json={
            "invited_vendor_ids": [str(seeded["vendors"][0].id)],
            "deadline": (datetime.utcnow() + timedelta(days=3)).isoformat(),
        },
        headers=auth_headers(buyer),
    )

    assert resp.status_code == 409
    assert resp.json() == {
        "error": {
            "code": "CONFLICT",
            "message": "The record was changed by another request, retry",
        }
    }
    assert racing_store.rows[Rfq] == []


@pytest.mark.asyncio
async def test_lost_connection_returns_store_unavailable(client, store, seeded, buyer, auth_headers, monkeypatch):
    async def boom(*args, **kwargs):
        raise OperationalError("SELECT ...", {}, Exception("connection refused"))

    monkeypatch.setattr(store, "list_material_requests", boom)

    resp = await client.get(f"{API}/material-requests", headers=auth_headers(buyer))

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_malformed_award_bid_id_is_a_validation_error(client, seeded, buyer, auth_headers):
    resp = await client.post(
        f"{API}/material-requests/{seeded['mr'].id}/award",
        json={"bid_id": "bid-1"},
        headers=auth_headers(buyer),
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
