"""
Unit tests for api/services/notification_service.py and email_service.py
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from api.models.bid import Bid
from api.models.rfq import Rfq
from api.models.vendor import Vendor
from api.services import notification_service
from api.services.email_service import build_payload
from api.services.notification_service import (
    _format_amount,
    bid_awarded_context,
    rfq_issued_context,
    send_notification,
)


def _rfq() -> Rfq:
    return Rfq(rfq_number="RFQ-2026-0007", project_name="HQ Remodel", deadline=datetime(2026, 11, 2, 18, 0))


def test_format_amount():
    assert _format_amount(12_345_678) == "123,456.78"


def test_payload_sends_one_copy_per_recipient():
    payload = build_payload(
        ["a@x.com", "b@y.com"], "Subject", "<p>hi</p>",
        sender_name="MMO", sender_email="noreply@mmo.test", tags=["rfq_issued"],
    )
    assert payload["messageVersions"] == [
        {"to": [{"email": "a@x.com"}]},
        {"to": [{"email": "b@y.com"}]},
    ]
    assert "to" not in payload
    assert payload["tags"] == ["rfq_issued"]


@pytest.mark.asyncio
async def test_rfq_issued_renders_and_sends():
    with patch.object(notification_service, "send_email", new=AsyncMock(return_value=True)) as send:
        ok = await send_notification(
            "rfq_issued", ["a@x.com", "", "b@y.com"], rfq_issued_context(_rfq(), 2)
        )

    assert ok is True
    emails, subject, html = send.await_args.args
    assert emails == ["a@x.com", "b@y.com"]
    assert "RFQ-2026-0007" in subject
    assert "02 Nov 2026" in html
    assert send.await_args.kwargs["tags"] == ["rfq_issued"]


@pytest.mark.asyncio
async def test_bid_awarded_includes_amount():
    vendor = Vendor(name="Paint Masters", email="info@paintmasters.com")
    bid = Bid(total_cents=9_500_000)
    with patch.object(notification_service, "send_email", new=AsyncMock(return_value=True)) as send:
        await send_notification(
            "bid_awarded", [vendor.email], bid_awarded_context(_rfq(), bid, vendor)
        )
    html = send.await_args.args[2]
    assert "95,000.00" in html
    assert "Paint Masters" in html


@pytest.mark.asyncio
async def test_unknown_template_or_no_recipients_skips_send():
    with patch.object(notification_service, "send_email", new=AsyncMock()) as send:
        assert await send_notification("nope", ["a@x.com"], {}) is False
        assert await send_notification("rfq_issued", [], rfq_issued_context(_rfq(), 1)) is False
    send.assert_not_awaited()


@pytest.mark.asyncio
async def test_html_body_escapes_names_but_subject_stays_plain():
    rfq = Rfq(rfq_number="RFQ-2026-0008", project_name="R&D <Lab>", deadline=datetime(2026, 11, 2))
    vendor = Vendor(name="<script>alert(1)</script>", email="x@y.com")
    with patch.object(notification_service, "send_email", new=AsyncMock(return_value=True)) as send:
        await send_notification(
            "bid_awarded", [vendor.email], bid_awarded_context(rfq, Bid(total_cents=100), vendor)
        )

    _, subject, html = send.await_args.args
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "R&amp;D &lt;Lab&gt;" in html
    assert "<h2>Bid Awarded</h2>" in html
    assert "RFQ-2026-0008" in subject
