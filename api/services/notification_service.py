"""
Notification service: template rendering and dispatch via email.

Recipients and context are resolved DURING the request (while DB session is
open), then dispatched via BackgroundTasks (fire-and-forget).
"""

from html import escape

import structlog

from api.config import settings
from api.models.bid import Bid
from api.models.rfq import Rfq
from api.models.vendor import Vendor
from api.services.email_service import send_email

logger = structlog.get_logger()

# ---------- Template registry ----------

TEMPLATES = {
    "rfq_issued": {
        "subject": "[{app_name}] RFQ {rfq_number} — Invitation to Bid",
        "html": (
            "<h2>Invitation to Bid</h2>"
            "<p>You have been invited to quote on <strong>{rfq_number}</strong> "
            "for project <strong>{project_name}</strong>.</p>"
            "<p><strong>Items:</strong> {item_count}</p>"
            "<p><strong>Bidding deadline:</strong> {deadline}</p>"
            "<p>Please log in to the vendor portal to submit your bid.</p>"
        ),
    },
    "bid_awarded": {
        "subject": "[{app_name}] RFQ {rfq_number} — Bid Awarded",
        "html": (
            "<h2>Bid Awarded</h2>"
            "<p>Dear {vendor_name},</p>"
            "<p>Your bid on <strong>{rfq_number}</strong> for project "
            "<strong>{project_name}</strong> has been "
            "<span style='color:green'>accepted</span>.</p>"
            "<p><strong>Amount:</strong> INR {amount_display}</p>"
            "<p>A purchase order will follow.</p>"
        ),
    },
}


def _format_amount(cents: int) -> str:
    """Convert cents to display string (e.g. 500000 → '5,000.00')."""
    return f"{cents / 100:,.2f}"


def rfq_issued_context(rfq: Rfq, item_count: int) -> dict:
    return {
        "rfq_number": rfq.rfq_number,
        "project_name": rfq.project_name,
        "item_count": item_count,
        "deadline": rfq.deadline.strftime("%d %b %Y"),
    }


def bid_awarded_context(rfq: Rfq, bid: Bid, vendor: Vendor) -> dict:
    return {
        "rfq_number": rfq.rfq_number,
        "project_name": rfq.project_name,
        "vendor_name": vendor.name,
        "amount_cents": bid.total_cents,
    }


async def send_notification(
    template_id: str,
    recipient_emails: list[str],
    context: dict,
) -> bool:
    """Render template and dispatch email."""
    template = TEMPLATES.get(template_id)
    if not template:
        logger.warning("notification_template_not_found", template_id=template_id)
        return False

    emails = [e for e in (recipient_emails or []) if e]
    if not emails:
        logger.warning("notification_no_recipients", template_id=template_id)
        return False

    context = {"app_name": settings.APP_NAME, **context}
    if "amount_cents" in context and "amount_display" not in context:
        context["amount_display"] = _format_amount(context["amount_cents"])

    try:
        subject = template["subject"].format(**context)
        html = template["html"].format(
            **{k: escape(v) if isinstance(v, str) else v for k, v in context.items()}
        )
    except KeyError as e:
        logger.error("notification_template_render_error", template_id=template_id, missing_key=str(e))
        return False

    result = await send_email(emails, subject, html, tags=[template_id])

    logger.info(
        "notification_sent",
        template_id=template_id,
        recipients=emails,
        success=result,
    )
    return result
