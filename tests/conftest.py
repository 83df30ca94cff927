import os
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional

# Settings are read at import time; pin them before anything imports api.config.
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DEMO_MODE"] = "false"
os.environ["UPSTASH_REDIS_REST_URL"] = ""
os.environ["BREVO_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import app
from api.middleware.store import get_store
from api.models.audit_log import AuditLog
from api.models.bid import Bid, BidLineItem
from api.models.material_request import MaterialRequest, MaterialRequestStatus
from api.models.project import Project
from api.models.rfq import Rfq, RfqLineItem
from api.models.vendor import Vendor
from api.services.auth_service import create_access_token
from api.services.store import as_uuid


# ---------------------------------------------------------------------------
# In-memory ProcurementStore
# ---------------------------------------------------------------------------

class InMemoryStore:
    """Same interface as api.services.store.ProcurementStore, backed by lists."""

    def __init__(self):
        self.rows: dict[type, list] = defaultdict(list)

    # ---------- writes ----------

    async def add(self, obj):
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
        self.rows[type(obj)].append(obj)
        return obj

    async def add_all(self, objs):
        objs = list(objs)
        for obj in objs:
            await self.add(obj)
        return objs

    async def save(self, obj):
        return obj

    def _get(self, model, obj_id):
        oid = as_uuid(obj_id)
        if oid is None:
            return None
        return next((o for o in self.rows[model] if o.id == oid), None)

    # ---------- projects ----------

    async def get_project(self, project_id):
        return self._get(Project, project_id)

    async def list_projects(self):
        return sorted(self.rows[Project], key=lambda p: p.name)

    # ---------- vendors ----------

    async def get_vendor(self, vendor_id):
        return self._get(Vendor, vendor_id)

    async def get_vendors(self, vendor_ids):
        ids = {as_uuid(i) for i in vendor_ids} - {None}
        return [v for v in self.rows[Vendor] if v.id in ids]

    async def list_vendors(self, category: Optional[str] = None):
        vendors = [v for v in self.rows[Vendor] if v.is_active]
        if category:
            vendors = [v for v in vendors if v.category == category]
        return sorted(vendors, key=lambda v: v.name)

    async def find_vendor_by_email(self, email):
        return next(
            (v for v in self.rows[Vendor] if v.email == email and v.is_active), None
        )

    # ---------- material requests ----------

    async def get_material_request(self, mr_id, for_update: bool = False):
        return self._get(MaterialRequest, mr_id)

    async def list_material_requests(self, statuses=None, project_id=None, offset=0, limit=None):
        rows = list(self.rows[MaterialRequest])
        if statuses:
            rows = [r for r in rows if r.status in statuses]
        if project_id:
            pid = as_uuid(project_id)
            rows = [r for r in rows if r.project_id == pid]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return rows[offset:end], len(rows)

    # ---------- RFQs ----------

    async def get_rfq(self, rfq_id, for_update: bool = False):
        return self._get(Rfq, rfq_id)

    async def get_rfq_for_request(self, mr_id):
        mid = as_uuid(mr_id)
        return next((r for r in self.rows[Rfq] if r.material_request_id == mid), None)

    async def list_rfqs(self, status=None, invited_vendor_id=None, offset=0, limit=None):
        rows = list(self.rows[Rfq])
        if status:
            rows = [r for r in rows if r.status == status]
        if invited_vendor_id:
            rows = [r for r in rows if str(invited_vendor_id) in r.invited_vendor_ids]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return rows[offset:end], len(rows)

    async def count_rfqs(self):
        return len(self.rows[Rfq])

    async def list_rfq_items(self, rfq_ids):
        ids = {as_uuid(i) for i in rfq_ids}
        items = [li for li in self.rows[RfqLineItem] if li.rfq_id in ids]
        return sorted(items, key=lambda li: (str(li.rfq_id), li.line_number))

    # ---------- bids ----------

    async def get_bid(self, bid_id):
        return self._get(Bid, bid_id)

    async def list_bids(self, rfq_id=None, vendor_id=None):
        rows = list(self.rows[Bid])
        if rfq_id is not None:
            rows = [b for b in rows if b.rfq_id == as_uuid(rfq_id)]
        if vendor_id is not None:
            rows = [b for b in rows if b.vendor_id == as_uuid(vendor_id)]
        return sorted(rows, key=lambda b: (b.submitted_at, b.revision))

    async def latest_revision(self, rfq_id, vendor_id):
        revisions = [
            b.revision for b in self.rows[Bid]
            if b.rfq_id == as_uuid(rfq_id) and b.vendor_id == as_uuid(vendor_id)
        ]
        return max(revisions, default=0)

    async def list_bid_items(self, bid_ids):
        ids = {as_uuid(i) for i in bid_ids}
        return [li for li in self.rows[BidLineItem] if li.bid_id in ids]

    # ---------- audit ----------

    async def list_audit_logs(self, entity_type, entity_id):
        eid = as_uuid(entity_id)
        return [
            a for a in self.rows[AuditLog]
            if a.entity_type == entity_type and a.entity_id == eid
        ]


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

BUYER = {"user_id": "user-buyer", "role": "procurement", "email": "buyer@makemyoffice.com", "vendor_id": None}
SITE_ENGINEER = {"user_id": "user-site", "role": "execution", "email": "site@makemyoffice.com", "vendor_id": None}


def vendor_actor(vendor: Vendor) -> dict:
    return {"user_id": f"user-{vendor.name}", "role": "vendor", "email": vendor.email, "vendor_id": None}


def headers_for(actor: dict) -> dict:
    token = create_access_token(
        user_id=actor["user_id"], role=actor["role"], email=actor["email"],
        vendor_id=actor.get("vendor_id"),
    )
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
async def seeded(store):
    """One project, three vendors and one RFQ_PENDING material request."""
    now = datetime.utcnow()
    project = await store.add(Project(name="HQ Remodel", client_name="Acme", created_at=now))
    vendors = []
    for name, category, email, rating, terms in [
        ("Furniture World", "Furniture", "vendor@makemyoffice.com", 4.8, "50% Advance"),
        ("Paint Masters", "Painting", "info@paintmasters.com", 4.9, "30 days Credit"),
        ("Super Woodworks", "Carpentry", "hello@superwood.com", 4.6, "Milestone Based"),
    ]:
        vendors.append(await store.add(Vendor(
            name=name, category=category, email=email, rating=rating,
            payment_terms=terms, is_active=True, created_at=now,
        )))
    mr = await store.add(MaterialRequest(
        project_id=project.id,
        project_name=project.name,
        materials=[
            {"name": "Wall Paint", "spec": "Azure Blue, 20 gallons"},
            {"name": "Acoustic Panels", "spec": "2x4ft, 50 units"},
        ],
        required_by=date.today() + timedelta(days=10),
        priority="Medium",
        status=MaterialRequestStatus.RFQ_PENDING.value,
        requested_by=SITE_ENGINEER["user_id"],
        created_at=now,
        updated_at=now,
    ))
    return {"project": project, "vendors": vendors, "mr": mr}


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def buyer() -> dict:
    return dict(BUYER)


@pytest.fixture
def site_engineer() -> dict:
    return dict(SITE_ENGINEER)


@pytest.fixture
def as_vendor():
    """Factory: actor dict for a vendor record's login."""
    return vendor_actor


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for an actor dict."""
    return headers_for
