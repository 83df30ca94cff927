"""
ProcurementStore: the single persistence interface for the bidding workflow.

Wraps the request's AsyncSession. Writes use session.flush() only; the
surrounding get_db() dependency owns commit/rollback, so every write made
while serving one request lands (or is rolled back) together.
"""

import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from api.models.audit_log import AuditLog
from api.models.bid import Bid, BidLineItem
from api.models.material_request import MaterialRequest
from api.models.project import Project
from api.models.rfq import Rfq, RfqLineItem
from api.models.vendor import Vendor


def as_uuid(value) -> Optional[uuid.UUID]:
    """Parse an id coming from a path or body; None when it is not a UUID."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


class ProcurementStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ---------- writes ----------

    async def add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def add_all(self, objs: Iterable):
        objs = list(objs)
        self.session.add_all(objs)
        await self.session.flush()
        return objs

    async def save(self, obj):
        """Flush pending attribute changes on an already-loaded row."""
        await self.session.flush()
        return obj

    # ---------- projects ----------

    async def get_project(self, project_id) -> Optional[Project]:
        pid = as_uuid(project_id)
        if pid is None:
            return None
        result = await self.session.execute(select(Project).where(Project.id == pid))
        return result.scalar_one_or_none()

    async def list_projects(self) -> list[Project]:
        result = await self.session.execute(select(Project).order_by(Project.name))
        return list(result.scalars().all())

    # ---------- vendors ----------

    async def get_vendor(self, vendor_id) -> Optional[Vendor]:
        vid = as_uuid(vendor_id)
        if vid is None:
            return None
        result = await self.session.execute(select(Vendor).where(Vendor.id == vid))
        return result.scalar_one_or_none()

    async def get_vendors(self, vendor_ids: Sequence) -> list[Vendor]:
        ids = [v for v in (as_uuid(i) for i in vendor_ids) if v is not None]
        if not ids:
            return []
        result = await self.session.execute(select(Vendor).where(Vendor.id.in_(ids)))
        return list(result.scalars().all())

    async def list_vendors(self, category: Optional[str] = None) -> list[Vendor]:
        q = select(Vendor).where(Vendor.is_active == True)  # noqa: E712
        if category:
            q = q.where(Vendor.category == category)
        result = await self.session.execute(q.order_by(Vendor.name))
        return list(result.scalars().all())

    async def find_vendor_by_email(self, email: str) -> Optional[Vendor]:
        result = await self.session.execute(
            select(Vendor)
            .where(Vendor.email == email, Vendor.is_active == True)  # noqa: E712
            .order_by(Vendor.created_at.asc())
        )
        return result.scalars().first()

    # ---------- material requests ----------

    async def get_material_request(
        self, mr_id, for_update: bool = False
    ) -> Optional[MaterialRequest]:
        mid = as_uuid(mr_id)
        if mid is None:
            return None
        q = select(MaterialRequest).where(MaterialRequest.id == mid)
        if for_update:
            q = q.with_for_update()
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def list_material_requests(
        self,
        statuses: Optional[Sequence[str]] = None,
        project_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[MaterialRequest], int]:
        q = select(MaterialRequest)
        count_q = select(func.count(MaterialRequest.id))
        if statuses:
            q = q.where(MaterialRequest.status.in_(list(statuses)))
            count_q = count_q.where(MaterialRequest.status.in_(list(statuses)))
        if project_id:
            pid = as_uuid(project_id)
            if pid is None:
                return [], 0
            q = q.where(MaterialRequest.project_id == pid)
            count_q = count_q.where(MaterialRequest.project_id == pid)

        total = (await self.session.execute(count_q)).scalar() or 0
        q = q.order_by(MaterialRequest.created_at.desc()).offset(offset)
        if limit is not None:
            q = q.limit(limit)
        result = await self.session.execute(q)
        return list(result.scalars().all()), total

    # ---------- RFQs ----------

    async def get_rfq(self, rfq_id, for_update: bool = False) -> Optional[Rfq]:
        rid = as_uuid(rfq_id)
        if rid is None:
            return None
        q = select(Rfq).where(Rfq.id == rid)
        if for_update:
            q = q.with_for_update()
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def get_rfq_for_request(self, mr_id) -> Optional[Rfq]:
        mid = as_uuid(mr_id)
        if mid is None:
            return None
        result = await self.session.execute(
            select(Rfq).where(Rfq.material_request_id == mid)
        )
        return result.scalar_one_or_none()

    async def list_rfqs(
        self,
        status: Optional[str] = None,
        invited_vendor_id: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[Rfq], int]:
        q = select(Rfq)
        count_q = select(func.count(Rfq.id))
        if status:
            q = q.where(Rfq.status == status)
            count_q = count_q.where(Rfq.status == status)
        if invited_vendor_id:
            invited = Rfq.invited_vendor_ids.contains([str(invited_vendor_id)])
            q = q.where(invited)
            count_q = count_q.where(invited)

        total = (await self.session.execute(count_q)).scalar() or 0
        q = q.order_by(Rfq.created_at.desc()).offset(offset)
        if limit is not None:
            q = q.limit(limit)
        result = await self.session.execute(q)
        return list(result.scalars().all()), total

    async def count_rfqs(self) -> int:
        result = await self.session.execute(select(func.count(Rfq.id)))
        return result.scalar() or 0

    async def list_rfq_items(self, rfq_ids: Sequence) -> list[RfqLineItem]:
        ids = [r for r in (as_uuid(i) for i in rfq_ids) if r is not None]
        if not ids:
            return []
        result = await self.session.execute(
            select(RfqLineItem)
            .where(RfqLineItem.rfq_id.in_(ids))
            .order_by(RfqLineItem.rfq_id, RfqLineItem.line_number)
        )
        return list(result.scalars().all())

    # ---------- bids ----------

    async def get_bid(self, bid_id) -> Optional[Bid]:
        bid_uuid = as_uuid(bid_id)
        if bid_uuid is None:
            return None
        result = await self.session.execute(select(Bid).where(Bid.id == bid_uuid))
        return result.scalar_one_or_none()

    async def list_bids(
        self, rfq_id=None, vendor_id=None
    ) -> list[Bid]:
        """Bids in log order: oldest submission first."""
        q = select(Bid)
        if rfq_id is not None:
            rid = as_uuid(rfq_id)
            if rid is None:
                return []
            q = q.where(Bid.rfq_id == rid)
        if vendor_id is not None:
            vid = as_uuid(vendor_id)
            if vid is None:
                return []
            q = q.where(Bid.vendor_id == vid)
        result = await self.session.execute(
            q.order_by(Bid.submitted_at.asc(), Bid.revision.asc())
        )
        return list(result.scalars().all())

    async def latest_revision(self, rfq_id, vendor_id) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.max(Bid.revision), 0)).where(
                Bid.rfq_id == as_uuid(rfq_id),
                Bid.vendor_id == as_uuid(vendor_id),
            )
        )
        return int(result.scalar() or 0)

    async def list_bid_items(self, bid_ids: Sequence) -> list[BidLineItem]:
        ids = [b for b in (as_uuid(i) for i in bid_ids) if b is not None]
        if not ids:
            return []
        result = await self.session.execute(
            select(BidLineItem).where(BidLineItem.bid_id.in_(ids))
        )
        return list(result.scalars().all())

    # ---------- audit ----------

    async def list_audit_logs(self, entity_type: str, entity_id) -> list[AuditLog]:
        eid = as_uuid(entity_id)
        if eid is None:
            return []
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == eid)
            .order_by(AuditLog.created_at.asc())
        )
        return list(result.scalars().all())
