"""
Unit tests for api/services/store.py

The store's statements are compiled against the PostgreSQL dialect, so the
locking reads, JSONB inbox filter and bid log ordering are checked without a
running database (see tests/integration/test_store_postgres.py for that).
"""

import uuid

import pytest
from sqlalchemy.dialects import postgresql

from api.services.store import ProcurementStore, as_uuid


class _Result:
    def scalar_one_or_none(self):
        return None

    def scalar(self):
        return None

    def scalars(self):
        return self

    def all(self):
        return []

    def first(self):
        return None


class _RecordingSession:
    """Stands in for AsyncSession; keeps every statement handed to execute()."""

    def __init__(self):
        self.statements = []

    async def execute(self, statement):
        self.statements.append(statement)
        return _Result()

    def compiled(self, index=-1):
        return self.statements[index].compile(dialect=postgresql.dialect())

    def sql(self, index=-1) -> str:
        return " ".join(str(self.compiled(index)).split())


@pytest.fixture
def session():
    return _RecordingSession()


@pytest.fixture
def pg_store(session):
    return ProcurementStore(session)


def test_as_uuid_accepts_any_spelling():
    value = uuid.uuid4()
    assert as_uuid(str(value).upper()) == value
    assert as_uuid(value) is value
    assert as_uuid("not-a-uuid") is None
    assert as_uuid(None) is None


@pytest.mark.asyncio
async def test_material_request_read_locks_only_when_asked(pg_store, session):
    mr_id = str(uuid.uuid4())

    await pg_store.get_material_request(mr_id)
    assert "FOR UPDATE" not in session.sql()

    await pg_store.get_material_request(mr_id, for_update=True)
    assert session.sql().endswith("FOR UPDATE")


@pytest.mark.asyncio
async def test_rfq_read_for_update(pg_store, session):
    await pg_store.get_rfq(str(uuid.uuid4()), for_update=True)
    assert "FROM rfqs" in session.sql()
    assert session.sql().endswith("FOR UPDATE")


@pytest.mark.asyncio
async def test_malformed_ids_never_reach_the_database(pg_store, session):
    assert await pg_store.get_material_request("nope", for_update=True) is None
    assert await pg_store.get_rfq("nope") is None
    assert await pg_store.get_bid("nope") is None
    assert await pg_store.list_bids(rfq_id="nope") == []
    assert await pg_store.list_material_requests(project_id="nope") == ([], 0)
    assert session.statements == []


@pytest.mark.asyncio
async def test_vendor_inbox_filters_with_jsonb_containment(pg_store, session):
    vendor_id = str(uuid.uuid4())

    rows, total = await pg_store.list_rfqs(invited_vendor_id=vendor_id, offset=20, limit=10)

    assert (rows, total) == ([], 0)
    count_sql, page_sql = session.sql(0), session.sql(1)
    assert "count(rfqs.id)" in count_sql
    for sql in (count_sql, page_sql):
        assert "rfqs.invited_vendor_ids @>" in sql
    assert "ORDER BY rfqs.created_at DESC" in page_sql
    assert "LIMIT" in page_sql and "OFFSET" in page_sql
    assert [vendor_id] in session.compiled(1).params.values()


@pytest.mark.asyncio
async def test_bid_log_is_read_oldest_first(pg_store, session):
    await pg_store.list_bids(rfq_id=str(uuid.uuid4()))
    assert "ORDER BY bids.submitted_at ASC, bids.revision ASC" in session.sql()


@pytest.mark.asyncio
async def test_latest_revision_defaults_to_zero(pg_store, session):
    assert await pg_store.latest_revision(uuid.uuid4(), uuid.uuid4()) == 0
    sql = session.sql().lower()
    assert "coalesce(max(bids.revision)" in sql
    assert "bids.rfq_id =" in sql and "bids.vendor_id =" in sql


@pytest.mark.asyncio
async def test_history_is_read_in_creation_order(pg_store, session):
    await pg_store.list_audit_logs("MATERIAL_REQUEST", uuid.uuid4())
    sql = session.sql()
    assert "audit_logs.entity_type =" in sql
    assert "ORDER BY audit_logs.created_at ASC" in sql
