from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.database import get_db
from api.services.store import ProcurementStore


async def get_store(db: AsyncSession = Depends(get_db)) -> ProcurementStore:
    """FastAPI dependency: the request-scoped store over the request's session."""
    return ProcurementStore(db)
