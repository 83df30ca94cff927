from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from api.middleware.auth import get_current_user
from api.middleware.authorization import SOURCING_ROLES, STAFF_ROLES, is_vendor, require_roles
from api.middleware.store import get_store
from api.models.vendor import Vendor
from api.schemas.vendor import VendorCreate, VendorResponse
from api.services.audit_service import create_audit_log
from api.services.store import ProcurementStore
from api.services.vendor_service import require_vendor_for_user

logger = structlog.get_logger()
router = APIRouter()


def _to_response(v: Vendor) -> VendorResponse:
    return VendorResponse(
        id=str(v.id),
        name=v.name,
        category=v.category,
        email=v.email,
        phone=v.phone,
        rating=float(v.rating) if v.rating is not None else None,
        payment_terms=v.payment_terms,
        specialization=v.specialization,
        is_active=bool(v.is_active),
        created_at=v.created_at.isoformat() if v.created_at else "",
    )


@router.get("", response_model=list[VendorResponse])
async def list_vendors(
    category: Optional[str] = Query(None),
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    """Active vendors, optionally narrowed to one trade category."""
    return [_to_response(v) for v in await store.list_vendors(category)]


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    body: VendorCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    if await store.find_vendor_by_email(body.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "VENDOR_DUPLICATE", "message": "A vendor with this email already exists"},
        )

    vendor = Vendor(
        name=body.name.strip(),
        category=body.category.strip(),
        email=body.email,
        phone=body.phone,
        rating=body.rating,
        payment_terms=body.payment_terms,
        specialization=body.specialization,
        is_active=True,
        created_at=datetime.utcnow(),
    )
    await store.add(vendor)
    await create_audit_log(
        store, current_user, "VENDOR_CREATED", "VENDOR", vendor.id,
        after_state={"name": vendor.name, "category": vendor.category, "email": vendor.email},
    )
    logger.info("vendor_created", vendor_id=str(vendor.id), category=vendor.category)
    return _to_response(vendor)


@router.get("/me", response_model=VendorResponse)
async def get_my_vendor(
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("vendor")),
    store: ProcurementStore = Depends(get_store),
):
    return _to_response(await require_vendor_for_user(store, current_user))


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    vendor_id: str,
    current_user: dict = Depends(get_current_user),
    store: ProcurementStore = Depends(get_store),
):
    vendor = await store.get_vendor(vendor_id)
    if not vendor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "Vendor not found"},
        )
    if is_vendor(current_user):
        own = await require_vendor_for_user(store, current_user)
        if own.id != vendor.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "NOT_FOUND", "message": "Vendor not found"},
            )
    return _to_response(vendor)
