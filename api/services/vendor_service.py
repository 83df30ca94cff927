# api/services/vendor_service.py
"""
Shared vendor lookup utilities used by multiple route modules.
"""

from typing import Optional

from fastapi import HTTPException, status

from api.models.vendor import Vendor
from api.services.store import ProcurementStore


async def resolve_vendor_for_user(
    store: ProcurementStore, current_user: dict
) -> Optional[Vendor]:
    """
    Look up the Vendor record for the authenticated vendor user.

    A token may name its vendor directly (``vendor_id`` claim); otherwise the
    user's email is matched against the vendor records' email.
    """
    if current_user.get("vendor_id"):
        vendor = await store.get_vendor(current_user["vendor_id"])
        if vendor and vendor.is_active:
            return vendor
        return None
    if not current_user.get("email"):
        return None
    return await store.find_vendor_by_email(current_user["email"])


async def require_vendor_for_user(
    store: ProcurementStore, current_user: dict
) -> Vendor:
    vendor = await resolve_vendor_for_user(store, current_user)
    if not vendor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "VENDOR_NOT_LINKED", "message": "No vendor profile linked to this account"},
        )
    return vendor
