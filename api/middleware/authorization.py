from fastapi import Depends, HTTPException, status

from api.middleware.auth import get_current_user

ROLE_HIERARCHY = {
    "admin": 100,
    "procurement_lead": 60,
    "procurement": 50,
    "execution": 30,
    "vendor": 10,
}

# Sourcing staff: may issue RFQs, compare and award bids.
SOURCING_ROLES = ("admin", "procurement_lead", "procurement")
# Anyone on the company side, including site execution who raise requests.
STAFF_ROLES = SOURCING_ROLES + ("execution",)


def require_roles(*allowed_roles: str):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("/{mr_id}/award")
        async def award(
            current_user: dict = Depends(get_current_user),
            _auth: None = Depends(require_roles(*SOURCING_ROLES)),
        ):
    """
    async def check_role(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": {
                        "code": "INSUFFICIENT_PERMISSIONS",
                        "message": (
                            f"Role '{current_user['role']}' cannot perform this action. "
                            f"Required: {allowed_roles}"
                        ),
                    }
                },
            )
        return None

    return check_role


def is_vendor(current_user: dict) -> bool:
    return current_user.get("role") == "vendor"
