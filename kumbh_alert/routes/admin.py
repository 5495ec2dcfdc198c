"""
Admin endpoints - operational overview and account activation.

SCOPE OF ADMIN:
✅ View system-wide counts
✅ List users
✅ Activate / deactivate accounts

❌ NOT delete users
❌ NOT edit SOS, lost/found or medical records directly
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor
from kumbh_alert.services.dashboard_service import get_dashboard_service
from kumbh_alert.services.user_service import get_user_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/dashboard")
async def admin_dashboard(actor: Actor = Depends(get_current_actor)):
    return {"success": True, "dashboard": get_dashboard_service().admin_dashboard(actor)}


@router.get("/users")
async def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    actor: Actor = Depends(get_current_actor),
):
    users = get_user_service().list_users(actor, role=role)
    return {"success": True, "count": len(users), "users": users}


@router.put("/users/{user_id}/activate")
async def activate_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    return {"success": True, "user": get_user_service().set_active(actor, user_id, True)}


@router.put("/users/{user_id}/deactivate")
async def deactivate_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    """
    Deactivate an account.

    Existing sessions stay on record but every request they make is
    rejected with 401 until the account is reactivated.
    """
    return {"success": True, "user": get_user_service().set_active(actor, user_id, False)}
