"""
Volunteer endpoints - staff dashboard and assigned SOS tasks.
"""

from fastapi import APIRouter, Depends

from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor
from kumbh_alert.services.dashboard_service import get_dashboard_service

router = APIRouter(prefix="/api/volunteer", tags=["Volunteer"])


@router.get("/dashboard")
async def volunteer_dashboard(actor: Actor = Depends(get_current_actor)):
    return {"success": True, "dashboard": get_dashboard_service().staff_dashboard(actor)}


@router.get("/assigned-tasks")
async def assigned_tasks(actor: Actor = Depends(get_current_actor)):
    """Pending or acknowledged SOS alerts assigned to the caller."""
    tasks = get_dashboard_service().assigned_tasks(actor)
    return {"success": True, "count": len(tasks), "tasks": tasks}
