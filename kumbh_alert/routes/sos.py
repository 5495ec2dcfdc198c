"""
SOS endpoints.

Raising an SOS works without a session so that a pilgrim in trouble is
never blocked by login. Everything else needs a session; viewing all
alerts and moving them through their lifecycle is staff-only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.models.sos import Priority, SOSCreate, SOSStatus
from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor, get_optional_actor
from kumbh_alert.services.sos_service import get_sos_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sos", tags=["SOS"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_sos(request: SOSCreate, actor: Optional[Actor] = Depends(get_optional_actor)):
    """
    Raise an SOS alert.

    The alert is stored first and then broadcast to connected staff as
    `sos-alert`; a broadcast problem never fails the request.
    """
    try:
        sos = get_sos_service().create_sos(actor, request)
        return {"success": True, "sos": sos}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Failed to create SOS: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create SOS: {str(e)}"
        )


@router.get("")
async def list_sos(
    status_filter: Optional[SOSStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = Query(None),
    actor: Actor = Depends(get_current_actor),
):
    alerts = get_sos_service().list_sos(
        actor,
        status=status_filter.value if status_filter else None,
        priority=priority.value if priority else None,
    )
    return {"success": True, "count": len(alerts), "sos": alerts}


@router.get("/my-sos")
async def my_sos(actor: Actor = Depends(get_current_actor)):
    alerts = get_sos_service().my_sos(actor)
    return {"success": True, "count": len(alerts), "sos": alerts}


@router.put("/{sos_id}/acknowledge")
async def acknowledge_sos(sos_id: str, actor: Actor = Depends(get_current_actor)):
    """Acknowledge a pending alert; the acknowledging staff member is assigned."""
    sos = get_sos_service().acknowledge(actor, sos_id)
    return {"success": True, "sos": sos}


@router.put("/{sos_id}/resolve")
async def resolve_sos(sos_id: str, actor: Actor = Depends(get_current_actor)):
    sos = get_sos_service().resolve(actor, sos_id)
    return {"success": True, "sos": sos}
