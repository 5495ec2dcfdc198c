"""
Entry-point registration endpoints.

Groups scan the official QR code at a railway station, bus stand or
parking area and register their size, luggage and destination. The
registration stream feeds crowd analytics.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.models.registration import RegistrationCreate
from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor, get_optional_actor
from kumbh_alert.services.registration_service import get_registration_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/registrations", tags=["Registrations"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegistrationCreate, actor: Optional[Actor] = Depends(get_optional_actor)):
    """
    Register a group at an entry point.

    **Rules:**
    - Only the official registration QR code is accepted (400 otherwise)
    - custom_destination is kept only when the destination is "Other"
    - A write that takes longer than the configured deadline returns 504

    Returns:
        The stored registration
    """
    try:
        registration = await get_registration_service().register(actor, request)
        return {
            "success": True,
            "message": "Registration successful",
            "registration": registration,
        }

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Registration failed: {str(e)}"
        )


@router.get("/analytics")
async def registration_analytics(
    destination: Optional[str] = Query(None, description="Limit to one destination"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    actor: Actor = Depends(get_current_actor),
):
    result = get_registration_service().analytics(actor, destination, start_date, end_date)
    return {"success": True, **result}


@router.get("/destinations/{destination}/crowd-status")
async def crowd_status(destination: str, actor: Optional[Actor] = Depends(get_optional_actor)):
    """Crowd level at a destination over the trailing hour."""
    result = get_registration_service().crowd_status(actor, destination)
    return {"success": True, **result}


@router.get("")
async def list_registrations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Optional[Actor] = Depends(get_optional_actor),
):
    result = get_registration_service().list_registrations(actor, page=page, limit=limit)
    return {"success": True, **result}
