"""
User endpoints - signup, login, profile and location.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.models.user import Actor, LocationUpdate, LoginRequest, UserCreate
from kumbh_alert.routes.deps import get_current_actor
from kumbh_alert.services.user_service import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def signup(request: UserCreate):
    """
    Create a pilgrim account and start a session.

    Staff accounts are seeded, never self-registered.
    """
    try:
        result = get_user_service().signup(
            name=request.name,
            email=request.email,
            phone=request.phone,
            password=request.password,
        )
        return {"success": True, **result}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Failed to create user: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error during registration"
        )


@router.post("/login")
async def login(request: LoginRequest):
    """
    Log in by email, user id, or staff shortcut (admin/volunteer/medical).
    """
    try:
        result = get_user_service().login(request.id or request.email or "", request.password)
        return {"success": True, **result}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error during login"
        )


@router.get("")
async def list_users(
    role: Optional[str] = Query(None, description="Filter by role"),
    actor: Actor = Depends(get_current_actor),
):
    users = get_user_service().list_users(actor, role=role)
    return {"success": True, "count": len(users), "users": users}


@router.get("/me")
async def get_me(actor: Actor = Depends(get_current_actor)):
    return {"success": True, "user": get_user_service().view_user(actor, actor.id)}


@router.put("/me/location")
async def update_my_location(request: LocationUpdate, actor: Actor = Depends(get_current_actor)):
    user = get_user_service().update_location(actor, request.latitude, request.longitude)
    return {"success": True, "user": user}


@router.get("/{user_id}")
async def get_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    return {"success": True, "user": get_user_service().view_user(actor, user_id)}
