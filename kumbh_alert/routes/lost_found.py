"""
Lost & Found endpoints.

Pairing a lost report with a found report, and correlating a found
person with an entry-point registration, both go through the
MatchingEngine via the LostFoundService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.models.lost_found import (
    LostFoundCreate,
    LostFoundStatus,
    MatchRequest,
    PersonPhotoUpload,
    RegistrationMatchRequest,
    ReportType,
)
from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor
from kumbh_alert.services.lost_found_service import get_lost_found_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lost-found", tags=["Lost & Found"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_report(request: LostFoundCreate, actor: Actor = Depends(get_current_actor)):
    try:
        report = get_lost_found_service().create_report(actor, request)
        return {"success": True, "lost_found": report}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Failed to create lost/found report: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create report: {str(e)}"
        )


@router.get("")
async def list_reports(
    type: Optional[ReportType] = Query(None),
    status_filter: Optional[LostFoundStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
):
    reports = get_lost_found_service().list_reports(
        actor,
        type=type.value if type else None,
        status=status_filter.value if status_filter else None,
    )
    return {"success": True, "count": len(reports), "lost_found": reports}


@router.get("/my-reports")
async def my_reports(actor: Actor = Depends(get_current_actor)):
    reports = get_lost_found_service().my_reports(actor)
    return {"success": True, "count": len(reports), "lost_found": reports}


@router.put("/{report_id}/match")
async def match_report(report_id: str, request: MatchRequest, actor: Actor = Depends(get_current_actor)):
    """
    Pair this report with one of the opposite type.

    Both reports end up `matched` and pointing at each other. If the second
    write fails the first is rolled back and a 500 is returned.
    """
    result = get_lost_found_service().match(actor, report_id, request.matched_with_id)
    return {"success": True, **result}


@router.put("/{report_id}/resolve")
async def resolve_report(report_id: str, actor: Actor = Depends(get_current_actor)):
    report = get_lost_found_service().resolve(actor, report_id)
    return {"success": True, "lost_found": report}


@router.post("/volunteer/upload-person-photo", status_code=status.HTTP_201_CREATED)
async def upload_person_photo(request: PersonPhotoUpload, actor: Actor = Depends(get_current_actor)):
    """
    Record a found person and list recent registrations as leads.

    No face recognition runs; potential_matches are the most recent
    registrations.
    """
    try:
        result = get_lost_found_service().upload_person_photo(actor, request)
        return {"success": True, **result}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Failed to upload person photo: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload person photo: {str(e)}"
        )


@router.post("/{report_id}/match-with-registration")
async def match_with_registration(
    report_id: str,
    request: RegistrationMatchRequest,
    actor: Actor = Depends(get_current_actor),
):
    result = get_lost_found_service().match_with_registration(actor, report_id, request.registration_id)
    return {"success": True, **result}
