"""
Medical case endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import logging

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.models.medical import AssignRequest, CaseStatus, CaseType, MedicalCaseCreate, NoteRequest, Severity
from kumbh_alert.models.user import Actor
from kumbh_alert.routes.deps import get_current_actor
from kumbh_alert.services.medical_service import get_medical_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/medical", tags=["Medical"])


@router.post("/cases", status_code=status.HTTP_201_CREATED)
async def create_case(request: MedicalCaseCreate, actor: Actor = Depends(get_current_actor)):
    """
    Open a medical case.

    Emergency-type and critical-severity cases are broadcast to staff as
    `emergency-notification`.
    """
    try:
        case = get_medical_service().create_case(actor, request)
        return {"success": True, "case": case}

    except AlertHubError:
        raise
    except Exception as e:
        logger.error(f"Failed to create medical case: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create medical case: {str(e)}"
        )


@router.get("/cases")
async def list_cases(
    status_filter: Optional[CaseStatus] = Query(None, alias="status"),
    case_type: Optional[CaseType] = Query(None),
    severity: Optional[Severity] = Query(None),
    actor: Actor = Depends(get_current_actor),
):
    cases = get_medical_service().list_cases(
        actor,
        status=status_filter.value if status_filter else None,
        case_type=case_type.value if case_type else None,
        severity=severity.value if severity else None,
    )
    return {"success": True, "count": len(cases), "cases": cases}


@router.get("/cases/my-cases")
async def my_cases(actor: Actor = Depends(get_current_actor)):
    cases = get_medical_service().my_cases(actor)
    return {"success": True, "count": len(cases), "cases": cases}


@router.put("/cases/{case_id}/assign")
async def assign_case(case_id: str, request: AssignRequest, actor: Actor = Depends(get_current_actor)):
    case = get_medical_service().assign(actor, case_id, request.assigned_to)
    return {"success": True, "case": case}


@router.put("/cases/{case_id}/add-note")
async def add_note(case_id: str, request: NoteRequest, actor: Actor = Depends(get_current_actor)):
    case = get_medical_service().add_note(actor, case_id, request.note)
    return {"success": True, "case": case}


@router.put("/cases/{case_id}/resolve")
async def resolve_case(case_id: str, actor: Actor = Depends(get_current_actor)):
    case = get_medical_service().resolve(actor, case_id)
    return {"success": True, "case": case}
