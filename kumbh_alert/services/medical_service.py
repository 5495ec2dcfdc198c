"""
Medical Service - medical case intake and care workflow.

Lifecycle: pending → in-progress (on assignment) → resolved.
Notes are append-only and only accepted while a case is not resolved.
Emergency or critical cases are broadcast to connected staff.
"""

from typing import Dict, List, Optional
import logging

from kumbh_alert.core.errors import InvalidTransition, NotFound
from kumbh_alert.models.medical import CaseStatus, CaseType, MedicalCaseCreate, Severity
from kumbh_alert.models.user import Actor
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.services.notification_dispatcher import EMERGENCY_NOTIFICATION, get_dispatcher
from kumbh_alert.services.status_workflow import MEDICAL_WORKFLOW
from kumbh_alert.store import get_medical_store
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)


def emergency_event(case: Dict) -> Dict:
    return {
        "id": case["id"],
        "caseType": case.get("case_type"),
        "severity": case.get("severity"),
        "location": case.get("location"),
        "createdAt": case.get("created_at"),
    }


def is_emergency(case: Dict) -> bool:
    return case.get("case_type") == CaseType.EMERGENCY.value or case.get("severity") == Severity.CRITICAL.value


class MedicalService:
    def __init__(self, medical_store=None, dispatcher=None):
        self.cases = medical_store or get_medical_store()
        self.dispatcher = dispatcher or get_dispatcher()

    def create_case(self, actor: Actor, data: MedicalCaseCreate) -> Dict:
        authorize(actor, Action.CREATE_MEDICAL_CASE)

        case = self.cases.create({
            "patient_id": data.patient_id or actor.id,
            "patient_name": data.patient_name or actor.name or "Unknown",
            "patient_age": data.patient_age,
            "patient_gender": data.patient_gender or "",
            "reported_by": actor.id,
            "case_type": data.case_type.value,
            "description": data.description,
            "medical_issue": data.medical_issue or data.description,
            "allergies": data.allergies or "",
            "emergency_contact": data.emergency_contact or "",
            "symptoms": list(data.symptoms),
            "severity": data.severity.value,
            "location": data.to_location(),
            "status": CaseStatus.PENDING.value,
            "assigned_to": None,
            "medical_notes": [],
            "resolved_at": None,
        })
        logger.info(f"Medical case {case['id']} created ({case['case_type']}, {case['severity']})")

        if is_emergency(case):
            self.dispatcher.publish(EMERGENCY_NOTIFICATION, emergency_event(case))
        return case

    def list_cases(
        self,
        actor: Actor,
        status: Optional[str] = None,
        case_type: Optional[str] = None,
        severity: Optional[str] = None,
    ) -> List[Dict]:
        authorize(actor, Action.MANAGE_MEDICAL_CASE)
        return self.cases.query({"status": status, "case_type": case_type, "severity": severity})

    def my_cases(self, actor: Actor) -> List[Dict]:
        """Cases where the actor is the patient or the reporter."""
        authorize(actor, Action.VIEW_OWN_MEDICAL_CASES)
        by_id = {case["id"]: case for case in self.cases.query({"patient_id": actor.id})}
        for case in self.cases.query({"reported_by": actor.id}):
            by_id.setdefault(case["id"], case)
        return sorted(by_id.values(), key=lambda case: case["created_at"], reverse=True)

    def _get(self, case_id: str) -> Dict:
        case = self.cases.get_by_id(case_id)
        if case is None:
            raise NotFound("Medical case not found")
        return case

    def assign(self, actor: Actor, case_id: str, assigned_to: str) -> Dict:
        authorize(actor, Action.MANAGE_MEDICAL_CASE)
        case = self._get(case_id)
        MEDICAL_WORKFLOW.validate_transition(case_id, case.get("status"), CaseStatus.IN_PROGRESS.value)

        updated = self.cases.update(case_id, {
            "assigned_to": assigned_to,
            "status": CaseStatus.IN_PROGRESS.value,
        })
        logger.info(f"Medical case {case_id} assigned to {assigned_to} by {actor.id}")
        return updated

    def add_note(self, actor: Actor, case_id: str, note: str) -> Dict:
        authorize(actor, Action.MANAGE_MEDICAL_CASE)
        case = self._get(case_id)
        if case.get("status") == CaseStatus.RESOLVED.value:
            raise InvalidTransition("Cannot add notes to a resolved medical case")

        entry = {"note": note, "added_by": actor.id, "added_at": utc_now()}
        return self.cases.append(case_id, "medical_notes", [entry])

    def resolve(self, actor: Actor, case_id: str) -> Dict:
        authorize(actor, Action.MANAGE_MEDICAL_CASE)
        case = self._get(case_id)
        MEDICAL_WORKFLOW.validate_transition(case_id, case.get("status"), CaseStatus.RESOLVED.value)

        updated = self.cases.update(case_id, {
            "status": CaseStatus.RESOLVED.value,
            "resolved_at": utc_now(),
        })
        logger.info(f"Medical case {case_id} resolved by {actor.id}")
        return updated


# Global service instance
_medical_service = None


def get_medical_service() -> MedicalService:
    """Get or create MedicalService singleton."""
    global _medical_service
    if _medical_service is None:
        _medical_service = MedicalService()
    return _medical_service
