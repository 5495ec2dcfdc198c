"""
Lost & Found Service - report intake and the workflows around matching.

Matching rules themselves live in the MatchingEngine; this service gates
each action and shapes reporter details for display.
"""

from typing import Dict, List, Optional
import logging

from kumbh_alert.models.lost_found import LostFoundCreate, LostFoundStatus, PersonPhotoUpload, ReportType
from kumbh_alert.models.user import Actor
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.services.matching_engine import MatchingEngine, get_matching_engine
from kumbh_alert.store import get_lost_found_store, get_user_store

logger = logging.getLogger(__name__)


class LostFoundService:
    def __init__(self, report_store=None, user_store=None, matching_engine: Optional[MatchingEngine] = None):
        self.reports = report_store or get_lost_found_store()
        self.users = user_store or get_user_store()
        self.matching = matching_engine or get_matching_engine()

    def _new_report(self, actor: Actor, fields: Dict) -> Dict:
        report = self.reports.create({
            "reported_by": actor.id,
            "status": LostFoundStatus.OPEN.value,
            "matched_with": None,
            "matched_with_registration": None,
            "resolved_at": None,
            **fields,
        })
        logger.info(f"Lost/found report {report['id']} created ({report['type']}, person={report['is_person']})")
        return report

    def create_report(self, actor: Actor, data: LostFoundCreate) -> Dict:
        authorize(actor, Action.CREATE_LOST_FOUND)
        return self._new_report(actor, {
            "type": data.type.value,
            "item_name": data.item_name,
            "description": data.description or "",
            "location": data.to_location(),
            "contact_info": {"phone": data.phone, "email": data.email or ""},
            "images": list(data.images),
            "is_person": data.is_person,
            "facial_recognition_data": data.facial_recognition_data,
        })

    def list_reports(self, actor: Actor, type: Optional[str] = None, status: Optional[str] = None) -> List[Dict]:
        authorize(actor, Action.VIEW_LOST_FOUND)
        return self._with_reporter(self.reports.query({"type": type, "status": status}))

    def my_reports(self, actor: Actor) -> List[Dict]:
        authorize(actor, Action.VIEW_LOST_FOUND)
        return self._with_reporter(self.reports.query({"reported_by": actor.id}))

    def match(self, actor: Actor, report_id: str, matched_with_id: str) -> Dict:
        authorize(actor, Action.MATCH_LOST_FOUND)
        item, matched_item = self.matching.match_reports(report_id, matched_with_id)
        return {"item": item, "matched_item": matched_item}

    def resolve(self, actor: Actor, report_id: str) -> Dict:
        authorize(actor, Action.RESOLVE_LOST_FOUND)
        return self.matching.resolve_report(report_id)

    def upload_person_photo(self, actor: Actor, data: PersonPhotoUpload) -> Dict:
        """
        A volunteer records a found person and gets recent registrations as leads.

        The photo is stored as an opaque blob; no recognition is performed.
        """
        authorize(actor, Action.CORRELATE_PERSON)
        report = self._new_report(actor, {
            "type": ReportType.FOUND.value,
            "item_name": "Lost Person",
            "description": data.description or "Person found by volunteer",
            "location": data.to_location(),
            "contact_info": {"phone": actor.phone or "", "email": actor.email or ""},
            "images": [data.image],
            "is_person": True,
            "facial_recognition_data": data.image,
        })
        return {
            "lost_found": report,
            "potential_matches": self.matching.suggest_candidates(report),
        }

    def match_with_registration(self, actor: Actor, report_id: str, registration_id: str) -> Dict:
        authorize(actor, Action.CORRELATE_PERSON)
        return self.matching.correlate_person_report(report_id, registration_id)

    def _with_reporter(self, reports: List[Dict]) -> List[Dict]:
        """Replace reporter ids with a small public profile where the user exists."""
        profiles: Dict[str, Optional[Dict]] = {}
        enriched = []
        for report in reports:
            reporter_id = report.get("reported_by")
            if reporter_id and reporter_id not in profiles:
                user = self.users.get_by_id(reporter_id)
                profiles[reporter_id] = {
                    "id": user["id"],
                    "name": user.get("name"),
                    "email": user.get("email"),
                    "phone": user.get("phone"),
                } if user else None
            profile = profiles.get(reporter_id)
            enriched.append({**report, "reporter": profile} if profile else dict(report))
        return enriched


# Global service instance
_lost_found_service = None


def get_lost_found_service() -> LostFoundService:
    """Get or create LostFoundService singleton."""
    global _lost_found_service
    if _lost_found_service is None:
        _lost_found_service = LostFoundService()
    return _lost_found_service
