"""
SOS Service - raise, list, acknowledge and resolve SOS alerts.

Lifecycle: pending → acknowledged → resolved (pending → resolved also
allowed). Nothing moves backwards; an acknowledged alert cannot be
re-acknowledged by someone else.
"""

from typing import Dict, List, Optional
import logging

from kumbh_alert.core.errors import NotFound
from kumbh_alert.models.sos import SOSCreate, SOSStatus
from kumbh_alert.models.user import Actor
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.services.notification_dispatcher import SOS_ALERT, get_dispatcher
from kumbh_alert.services.status_workflow import SOS_WORKFLOW
from kumbh_alert.store import get_sos_store
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)

OPEN_SOS_STATUSES = [SOSStatus.PENDING.value, SOSStatus.ACKNOWLEDGED.value]


def sos_alert_event(sos: Dict) -> Dict:
    return {
        "id": sos["id"],
        "userId": sos.get("user_id"),
        "location": sos.get("location"),
        "message": sos.get("message", ""),
        "priority": sos.get("priority"),
        "createdAt": sos.get("created_at"),
    }


class SOSService:
    def __init__(self, sos_store=None, dispatcher=None):
        self.alerts = sos_store or get_sos_store()
        self.dispatcher = dispatcher or get_dispatcher()

    def create_sos(self, actor: Optional[Actor], data: SOSCreate) -> Dict:
        """
        Record an SOS alert and broadcast it to staff.

        Anonymous callers (actor=None) are allowed; the alert then has no user_id.
        """
        authorize(actor, Action.CREATE_SOS)

        sos = self.alerts.create({
            "user_id": actor.id if actor else None,
            "location": data.to_location(),
            "message": data.message or "",
            "priority": data.priority.value,
            "status": SOSStatus.PENDING.value,
            "assigned_to": None,
            "resolved_at": None,
        })
        logger.info(f"SOS {sos['id']} raised ({sos['priority']}) by {sos['user_id'] or 'anonymous'}")

        self.dispatcher.publish(SOS_ALERT, sos_alert_event(sos))
        return sos

    def list_sos(self, actor: Actor, status: Optional[str] = None, priority: Optional[str] = None) -> List[Dict]:
        authorize(actor, Action.MANAGE_SOS)
        return self.alerts.query({"status": status, "priority": priority})

    def my_sos(self, actor: Actor) -> List[Dict]:
        authorize(actor, Action.VIEW_OWN_SOS)
        return self.alerts.query({"user_id": actor.id})

    def _get(self, sos_id: str) -> Dict:
        sos = self.alerts.get_by_id(sos_id)
        if sos is None:
            raise NotFound("SOS alert not found")
        return sos

    def acknowledge(self, actor: Actor, sos_id: str) -> Dict:
        authorize(actor, Action.MANAGE_SOS)
        sos = self._get(sos_id)
        SOS_WORKFLOW.validate_transition(sos_id, sos.get("status"), SOSStatus.ACKNOWLEDGED.value)

        updated = self.alerts.update(sos_id, {
            "status": SOSStatus.ACKNOWLEDGED.value,
            "assigned_to": actor.id,
        })
        logger.info(f"SOS {sos_id} acknowledged by {actor.id}")
        return updated

    def resolve(self, actor: Actor, sos_id: str) -> Dict:
        authorize(actor, Action.MANAGE_SOS)
        sos = self._get(sos_id)
        SOS_WORKFLOW.validate_transition(sos_id, sos.get("status"), SOSStatus.RESOLVED.value)

        updated = self.alerts.update(sos_id, {
            "status": SOSStatus.RESOLVED.value,
            "resolved_at": utc_now(),
        })
        logger.info(f"SOS {sos_id} resolved by {actor.id}")
        return updated


# Global service instance
_sos_service = None


def get_sos_service() -> SOSService:
    """Get or create SOSService singleton."""
    global _sos_service
    if _sos_service is None:
        _sos_service = SOSService()
    return _sos_service
