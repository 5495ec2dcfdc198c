"""
Dashboard Service - operational counters for staff and admin views.
"""

from typing import Dict, List
import logging

from kumbh_alert.models.lost_found import LostFoundStatus
from kumbh_alert.models.medical import CaseStatus
from kumbh_alert.models.sos import SOSStatus
from kumbh_alert.models.user import Actor, Role
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.services.sos_service import OPEN_SOS_STATUSES
from kumbh_alert.store import get_lost_found_store, get_medical_store, get_sos_store, get_user_store

logger = logging.getLogger(__name__)


class DashboardService:
    """Counts computed on demand from the stores."""

    def __init__(self, user_store=None, sos_store=None, lost_found_store=None, medical_store=None):
        self.users = user_store or get_user_store()
        self.alerts = sos_store or get_sos_store()
        self.reports = lost_found_store or get_lost_found_store()
        self.cases = medical_store or get_medical_store()

    def admin_dashboard(self, actor: Actor) -> Dict:
        authorize(actor, Action.ADMIN_DASHBOARD)
        return {
            "users": {
                "total": self.users.count(),
                "volunteers": self.users.count({"role": Role.VOLUNTEER.value}),
                "medicalStaff": self.users.count({"role": Role.MEDICAL.value}),
            },
            "sos": {
                "pending": self.alerts.count({"status": SOSStatus.PENDING.value}),
                "resolved": self.alerts.count({"status": SOSStatus.RESOLVED.value}),
            },
            "lostFound": {
                "open": self.reports.count({"status": LostFoundStatus.OPEN.value}),
                "resolved": self.reports.count({"status": LostFoundStatus.RESOLVED.value}),
            },
            "medical": {
                "pending": self.cases.count({"status": CaseStatus.PENDING.value}),
                "resolved": self.cases.count({"status": CaseStatus.RESOLVED.value}),
            },
        }

    def staff_dashboard(self, actor: Actor) -> Dict:
        authorize(actor, Action.STAFF_DASHBOARD)
        return {
            "pendingSOS": self.alerts.count({"status": SOSStatus.PENDING.value}),
            "myAssignedSOS": self.alerts.count({"assigned_to": actor.id, "status__in": OPEN_SOS_STATUSES}),
            "openLostFound": self.reports.count({"status": LostFoundStatus.OPEN.value}),
        }

    def assigned_tasks(self, actor: Actor) -> List[Dict]:
        """Open SOS alerts currently assigned to the actor."""
        authorize(actor, Action.STAFF_DASHBOARD)
        return self.alerts.query({"assigned_to": actor.id, "status__in": OPEN_SOS_STATUSES})


# Global service instance
_dashboard_service = None


def get_dashboard_service() -> DashboardService:
    """Get or create DashboardService singleton."""
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService()
    return _dashboard_service
