"""
Crowd Analytics Engine - destination totals and live crowd levels.

Everything here is recomputed from the registration stream on each call.
There are no maintained counters, so concurrent registrations never leave
a stale total behind.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional
import logging

from kumbh_alert.core.settings import settings
from kumbh_alert.store import get_registration_store
from kumbh_alert.utils.firestore_helpers import ensure_aware, utc_now

logger = logging.getLogger(__name__)


class CrowdLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


def classify_crowd_level(estimated_people: int) -> CrowdLevel:
    """
    Three-tier classification with inclusive upper bounds:
    500 is low, 501 and 1000 are moderate, 1001 is high.
    """
    if estimated_people > settings.CROWD_MODERATE_MAX:
        return CrowdLevel.HIGH
    if estimated_people > settings.CROWD_LOW_MAX:
        return CrowdLevel.MODERATE
    return CrowdLevel.LOW


class CrowdAnalyticsEngine:
    """Aggregations over entry-point registrations."""

    def __init__(self, registration_store=None):
        self.registrations = registration_store or get_registration_store()

    def _matching_registrations(
        self,
        destination: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict]:
        return self.registrations.query({
            "intended_destination": destination,
            "registered_at__gte": ensure_aware(start),
            "registered_at__lte": ensure_aware(end),
        })

    def aggregate_by_destination(
        self,
        destination: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict]:
        """
        Group registrations by destination.

        Returns:
            One entry per destination with total_groups, total_people,
            total_luggage and last_registration, ordered by total_people
            descending
        """
        totals: Dict[str, Dict] = defaultdict(lambda: {
            "total_groups": 0,
            "total_people": 0,
            "total_luggage": 0,
            "last_registration": None,
        })

        for registration in self._matching_registrations(destination, start, end):
            bucket = totals[registration.get("intended_destination")]
            bucket["total_groups"] += 1
            bucket["total_people"] += registration.get("group_size", 0)
            bucket["total_luggage"] += registration.get("luggage_count", 0)
            registered_at = registration.get("registered_at")
            if registered_at and (bucket["last_registration"] is None or registered_at > bucket["last_registration"]):
                bucket["last_registration"] = registered_at

        rows = [{"destination": name, **bucket} for name, bucket in totals.items()]
        rows.sort(key=lambda row: row["total_people"], reverse=True)
        return rows

    def crowd_status(self, destination: str, now: Optional[datetime] = None) -> Dict:
        """
        Live crowd level at a destination over the trailing window.

        Args:
            destination: Intended destination name
            now: Reference time (defaults to the current UTC time)

        Returns:
            Dict with estimated_people, crowd_level and groups_in_last_hour
        """
        now = ensure_aware(now) or utc_now()
        window_start = now - timedelta(minutes=settings.CROWD_WINDOW_MINUTES)

        recent = self._matching_registrations(destination, window_start, now)
        estimated_people = sum(registration.get("group_size", 0) for registration in recent)

        return {
            "destination": destination,
            "crowd_level": classify_crowd_level(estimated_people).value,
            "estimated_people": estimated_people,
            "groups_in_last_hour": len(recent),
            "timestamp": now,
        }

    def registration_analytics(
        self,
        destination: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        """Destination aggregation plus the number of registrations in the trailing window."""
        now = ensure_aware(now) or utc_now()
        window_start = now - timedelta(minutes=settings.CROWD_WINDOW_MINUTES)
        start = ensure_aware(start)
        recent_start = max(start, window_start) if start else window_start

        recent_count = self.registrations.count({
            "intended_destination": destination,
            "registered_at__gte": recent_start,
            "registered_at__lte": ensure_aware(end),
        })

        return {
            "analytics": self.aggregate_by_destination(destination, start, end),
            "recent_registrations": recent_count,
            "timestamp": now,
        }


# Global engine instance
_crowd_analytics_engine = None


def get_crowd_analytics_engine() -> CrowdAnalyticsEngine:
    """Get or create CrowdAnalyticsEngine singleton."""
    global _crowd_analytics_engine
    if _crowd_analytics_engine is None:
        _crowd_analytics_engine = CrowdAnalyticsEngine()
    return _crowd_analytics_engine
