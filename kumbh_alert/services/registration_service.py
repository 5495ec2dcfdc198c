"""
Registration Service - entry-point QR self-registration.

Registrations are append-only: once written they are never updated or
deleted, and registered_at is fixed at creation.
"""

import asyncio
import json
import math
from datetime import datetime
from typing import Dict, Optional
import logging

from kumbh_alert.core.errors import StoreTimeout, ValidationFailed
from kumbh_alert.core.settings import settings
from kumbh_alert.models.registration import ENTRY_POINT_LABELS, Destination, RegistrationCreate
from kumbh_alert.models.user import Actor
from kumbh_alert.services.access_control import Action, authorize
from kumbh_alert.services.crowd_analytics import CrowdAnalyticsEngine, get_crowd_analytics_engine
from kumbh_alert.services.notification_dispatcher import CROWD_UPDATE, get_dispatcher
from kumbh_alert.store import get_registration_store
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SELFIE = "captured"


def is_valid_qr_code_id(value: str) -> bool:
    """
    Accept the bare registration id, or a JSON payload carrying it as
    `id` or `qrCodeId`.
    """
    trimmed = (value or "").strip()
    if trimmed == settings.VALID_QR_CODE_ID:
        return True
    try:
        parsed = json.loads(trimmed)
    except ValueError:
        return False
    if not isinstance(parsed, dict):
        return False
    return settings.VALID_QR_CODE_ID in (parsed.get("id"), parsed.get("qrCodeId"))


def crowd_update_event(registration: Dict) -> Dict:
    return {
        "destination": registration.get("intended_destination"),
        "groupSize": registration.get("group_size"),
        "timestamp": registration.get("registered_at"),
    }


class RegistrationService:
    def __init__(
        self,
        registration_store=None,
        dispatcher=None,
        analytics_engine: Optional[CrowdAnalyticsEngine] = None,
    ):
        self.registrations = registration_store or get_registration_store()
        self.dispatcher = dispatcher or get_dispatcher()
        self.analytics_engine = analytics_engine or get_crowd_analytics_engine()

    async def register(self, actor: Optional[Actor], data: RegistrationCreate) -> Dict:
        """
        Record a group's check-in at an entry point.

        The write is bounded by REGISTRATION_TIMEOUT_SECONDS. On expiry the
        caller gets StoreTimeout and nothing is retried; the abandoned write
        may still land later.

        Raises:
            ValidationFailed: QR payload is not a registration code
            StoreTimeout: The write did not complete in time
        """
        authorize(actor, Action.REGISTER_ENTRY)

        if not is_valid_qr_code_id(data.qr_code_id):
            raise ValidationFailed("Only Bharat Kumbh registration QR codes are accepted")

        entry_point_name = (data.entry_point_name or "").strip() or ENTRY_POINT_LABELS.get(data.entry_point, "Entry Point")
        is_other = data.intended_destination == Destination.OTHER

        fields = {
            "qr_code_id": data.qr_code_id,
            "entry_point": data.entry_point.value,
            "entry_point_name": entry_point_name,
            "registered_by": actor.id if actor else None,
            "group_size": data.group_size,
            "luggage_count": data.luggage_count,
            "intended_destination": data.intended_destination.value,
            "custom_destination": data.custom_destination if is_other else None,
            "group_selfie": (data.group_selfie or "").strip() or DEFAULT_GROUP_SELFIE,
            "location": data.to_location(),
            "contact_info": {"phone": data.contact_info.phone, "name": data.contact_info.name or ""},
            "registered_at": utc_now(),
        }

        loop = asyncio.get_running_loop()
        try:
            registration = await asyncio.wait_for(
                loop.run_in_executor(None, self.registrations.create, fields),
                timeout=settings.REGISTRATION_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"Registration write exceeded {settings.REGISTRATION_TIMEOUT_SECONDS}s")
            raise StoreTimeout("Database operation timeout")

        logger.info(
            f"Registration {registration['id']}: {registration['group_size']} people → "
            f"{registration['intended_destination']}"
        )
        self.dispatcher.publish(CROWD_UPDATE, crowd_update_event(registration))
        return registration

    def list_registrations(self, actor: Optional[Actor], page: int = 1, limit: int = 20) -> Dict:
        authorize(actor, Action.VIEW_REGISTRATIONS)
        page = max(page, 1)
        limit = max(limit, 1)

        registrations = self.registrations.query(limit=limit, offset=(page - 1) * limit)
        total = self.registrations.count()
        return {
            "registrations": registrations,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    def analytics(
        self,
        actor: Optional[Actor],
        destination: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict:
        authorize(actor, Action.VIEW_CROWD_ANALYTICS)
        return self.analytics_engine.registration_analytics(destination, start, end)

    def crowd_status(self, actor: Optional[Actor], destination: str) -> Dict:
        authorize(actor, Action.VIEW_CROWD_STATUS)
        return self.analytics_engine.crowd_status(destination)


# Global service instance
_registration_service = None


def get_registration_service() -> RegistrationService:
    """Get or create RegistrationService singleton."""
    global _registration_service
    if _registration_service is None:
        _registration_service = RegistrationService()
    return _registration_service
