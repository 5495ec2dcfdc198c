"""
Liveness and readiness probes.

`/health` answers as long as the process is up and reports the live
notification subscriber count. `/health/db` reads one record from every
entity collection, so a 200 means each store is reachable.
"""

import logging

from fastapi import APIRouter, HTTPException

from kumbh_alert.core.errors import AlertHubError
from kumbh_alert.core.settings import settings
from kumbh_alert.services.notification_dispatcher import get_dispatcher
from kumbh_alert.store import (
    get_lost_found_store,
    get_medical_store,
    get_registration_store,
    get_sos_store,
    get_user_store,
)
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

PROBED_STORES = (
    get_user_store,
    get_sos_store,
    get_lost_found_store,
    get_medical_store,
    get_registration_store,
)


@router.get("")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "notification_subscribers": get_dispatcher().subscriber_count,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/db")
async def database_health():
    """Probe every entity collection with a single-record read."""
    probed = []
    for get_store in PROBED_STORES:
        store = get_store()
        try:
            store.query(limit=1)
        except AlertHubError as e:
            logger.error(f"Readiness probe failed on {store.collection_name}: {e.message}")
            raise HTTPException(
                status_code=503,
                detail=f"Store {store.collection_name} unreachable: {e.message}",
            )
        probed.append(store.collection_name)

    return {
        "status": "healthy",
        "database": "mock" if settings.USE_MOCK_DB else "firestore",
        "connected": True,
        "collections": probed,
        "timestamp": utc_now().isoformat(),
    }
