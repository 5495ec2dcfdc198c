"""
Live notification channel.

Clients connect to /ws/notifications and receive every broadcast event as
`{"event": ..., "data": ...}`. The only inbound message understood is a
ping, answered with a pong. Frames that are not JSON are ignored.
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from kumbh_alert.services.notification_dispatcher import get_dispatcher
from kumbh_alert.utils.firestore_helpers import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


@router.websocket("/ws/notifications")
async def notifications(websocket: WebSocket):
    dispatcher = get_dispatcher()
    await dispatcher.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                logger.debug("Ignoring non-JSON frame on notification socket")
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong", "t": utc_now().isoformat()})
    except WebSocketDisconnect:
        pass
    finally:
        dispatcher.unsubscribe(websocket)
