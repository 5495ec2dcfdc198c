"""
Notification Dispatcher - fire-and-forget fan-out to live subscribers.

DESIGN PRINCIPLES:
- At-most-once: no queue, no replay, no persistence
- publish() never raises and never waits for delivery
- A subscriber whose send fails is dropped
- Domain-agnostic: event name + JSON-serializable payload, nothing more

Subscribers are anything with an async `send_json(message)`; in production
they are FastAPI WebSocket connections. Each message is delivered as
`{"event": <name>, "data": <payload>}`.
"""

import asyncio
import logging
from typing import Any, Dict, Set

from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

SOS_ALERT = "sos-alert"
EMERGENCY_NOTIFICATION = "emergency-notification"
CROWD_UPDATE = "crowd-update"


class NotificationDispatcher:
    """Broadcasts events to every currently-connected subscriber."""

    def __init__(self):
        self._subscribers: Set[Any] = set()
        self._pending: Set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect(self, websocket) -> None:
        await websocket.accept()
        self.subscribe(websocket)

    def subscribe(self, subscriber) -> None:
        self._subscribers.add(subscriber)
        logger.info(f"Notification subscriber connected ({self.subscriber_count} live)")

    def unsubscribe(self, subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            logger.info(f"Notification subscriber disconnected ({self.subscriber_count} live)")

    def publish(self, event_name: str, payload: Dict) -> None:
        """
        Schedule delivery of an event to all subscribers and return at once.

        Called after a successful mutation; a failure here is logged and
        otherwise ignored so it can never undo or delay that mutation.
        """
        if not self._subscribers:
            return

        try:
            message = {"event": event_name, "data": jsonable_encoder(payload)}
        except Exception as e:
            logger.warning(f"Dropping {event_name} event, payload not serializable: {e}")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Dropping {event_name} event, no running event loop")
            return

        for subscriber in list(self._subscribers):
            task = loop.create_task(self._send(subscriber, event_name, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send(self, subscriber, event_name: str, message: Dict) -> None:
        try:
            await subscriber.send_json(message)
        except Exception as e:
            logger.warning(f"Failed to deliver {event_name}, dropping subscriber: {e}")
            self.unsubscribe(subscriber)


# Global dispatcher instance
_dispatcher = None


def get_dispatcher() -> NotificationDispatcher:
    """Get or create NotificationDispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
