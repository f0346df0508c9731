from __future__ import annotations

import logging
from typing import Any, Dict

from redis.exceptions import RedisError

from interview_navigator.core.datetime_utils import utcnow_naive
from interview_navigator.services.event_bus import EventBus, event_bus

logger = logging.getLogger("nav.notifications")

BOOKING_REQUEST = "booking_request"
BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_RESCHEDULED = "booking_rescheduled"
BOOKING_STATUS_CHANGED = "booking_status_changed"
REMINDER_24H = "reminder_24h"
REMINDER_1H = "reminder_1h"


class Notifier:
    """Fire-and-forget delivery of user notifications over the event bus."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or event_bus

    async def notify(self, user_id: str | None, template_type: str, payload: Dict[str, Any] | None = None) -> bool:
        if not user_id:
            return False
        message = {
            "kind": "notification",
            "user_id": user_id,
            "template_type": template_type,
            "payload": payload or {},
            "sent_at": utcnow_naive().isoformat(),
        }
        try:
            await self.bus.publish(message)
        except (RedisError, OSError, TypeError, ValueError) as exc:
            logger.warning(
                "notification_failed",
                extra={"user_id": user_id, "template_type": template_type, "error": str(exc)},
            )
            return False
        logger.info("notification_sent", extra={"user_id": user_id, "template_type": template_type})
        return True
