from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.models.event import NavBookingEvent
from interview_navigator.services.event_bus import event_bus


async def log_booking_event(
    session: AsyncSession,
    *,
    booking_id: str,
    action_type: str,
    from_status: str | None = None,
    to_status: str | None = None,
    actor_id: str | None = None,
    meta_json: Dict[str, Any] | None = None,
) -> NavBookingEvent:
    """Append an audit row to the current unit of work. The caller commits."""
    meta_text: Optional[str] = None
    if meta_json is not None:
        meta_text = json.dumps(meta_json, ensure_ascii=False, separators=(",", ":"), default=str)

    event = NavBookingEvent(
        booking_id=booking_id,
        action_type=action_type,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        meta_json=meta_text,
    )
    session.add(event)
    await session.flush()
    return event


async def publish_booking_event(event: NavBookingEvent) -> None:
    await event_bus.publish(
        {
            "kind": "booking_event",
            "event_id": event.booking_event_id,
            "booking_id": event.booking_id,
            "action_type": event.action_type,
            "from_status": event.from_status,
            "to_status": event.to_status,
        }
    )
