from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol
from uuid import uuid4

import anyio
import google.auth
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from interview_navigator.core.config import settings
from interview_navigator.core.paths import resolve_repo_path

logger = logging.getLogger("nav.meetings")

PROVIDER_GOOGLE_MEET = "google-meet"
PROVIDER_DAILY = "daily"


@dataclass(frozen=True)
class MeetingLink:
    url: str
    meeting_id: str | None = None
    password: str | None = None
    provider: str | None = None


class MeetingProvisioner(Protocol):
    async def create_meeting(
        self,
        booking_id: str,
        start: datetime,
        duration_minutes: int,
        participants: list[str],
    ) -> MeetingLink: ...


def room_name(booking_id: str) -> str:
    return "interview-" + re.sub(r"[^a-z0-9]", "-", booking_id.lower())


def _calendar_client(subject_email: str | None = None):
    scopes = ["https://www.googleapis.com/auth/calendar"]
    service_account_path = settings.google_application_credentials
    if service_account_path:
        credentials = Credentials.from_service_account_file(str(resolve_repo_path(service_account_path)), scopes=scopes)
        subject = subject_email or settings.calendar_subject_email
        if subject:
            credentials = credentials.with_subject(subject)
    else:
        credentials, _ = google.auth.default(scopes=scopes)
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def _find_meeting_link(event: dict[str, Any]) -> str | None:
    link = event.get("hangoutLink")
    if link:
        return link
    conference = event.get("conferenceData") or {}
    for entry in conference.get("entryPoints", []) or []:
        if entry.get("entryPointType") == "video":
            return entry.get("uri")
    return None


def create_meet_event(
    *,
    booking_id: str,
    start_at: datetime,
    end_at: datetime,
    attendees: list[str],
) -> dict[str, Any]:
    """Blocking Calendar API call creating an event with a Meet conference."""
    tz = settings.calendar_timezone or "UTC"
    start_iso = start_at.replace(tzinfo=timezone.utc).isoformat()
    end_iso = end_at.replace(tzinfo=timezone.utc).isoformat()

    body = {
        "summary": "Mock interview",
        "description": f"Interview Navigator booking {booking_id}",
        "start": {"dateTime": start_iso, "timeZone": tz},
        "end": {"dateTime": end_iso, "timeZone": tz},
        "attendees": [{"email": email} for email in attendees if email],
        "conferenceData": {
            "createRequest": {
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
                "requestId": uuid4().hex,
            }
        },
    }

    service = _calendar_client()
    event = (
        service.events()
        .insert(
            calendarId=settings.calendar_id or "primary",
            body=body,
            conferenceDataVersion=1,
            sendUpdates="all",
        )
        .execute()
    )
    return {"event_id": event.get("id"), "meeting_link": _find_meeting_link(event)}


class GoogleMeetProvisioner:
    """Meet links through the Calendar API, or a deterministic room URL when disabled."""

    def __init__(self, *, enabled: bool | None = None, fallback_base_url: str | None = None) -> None:
        self.enabled = settings.enable_calendar if enabled is None else enabled
        self.fallback_base_url = (fallback_base_url or settings.meeting_fallback_base_url).rstrip("/")

    def fallback_link(self, booking_id: str) -> MeetingLink:
        name = room_name(booking_id)
        return MeetingLink(url=f"{self.fallback_base_url}/{name}", meeting_id=name, provider=PROVIDER_DAILY)

    async def create_meeting(
        self,
        booking_id: str,
        start: datetime,
        duration_minutes: int,
        participants: list[str],
    ) -> MeetingLink:
        if not self.enabled:
            return self.fallback_link(booking_id)

        end = start + timedelta(minutes=duration_minutes)
        response = await anyio.to_thread.run_sync(
            lambda: create_meet_event(booking_id=booking_id, start_at=start, end_at=end, attendees=participants)
        )
        url = response.get("meeting_link")
        if not url:
            logger.warning("meet_link_missing", extra={"booking_id": booking_id, "event_id": response.get("event_id")})
            return self.fallback_link(booking_id)
        return MeetingLink(url=url, meeting_id=response.get("event_id"), provider=PROVIDER_GOOGLE_MEET)
