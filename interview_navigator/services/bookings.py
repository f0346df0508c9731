from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar
from uuid import uuid4

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.booking_machine import (
    ACCEPTED,
    ALL_STATUSES,
    BOOKING_TYPE_AI,
    BOOKING_TYPE_LIVE,
    BOOKING_TYPES,
    CANCELLED,
    PENDING,
    can_transition,
    initial_status,
    is_active_status,
    normalize_status,
    requires_interviewer,
)
from interview_navigator.core.config import settings
from interview_navigator.core.datetime_utils import resolve_zone, to_utc_naive, utcnow_naive
from interview_navigator.core.errors import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from interview_navigator.models.booking import NavInterviewBooking
from interview_navigator.models.event import NavBookingEvent
from interview_navigator.models.user import NavUser
from interview_navigator.schemas.booking import BookingCreate
from interview_navigator.schemas.user import UserContext
from interview_navigator.services import notifications
from interview_navigator.services.availability_store import AvailabilityStore
from interview_navigator.services.booking_conflicts import (
    BookingGuard,
    booking_guard,
    claim_guard_version,
    has_conflict,
    read_guard_version,
)
from interview_navigator.services.events import log_booking_event, publish_booking_event
from interview_navigator.services.meetings import GoogleMeetProvisioner, MeetingProvisioner
from interview_navigator.services.notifications import Notifier
from interview_navigator.services.users import ensure_user_from_context, get_interviewer

logger = logging.getLogger("nav.bookings")

ROLE_CANDIDATE = "candidate"
ROLE_INTERVIEWER = "interviewer"
ROLE_SYSTEM = "system"

T = TypeVar("T")


class _GuardMoved(Exception):
    """Another writer bumped the interviewer's guard version first."""


def party_role(booking: NavInterviewBooking, user_id: str) -> str | None:
    if booking.interviewer_id and user_id == booking.interviewer_id:
        return ROLE_INTERVIEWER
    if user_id == booking.candidate_id:
        return ROLE_CANDIDATE
    return None


class BookingService:
    """Booking lifecycle against the store.

    Live bookings are written inside the interviewer's critical section:
    the in-process ``BookingGuard`` lock plus an optimistic version bump on
    ``nav_interviewer_booking_guard`` for writers in other processes.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        meetings: MeetingProvisioner | None = None,
        notifier: Notifier | None = None,
        guard: BookingGuard | None = None,
        enforce_availability: bool | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.session = session
        self.meetings = meetings or GoogleMeetProvisioner()
        self.notifier = notifier or Notifier()
        self.guard = guard or booking_guard
        self.enforce_availability = (
            settings.enforce_availability if enforce_availability is None else enforce_availability
        )
        self.max_attempts = max(1, max_attempts or settings.booking_max_attempts)

    # Validation

    def _check_duration(self, duration_minutes: int) -> None:
        if not settings.min_duration_minutes <= duration_minutes <= settings.max_duration_minutes:
            raise ValidationError(
                f"Duration must be between {settings.min_duration_minutes} and "
                f"{settings.max_duration_minutes} minutes"
            )

    async def _check_slot_free(
        self,
        interviewer_id: str,
        start: datetime,
        duration_minutes: int,
        exclude_booking_id: str | None = None,
    ) -> None:
        if self.enforce_availability:
            store = AvailabilityStore(self.session)
            if not await store.is_available_at(interviewer_id, start, duration_minutes):
                raise ConflictError("outside_availability")
        if await has_conflict(self.session, interviewer_id, start, duration_minutes, exclude_booking_id):
            raise ConflictError("Time slot not available")

    async def validate_booking_time(self, interviewer_id: str, start: datetime, duration_minutes: int) -> None:
        """Pre-check a live booking without writing. Raises on any problem."""
        self._check_duration(duration_minutes)
        await get_interviewer(self.session, interviewer_id)
        await self._check_slot_free(interviewer_id, to_utc_naive(start), duration_minutes)

    # Critical section

    @asynccontextmanager
    async def _hold(self, key: str | None) -> AsyncIterator[None]:
        if not key:
            yield
            return
        async with self.guard.hold(key):
            yield

    async def _run_guarded(self, interviewer_id: str, unit: Callable[[int | None], Awaitable[T]]) -> T:
        """Run ``unit`` and commit, retrying when another process moved the guard version."""
        async with self._hold(interviewer_id):
            for attempt in range(1, self.max_attempts + 1):
                try:
                    seen = await read_guard_version(self.session, interviewer_id)
                    result = await unit(seen)
                    if not await claim_guard_version(self.session, interviewer_id, seen):
                        raise _GuardMoved()
                    await self.session.commit()
                    return result
                except (_GuardMoved, IntegrityError):
                    await self.session.rollback()
                    logger.info(
                        "booking_guard_retry",
                        extra={"interviewer_id": interviewer_id, "attempt": attempt},
                    )
                except SchedulingError:
                    await self.session.rollback()
                    raise
                except SQLAlchemyError as exc:
                    await self.session.rollback()
                    logger.error("booking_write_failed", extra={"interviewer_id": interviewer_id, "error": str(exc)})
                    raise DependencyError("Booking store unavailable") from exc
        logger.warning("booking_guard_exhausted", extra={"interviewer_id": interviewer_id})
        raise DependencyError("Interviewer calendar is busy, please retry")

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("booking_commit_failed", extra={"error": str(exc)})
            raise DependencyError("Booking store unavailable") from exc

    # Reads

    async def _load(self, booking_id: str) -> NavInterviewBooking:
        try:
            booking = await self.session.get(NavInterviewBooking, booking_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise DependencyError("Booking store unavailable") from exc
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def get_booking(self, booking_id: str, actor: UserContext) -> NavInterviewBooking:
        booking = await self._load(booking_id)
        if party_role(booking, actor.user_id) is None:
            raise AuthorizationError("Not authorized to view this booking")
        return booking

    async def list_user_bookings(
        self,
        user_id: str,
        *,
        statuses: Iterable[str] | None = None,
        booking_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[NavInterviewBooking]:
        query = select(NavInterviewBooking).where(
            or_(NavInterviewBooking.candidate_id == user_id, NavInterviewBooking.interviewer_id == user_id)
        )
        if statuses:
            normalized = [normalize_status(item) for item in statuses]
            unknown = [item for item in normalized if item not in ALL_STATUSES]
            if unknown:
                raise ValidationError(f"Unknown status {unknown[0]!r}")
            query = query.where(NavInterviewBooking.status.in_(normalized))
        if booking_type:
            if booking_type not in BOOKING_TYPES:
                raise ValidationError(f"Unknown booking type {booking_type!r}")
            query = query.where(NavInterviewBooking.booking_type == booking_type)
        if start is not None:
            query = query.where(NavInterviewBooking.scheduled_start_at >= to_utc_naive(start))
        if end is not None:
            query = query.where(NavInterviewBooking.scheduled_start_at <= to_utc_naive(end))
        query = query.order_by(NavInterviewBooking.scheduled_start_at.asc(), NavInterviewBooking.created_at.asc())
        try:
            rows = (await self.session.execute(query)).scalars().all()
        except SQLAlchemyError as exc:
            raise DependencyError("Booking store unavailable") from exc
        logger.info("user_bookings_listed", extra={"user_id": user_id, "count": len(rows)})
        return list(rows)

    async def list_events(self, booking_id: str) -> list[NavBookingEvent]:
        result = await self.session.execute(
            select(NavBookingEvent)
            .where(NavBookingEvent.booking_id == booking_id)
            .order_by(NavBookingEvent.booking_event_id.asc())
        )
        return list(result.scalars().all())

    # Writes

    async def create_booking(self, candidate: UserContext, payload: BookingCreate) -> NavInterviewBooking:
        self._check_duration(payload.duration_minutes)
        resolve_zone(payload.timezone)
        start = to_utc_naive(payload.scheduled_start_at)
        end = start + timedelta(minutes=payload.duration_minutes)
        booking_id = uuid4().hex
        status = initial_status(payload.booking_type)

        def build(interviewer: NavUser | None) -> NavInterviewBooking:
            now = utcnow_naive()
            return NavInterviewBooking(
                booking_id=booking_id,
                candidate_id=candidate.user_id,
                candidate_name=payload.candidate_name or candidate.full_name,
                candidate_email=str(payload.candidate_email or candidate.email or "") or None,
                interviewer_id=interviewer.user_id if interviewer else None,
                interviewer_name=interviewer.display_name if interviewer else None,
                interviewer_email=interviewer.email if interviewer else None,
                booking_type=payload.booking_type,
                status=status,
                scheduled_start_at=start,
                scheduled_end_at=end,
                duration_minutes=payload.duration_minutes,
                timezone=payload.timezone.strip(),
                role=payload.role,
                skills=list(payload.skills),
                difficulty=payload.difficulty,
                created_at=now,
                updated_at=now,
            )

        if payload.booking_type == BOOKING_TYPE_AI:
            # No interviewer time is held, so no critical section.
            booking = build(None)
            try:
                await ensure_user_from_context(self.session, candidate)
                self.session.add(booking)
                event = await log_booking_event(
                    self.session,
                    booking_id=booking_id,
                    action_type="booking_created",
                    to_status=status,
                    actor_id=candidate.user_id,
                    meta_json={"booking_type": payload.booking_type},
                )
            except SQLAlchemyError as exc:
                await self.session.rollback()
                raise DependencyError("Booking store unavailable") from exc
            await self._commit()
        else:
            interviewer_id = payload.interviewer_id or ""
            if interviewer_id == candidate.user_id:
                raise ValidationError("Interviewers cannot book themselves")

            async def unit(_seen: int | None) -> tuple[NavInterviewBooking, NavBookingEvent]:
                interviewer = await get_interviewer(self.session, interviewer_id)
                await self._check_slot_free(interviewer_id, start, payload.duration_minutes)
                await ensure_user_from_context(self.session, candidate)
                row = build(interviewer)
                self.session.add(row)
                audit = await log_booking_event(
                    self.session,
                    booking_id=booking_id,
                    action_type="booking_created",
                    to_status=status,
                    actor_id=candidate.user_id,
                    meta_json={"booking_type": payload.booking_type, "interviewer_id": interviewer_id},
                )
                return row, audit

            booking, event = await self._run_guarded(interviewer_id, unit)

        logger.info(
            "booking_created",
            extra={
                "booking_id": booking.booking_id,
                "booking_type": booking.booking_type,
                "interviewer_id": booking.interviewer_id,
                "status": booking.status,
            },
        )
        await publish_booking_event(event)
        if booking.booking_type == BOOKING_TYPE_LIVE:
            await self.notifier.notify(
                booking.interviewer_id,
                notifications.BOOKING_REQUEST,
                self._payload(booking),
            )
        return booking

    async def transition(
        self,
        booking_id: str,
        to_status: str,
        actor: UserContext | None,
        reason: str | None = None,
    ) -> NavInterviewBooking:
        """Move a booking along the lifecycle. ``actor=None`` is a system transition."""
        target = normalize_status(to_status)
        if target not in ALL_STATUSES:
            raise ValidationError(f"Unknown status {to_status!r}")

        booking = await self._load(booking_id)
        async with self._hold(booking.interviewer_id or booking.booking_id):
            booking = await self._load(booking_id)
            if actor is None:
                role = ROLE_SYSTEM
            else:
                role = party_role(booking, actor.user_id)
                if role is None:
                    raise AuthorizationError("Not authorized to update this booking")
                if requires_interviewer(target) and role != ROLE_INTERVIEWER:
                    raise AuthorizationError(f"Only the interviewer can move a booking to {target}")

            from_status = booking.status
            if not can_transition(from_status, target):
                raise ConflictError(f"Cannot move booking from {from_status} to {target}")

            now = utcnow_naive()
            booking.status = target
            booking.updated_at = now
            if target == CANCELLED:
                booking.cancelled_by = role
                booking.cancellation_reason = reason
                booking.cancelled_at = now
            try:
                event = await log_booking_event(
                    self.session,
                    booking_id=booking.booking_id,
                    action_type="status_changed",
                    from_status=from_status,
                    to_status=target,
                    actor_id=actor.user_id if actor else None,
                    meta_json={"reason": reason} if reason else None,
                )
            except SQLAlchemyError as exc:
                await self.session.rollback()
                raise DependencyError("Booking store unavailable") from exc
            await self._commit()

        logger.info(
            "booking_status_changed",
            extra={"booking_id": booking_id, "from_status": from_status, "to_status": target, "actor": role},
        )
        await publish_booking_event(event)

        if target == ACCEPTED:
            await self._provision_meeting(booking)
            await self.notifier.notify(booking.candidate_id, notifications.BOOKING_CONFIRMED, self._payload(booking))
        elif target == CANCELLED:
            for user_id in self._counterparties(booking, role):
                await self.notifier.notify(user_id, notifications.BOOKING_CANCELLED, self._payload(booking))
        else:
            for user_id in self._counterparties(booking, role):
                await self.notifier.notify(user_id, notifications.BOOKING_STATUS_CHANGED, self._payload(booking))
        return booking

    async def reschedule(
        self,
        booking_id: str,
        new_start: datetime,
        actor: UserContext | None,
        duration_minutes: int | None = None,
    ) -> NavInterviewBooking:
        booking = await self._load(booking_id)
        role = ROLE_SYSTEM
        if actor is not None:
            role = party_role(booking, actor.user_id)
            if role is None:
                raise AuthorizationError("Not authorized to reschedule this booking")
        if not is_active_status(booking.status):
            raise ConflictError(f"Cannot reschedule a {booking.status} booking")

        duration = duration_minutes or booking.duration_minutes
        self._check_duration(duration)
        start = to_utc_naive(new_start)
        end = start + timedelta(minutes=duration)

        async def unit(_seen: int | None) -> NavBookingEvent:
            row = await self._load(booking_id)
            if not is_active_status(row.status):
                raise ConflictError(f"Cannot reschedule a {row.status} booking")
            if row.interviewer_id:
                await self._check_slot_free(row.interviewer_id, start, duration, exclude_booking_id=row.booking_id)
            from_status = row.status
            previous_start = row.scheduled_start_at
            row.scheduled_start_at = start
            row.scheduled_end_at = end
            row.duration_minutes = duration
            row.reminder_sent_at = None
            row.updated_at = utcnow_naive()
            if row.booking_type == BOOKING_TYPE_LIVE:
                # The interviewer accepts the new time again; the old meeting is stale.
                row.status = PENDING
                row.meeting_link = None
                row.meeting_id = None
                row.meeting_password = None
                row.meeting_provider = None
            return await log_booking_event(
                self.session,
                booking_id=row.booking_id,
                action_type="booking_rescheduled",
                from_status=from_status,
                to_status=row.status,
                actor_id=actor.user_id if actor else None,
                meta_json={"previous_start": previous_start, "new_start": start, "duration_minutes": duration},
            )

        if booking.interviewer_id:
            event = await self._run_guarded(booking.interviewer_id, unit)
        else:
            try:
                event = await unit(None)
            except SchedulingError:
                await self.session.rollback()
                raise
            except SQLAlchemyError as exc:
                await self.session.rollback()
                raise DependencyError("Booking store unavailable") from exc
            await self._commit()

        booking = await self._load(booking_id)
        logger.info(
            "booking_rescheduled",
            extra={"booking_id": booking_id, "scheduled_start_at": start.isoformat(), "actor": role},
        )
        await publish_booking_event(event)
        for user_id in self._counterparties(booking, role):
            await self.notifier.notify(user_id, notifications.BOOKING_RESCHEDULED, self._payload(booking))
        return booking

    # Collaborators

    async def _provision_meeting(self, booking: NavInterviewBooking) -> None:
        if booking.booking_type != BOOKING_TYPE_LIVE or booking.meeting_link:
            return
        participants = [email for email in (booking.candidate_email, booking.interviewer_email) if email]
        try:
            meeting = await self.meetings.create_meeting(
                booking.booking_id,
                booking.scheduled_start_at,
                booking.duration_minutes,
                participants,
            )
        except Exception:
            logger.exception("meeting_provision_failed", extra={"booking_id": booking.booking_id})
            return

        booking.meeting_link = meeting.url
        booking.meeting_id = meeting.meeting_id
        booking.meeting_password = meeting.password
        booking.meeting_provider = meeting.provider
        booking.updated_at = utcnow_naive()
        await self._commit()
        logger.info(
            "meeting_provisioned",
            extra={"booking_id": booking.booking_id, "provider": meeting.provider},
        )

    @staticmethod
    def _counterparties(booking: NavInterviewBooking, role: str) -> list[str]:
        if role == ROLE_CANDIDATE:
            return [booking.interviewer_id] if booking.interviewer_id else []
        if role == ROLE_INTERVIEWER:
            return [booking.candidate_id]
        return [user_id for user_id in (booking.candidate_id, booking.interviewer_id) if user_id]

    @staticmethod
    def _payload(booking: NavInterviewBooking) -> dict:
        return {
            "booking_id": booking.booking_id,
            "status": booking.status,
            "booking_type": booking.booking_type,
            "scheduled_start_at": booking.scheduled_start_at.isoformat(),
            "duration_minutes": booking.duration_minutes,
            "candidate_name": booking.candidate_name,
            "interviewer_name": booking.interviewer_name,
            "meeting_link": booking.meeting_link,
        }
