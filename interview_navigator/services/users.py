from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.datetime_utils import utcnow_naive
from interview_navigator.core.errors import NotFoundError, ValidationError
from interview_navigator.models.user import USER_TYPE_CANDIDATE, USER_TYPE_INTERVIEWER, NavUser
from interview_navigator.schemas.user import UserContext


async def get_interviewer(session: AsyncSession, interviewer_id: str) -> NavUser:
    user = await session.get(NavUser, interviewer_id)
    if user is None:
        raise NotFoundError("Interviewer not found")
    if user.user_type != USER_TYPE_INTERVIEWER:
        raise ValidationError("User is not an interviewer")
    return user


async def ensure_user(
    session: AsyncSession,
    *,
    user_id: str,
    email: str | None = None,
    display_name: str | None = None,
    user_type: str | None = None,
    timezone: str | None = None,
) -> NavUser:
    """Create or refresh the single user record. Nothing is committed here."""
    user = await session.get(NavUser, user_id)
    now = utcnow_naive()
    if user is None:
        user = NavUser(
            user_id=user_id,
            email=email,
            display_name=display_name,
            user_type=user_type or USER_TYPE_CANDIDATE,
            timezone=timezone,
            created_at=now,
            updated_at=now,
        )
        session.add(user)
        return user

    if email and not user.email:
        user.email = email
    if display_name and not user.display_name:
        user.display_name = display_name
    # An interviewer stays an interviewer even when they also book as a candidate.
    if user_type == USER_TYPE_INTERVIEWER:
        user.user_type = USER_TYPE_INTERVIEWER
    if timezone:
        user.timezone = timezone
    user.updated_at = now
    return user


async def ensure_user_from_context(session: AsyncSession, user: UserContext) -> NavUser:
    return await ensure_user(
        session,
        user_id=user.user_id,
        email=str(user.email) if user.email else None,
        display_name=user.full_name,
    )
