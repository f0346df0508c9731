from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.auth import get_current_user
from interview_navigator.db.session import get_session
from interview_navigator.schemas.user import UserContext
from interview_navigator.services.bookings import BookingService


async def get_db_session() -> AsyncSession:
    async for session in get_session():
        yield session


async def get_user(user: UserContext = Depends(get_current_user)) -> UserContext:
    return user


async def get_booking_service(session: AsyncSession = Depends(get_db_session)) -> BookingService:
    return BookingService(session)
