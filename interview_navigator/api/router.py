from fastapi import APIRouter

from interview_navigator.api.routes import availability
from interview_navigator.api.routes import bookings
from interview_navigator.api.routes import notifications

api_router = APIRouter()
api_router.include_router(availability.router)
api_router.include_router(bookings.router)
api_router.include_router(notifications.router)
