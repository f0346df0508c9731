from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from interview_navigator.db.base import Base


class NavInterviewerBookingGuard(Base):
    """Per-interviewer version counter bumped by every booking write."""

    __tablename__ = "nav_interviewer_booking_guard"

    interviewer_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
