from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from interview_navigator.db.base import Base


class NavInterviewBooking(Base):
    __tablename__ = "nav_interview_booking"
    __table_args__ = (Index("ix_nav_booking_interviewer_status", "interviewer_id", "status"),)

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    candidate_id: Mapped[str] = mapped_column(String(128), index=True)
    candidate_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    candidate_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    interviewer_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    interviewer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    interviewer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    booking_type: Mapped[str] = mapped_column(String(10))
    status: Mapped[str] = mapped_column(String(20))

    # Naive UTC.
    scheduled_start_at: Mapped[datetime] = mapped_column(DateTime)
    scheduled_end_at: Mapped[datetime] = mapped_column(DateTime)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")

    role: Mapped[str | None] = mapped_column(String(200), nullable=True)
    skills: Mapped[list | None] = mapped_column(JSON, nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(20), nullable=True)

    meeting_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meeting_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    meeting_password: Mapped[str | None] = mapped_column(String(64), nullable=True)
    meeting_provider: Mapped[str | None] = mapped_column(String(32), nullable=True)

    cancelled_by: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
