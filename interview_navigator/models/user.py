from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from interview_navigator.db.base import Base

USER_TYPE_CANDIDATE = "candidate"
USER_TYPE_INTERVIEWER = "interviewer"


class NavUser(Base):
    __tablename__ = "nav_user"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), default=USER_TYPE_CANDIDATE, index=True)
    # Single timezone per interviewer; every availability slot is expressed in it.
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
