from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base


class ApplicationStatusEvent(Base):
    """Audit row written for every status mutation, including admin overrides."""

    __tablename__ = "application_status_events"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(32), nullable=False)  # approve | reject | interview_result | override
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    notes = Column(Text, nullable=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    application = relationship("Application", back_populates="events")
    actor = relationship("User")
