from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    applicant_id = Column(Integer, ForeignKey("applicants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="PENDING")
    notes = Column(Text, nullable=True)
    interview_date = Column(DateTime(timezone=True), nullable=True)  # stored in UTC
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    applicant = relationship("Applicant", back_populates="applications")
    files = relationship(
        "ApplicationFile",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationFile.id",
    )
    events = relationship(
        "ApplicationStatusEvent",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStatusEvent.id",
    )
