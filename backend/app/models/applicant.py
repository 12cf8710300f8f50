from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base


class Applicant(Base):
    __tablename__ = "applicants"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    # Submissions are deduplicated on lower-cased email
    email = Column(String(255), index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    position = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    # Mirrors the status of the latest application
    status = Column(String(32), nullable=False, default="PENDING", index=True)
    applied_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    updated_by = relationship("User")
    applications = relationship(
        "Application",
        back_populates="applicant",
        cascade="all, delete-orphan",
        order_by="Application.id",
    )
