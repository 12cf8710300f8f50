from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class ApplicationFile(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    # Public path, e.g. /uploads/cv-1725000000000-123456789.pdf
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(10), nullable=False)  # PHOTO | CV
    original_filename = Column(String(255), nullable=True)
    content_type = Column(String(120), nullable=True)
    size_bytes = Column(Integer, nullable=False, default=0)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    application = relationship("Application", back_populates="files")
    uploader = relationship("User")
