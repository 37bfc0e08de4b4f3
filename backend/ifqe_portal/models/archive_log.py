from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from ifqe_portal.core.database import Base
from ifqe_portal.core.types import GUID, generate_uuid


class ArchiveLog(Base):
    """One row per successful archive run. Never updated."""
    __tablename__ = "archive_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    submission_id = Column(GUID, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Denormalised so the log still reads after renames
    submission_title = Column(String(500), nullable=True)
    school = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)

    file_count = Column(Integer, nullable=False, default=0)
    missing_file_count = Column(Integer, nullable=False, default=0)
    time_taken_sec = Column(Float, nullable=True)
    archive_key = Column(String(1024), nullable=False)
    size_bytes = Column(Integer, nullable=True)

    created_by = Column(String(100), nullable=True)  # actor role
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    submission = relationship("Submission", back_populates="archive_logs")

    def __repr__(self):
        return f"<ArchiveLog {self.archive_key} ({self.file_count} files)>"
