from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ifqe_portal.core.database import Base
from ifqe_portal.core.types import GUID, generate_uuid


class SubmissionType(str, enum.Enum):
    ANNUAL = "Annual"
    MID_TERM = "Mid-term"
    SPECIAL = "Special"


class SubmissionStatus(str, enum.Enum):
    """Review workflow states"""
    DRAFT = "Draft"
    UNDER_REVIEW = "Under Review"
    PENDING_FINAL_APPROVAL = "Pending Final Approval"
    COMPLETED = "Completed"
    APPEAL_SUBMITTED = "Appeal Submitted"
    APPEAL_CLOSED = "Appeal Closed"


class ArchiveStatus(str, enum.Enum):
    NOT_GENERATED = "Not Generated"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    FAILED = "Failed"


# Only submissions with final scores may be archived
ARCHIVABLE_STATUSES = frozenset([SubmissionStatus.COMPLETED, SubmissionStatus.APPEAL_CLOSED])


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Submission(Base):
    """
    Submission aggregate.

    Part A, Part B and the appeal are stored as JSON documents and parsed
    with the value objects in ifqe_portal.schemas.submission.
    """
    __tablename__ = "submissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    submission_type = Column(
        SQLEnum(SubmissionType, values_callable=_enum_values),
        default=SubmissionType.ANNUAL,
        nullable=False,
    )
    academic_year = Column(String(20), nullable=False, index=True)

    school_id = Column(GUID, ForeignKey("schools.id"), nullable=False, index=True)
    department_id = Column(GUID, ForeignKey("departments.id"), nullable=False, index=True)
    submitted_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    status = Column(
        SQLEnum(SubmissionStatus, values_callable=_enum_values),
        default=SubmissionStatus.DRAFT,
        nullable=False,
        index=True,
    )

    part_a = Column(JSON, nullable=True)
    part_b = Column(JSON, nullable=True)
    appeal = Column(JSON, nullable=True)
    has_appealed = Column(Boolean, default=False, nullable=False)

    # Archive tracking
    archive_status = Column(
        SQLEnum(ArchiveStatus, values_callable=_enum_values),
        default=ArchiveStatus.NOT_GENERATED,
        nullable=False,
    )
    archive_file_key = Column(String(1024), nullable=True)
    archive_size_bytes = Column(Integer, nullable=True)
    archive_generated_at = Column(DateTime, nullable=True)
    archive_generated_by = Column(String(50), nullable=True)  # role of the actor
    archive_error = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school = relationship("School")
    department = relationship("Department")
    submitted_by = relationship("User", foreign_keys=[submitted_by_id])
    archive_logs = relationship("ArchiveLog", back_populates="submission", cascade="all, delete-orphan")

    @property
    def is_archivable(self) -> bool:
        return self.status in ARCHIVABLE_STATUSES

    def __repr__(self):
        return f"<Submission {self.title} ({self.academic_year}) {self.status}>"
