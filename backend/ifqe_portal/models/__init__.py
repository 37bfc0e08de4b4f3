# Re-export all models for convenient imports
from ifqe_portal.models.organization import School, Department
from ifqe_portal.models.user import User, UserRole
from ifqe_portal.models.submission import (
    Submission,
    SubmissionType,
    SubmissionStatus,
    ArchiveStatus,
    ARCHIVABLE_STATUSES,
)
from ifqe_portal.models.archive_log import ArchiveLog
from ifqe_portal.models.indicator import Indicator, CRITERIA_CONFIG, RUBRIC_LEVELS

__all__ = [
    # Organization
    "School",
    "Department",
    # User
    "User",
    "UserRole",
    # Submission
    "Submission",
    "SubmissionType",
    "SubmissionStatus",
    "ArchiveStatus",
    "ARCHIVABLE_STATUSES",
    # Archive
    "ArchiveLog",
    # Catalog
    "Indicator",
    "CRITERIA_CONFIG",
    "RUBRIC_LEVELS",
]
