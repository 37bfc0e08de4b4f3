"""
Custom Exceptions for the IFQE Portal
=====================================

Every error carries a machine-readable ``code`` and the HTTP status the
API layer answers with, so endpoints can simply let them propagate.

Usage:
    from ifqe_portal.core.exceptions import SubmissionNotFoundError

    if not submission:
        raise SubmissionNotFoundError(submission_id)
"""

from typing import Optional, Any, Dict


class IFQEError(Exception):
    """Base exception for all portal errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(IFQEError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(IFQEError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(IFQEError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidIdentifierError(ValidationError):
    """Path identifier is not a well-formed id"""

    def __init__(self, resource_type: str, value: str):
        super().__init__(f"Invalid {resource_type.lower()} ID", field=f"{resource_type.lower()}_id")
        self.code = "INVALID_ID"
        self.details["value"] = value


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(IFQEError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class SubmissionNotFoundError(ResourceNotFoundError):
    """Submission not found"""

    def __init__(self, submission_id: str):
        super().__init__("Submission", submission_id)


class IndicatorNotFoundError(ResourceNotFoundError):
    """Indicator code not in the catalog"""

    def __init__(self, indicator_code: str):
        super().__init__("Indicator", indicator_code)
        self.message = f"Indicator '{indicator_code}' not found"


# ============================================
# Archive Errors
# ============================================

class ArchiveNotAvailableError(IFQEError):
    """No completed archive exists for the submission"""

    status_code = 404

    def __init__(self, submission_id: str):
        super().__init__(
            "Archive not available for this submission",
            code="ARCHIVE_NOT_AVAILABLE",
            details={"submission_id": submission_id}
        )


class SubmissionNotArchivableError(IFQEError):
    """Submission has not reached a final state"""

    status_code = 403

    def __init__(self, submission_id: str, status: str):
        super().__init__(
            "Archive allowed only after final approval",
            code="SUBMISSION_NOT_ARCHIVABLE",
            details={"submission_id": submission_id, "status": status}
        )


class ArchiveInProgressError(IFQEError):
    """Another archive run for the submission has not finished"""

    status_code = 409

    def __init__(self, submission_id: str):
        super().__init__(
            "Archive generation already in progress",
            code="ARCHIVE_IN_PROGRESS",
            details={"submission_id": submission_id}
        )


class ArchiveGenerationError(IFQEError):
    """Encoding or upload of an archive failed"""

    def __init__(self, submission_id: str, reason: str, archive_key: Optional[str] = None):
        super().__init__(
            "Archive generation failed",
            code="ARCHIVE_GENERATION_FAILED",
            details={"submission_id": submission_id, "reason": reason}
        )
        self.reason = reason
        if archive_key:
            self.details["archive_key"] = archive_key


# ============================================
# Storage Errors
# ============================================

class StorageError(IFQEError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class S3UploadError(StorageError):
    """S3 upload failed"""

    def __init__(self, key: str, message: str = "Upload failed"):
        super().__init__(f"Failed to upload to S3: {message}")
        self.code = "S3_UPLOAD_FAILED"
        self.details["s3_key"] = key


class S3DownloadError(StorageError):
    """S3 download failed"""

    def __init__(self, key: str, message: str = "Download failed"):
        super().__init__(f"Failed to download from S3: {message}")
        self.code = "S3_DOWNLOAD_FAILED"
        self.details["s3_key"] = key


class PresignedUrlError(StorageError):
    """Could not sign a download URL"""

    def __init__(self, key: str):
        super().__init__("Could not generate archive download URL")
        self.code = "PRESIGNED_URL_FAILED"
        self.details["s3_key"] = key


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: IFQEError) -> Dict[str, Any]:
    """Convert exception to API error response body"""
    return {
        "detail": error.message,
        "code": error.code,
    }
