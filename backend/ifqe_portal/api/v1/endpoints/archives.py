"""
Submission Archive Endpoints

- POST /archives/submissions/{id}           build the evidence zip (admin, superuser)
- GET  /archives/submissions/{id}/download  time-limited download link
- GET  /archives/submissions                archivable submissions with archive status
- GET  /archives/logs                       archive run history (admin)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ifqe_portal.core.database import get_db
from ifqe_portal.core.logging_config import logger
from ifqe_portal.models.user import User, UserRole
from ifqe_portal.modules.auth.dependencies import require_roles
from ifqe_portal.schemas.archive import (
    ArchivableSubmissionListResponse,
    ArchivableSubmissionResponse,
    ArchiveDownloadResponse,
    ArchiveGenerateResponse,
    ArchiveLogResponse,
)
from ifqe_portal.schemas.submission import parse_part_b
from ifqe_portal.services.archive_service import ArchiveService
from ifqe_portal.services.storage_service import StorageService, get_storage_service

router = APIRouter()


def get_archive_service(storage: StorageService = Depends(get_storage_service)) -> ArchiveService:
    return ArchiveService(storage)


@router.post("/submissions/{submission_id}", response_model=ArchiveGenerateResponse)
async def generate_submission_archive(
    submission_id: str,
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.SUPERUSER)),
    db: AsyncSession = Depends(get_db),
    archive_service: ArchiveService = Depends(get_archive_service),
):
    """Zip all evidence of a completed submission into S3"""
    logger.info(f"[Archive] Generation requested for {submission_id} by {current_user.email}")

    result = await archive_service.generate_archive(db, submission_id, current_user)
    if result is None:
        return ArchiveGenerateResponse(message="No evidence files to archive")

    submission = await archive_service.get_submission(db, submission_id)
    return ArchiveGenerateResponse(
        message="Archive generated successfully",
        archive_key=result.archive_key,
        file_count=result.file_count,
        missing_count=result.missing_count,
        size_bytes=submission.archive_size_bytes,
    )


@router.get("/submissions/{submission_id}/download", response_model=ArchiveDownloadResponse)
async def download_submission_archive(
    submission_id: str,
    current_user: User = Depends(require_roles(
        UserRole.DEPARTMENT, UserRole.ADMIN, UserRole.SUPERUSER, UserRole.QAA
    )),
    db: AsyncSession = Depends(get_db),
    archive_service: ArchiveService = Depends(get_archive_service),
):
    """Presigned download link for a generated archive"""
    url, expires_in = await archive_service.get_download_url(db, submission_id, current_user)
    return ArchiveDownloadResponse(download_url=url, expires_in=expires_in)


@router.get("/submissions", response_model=ArchivableSubmissionListResponse)
async def list_archivable_submissions(
    academic_year: Optional[str] = Query(None, description="e.g. 2024-25"),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.SUPERUSER)),
    db: AsyncSession = Depends(get_db),
    archive_service: ArchiveService = Depends(get_archive_service),
):
    submissions = await archive_service.list_archivable_submissions(db, academic_year)
    items = [
        ArchivableSubmissionResponse(
            id=str(s.id),
            title=s.title,
            academic_year=s.academic_year,
            status=s.status.value,
            school=s.school.name if s.school else None,
            department=s.department.name if s.department else None,
            total_final_score=parse_part_b(s.part_b).total_final_score(),
            archive_status=s.archive_status.value,
            archive_file_key=s.archive_file_key,
            archive_size_bytes=s.archive_size_bytes,
            archive_generated_at=s.archive_generated_at,
            archive_generated_by=s.archive_generated_by,
            archive_error=s.archive_error,
        )
        for s in submissions
    ]
    return ArchivableSubmissionListResponse(submissions=items, total=len(items))


@router.get("/logs", response_model=list[ArchiveLogResponse])
async def list_archive_logs(
    submission_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
    archive_service: ArchiveService = Depends(get_archive_service),
):
    logs = await archive_service.list_archive_logs(db, submission_id=submission_id, limit=limit)
    return [ArchiveLogResponse.model_validate(log) for log in logs]
