"""
Archive Service - runs archive generation for a submission and keeps the
submission's archive fields and the archive log in step with the result.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ifqe_portal.core.config import settings
from ifqe_portal.core.exceptions import (
    ArchiveGenerationError,
    ArchiveInProgressError,
    ArchiveNotAvailableError,
    AuthorizationError,
    InvalidIdentifierError,
    StorageError,
    SubmissionNotArchivableError,
    SubmissionNotFoundError,
)
from ifqe_portal.core.logging_config import logger
from ifqe_portal.core.types import canonical_uuid
from ifqe_portal.models import (
    ARCHIVABLE_STATUSES,
    ArchiveLog,
    ArchiveStatus,
    Submission,
    User,
    UserRole,
)
from ifqe_portal.schemas.submission import parse_part_a, parse_part_b
from ifqe_portal.services.storage_service import StorageService
from ifqe_portal.services.submission_archiver import (
    ArchiveConfig,
    ArchiveResult,
    ArchiveSource,
    SubmissionArchiver,
)

# Roles that may download any department's archive
ARCHIVE_READER_ROLES = frozenset([UserRole.ADMIN, UserRole.SUPERUSER, UserRole.QAA])


def archive_source_for(submission: Submission) -> ArchiveSource:
    return ArchiveSource(
        submission_id=str(submission.id),
        academic_year=submission.academic_year,
        school_name=submission.school.name,
        department_name=submission.department.name,
        title=submission.title,
        part_a=parse_part_a(submission.part_a),
        part_b=parse_part_b(submission.part_b),
    )


class ArchiveService:
    """Archive generation, download links and history for submissions"""

    def __init__(self, storage: StorageService, config: Optional[ArchiveConfig] = None):
        self.storage = storage
        self.config = config or ArchiveConfig.from_settings(settings, bucket_name=storage.bucket_name)
        self.archiver = SubmissionArchiver(storage, self.config)

    async def get_submission(self, db: AsyncSession, submission_id: str) -> Submission:
        normalized_id = canonical_uuid(submission_id)
        if normalized_id is None:
            raise InvalidIdentifierError("Submission", submission_id)

        result = await db.execute(
            select(Submission)
            .options(selectinload(Submission.school), selectinload(Submission.department))
            .where(Submission.id == normalized_id)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    async def generate_archive(
        self,
        db: AsyncSession,
        submission_id: str,
        actor: User,
    ) -> Optional[ArchiveResult]:
        """
        Build and upload the archive for a finalised submission.

        Returns None if the submission has no evidence files. The
        submission's archive key is only written after a complete upload.
        """
        submission = await self.get_submission(db, submission_id)

        if not submission.is_archivable:
            raise SubmissionNotArchivableError(submission_id, submission.status.value)

        if submission.archive_status == ArchiveStatus.IN_PROGRESS:
            raise ArchiveInProgressError(submission_id)

        actor_role = actor.role.value
        submission.archive_status = ArchiveStatus.IN_PROGRESS
        submission.archive_generated_by = actor_role
        submission.archive_error = None
        await db.commit()

        try:
            result = await self.archiver.create_archive(archive_source_for(submission))
        except ArchiveGenerationError as e:
            submission.archive_status = ArchiveStatus.FAILED
            submission.archive_error = e.reason
            await db.commit()
            raise
        except BaseException:
            # Cancelled or unexpected; don't leave the submission locked
            submission.archive_status = ArchiveStatus.FAILED
            submission.archive_error = "Archive generation interrupted"
            await db.commit()
            raise

        if result is None:
            submission.archive_status = ArchiveStatus.NOT_GENERATED
            await db.commit()
            return None

        submission.archive_file_key = result.archive_key
        submission.archive_status = ArchiveStatus.COMPLETED
        submission.archive_generated_at = datetime.utcnow()
        await db.commit()

        size = await self._fetch_archive_size(result.archive_key)
        if size is not None:
            await self._record_size(db, submission, size)
        await self._record_archive_log(db, submission, result, size, actor_role)

        return result

    async def _fetch_archive_size(self, archive_key: str) -> Optional[int]:
        try:
            return await self.storage.get_object_size(archive_key)
        except StorageError as e:
            logger.warning(f"[Archive] Could not read size of {archive_key}: {e.message}")
            return None

    async def _record_size(self, db: AsyncSession, submission: Submission, size: int) -> None:
        try:
            submission.archive_size_bytes = size
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(f"[Archive] Could not store archive size for {submission.id}: {e}")

    async def _record_archive_log(
        self,
        db: AsyncSession,
        submission: Submission,
        result: ArchiveResult,
        size: Optional[int],
        actor_role: str,
    ) -> None:
        try:
            db.add(ArchiveLog(
                submission_id=submission.id,
                submission_title=submission.title,
                school=submission.school.name,
                department=submission.department.name,
                file_count=result.file_count,
                missing_file_count=result.missing_count,
                time_taken_sec=result.duration_seconds,
                archive_key=result.archive_key,
                size_bytes=size,
                created_by=actor_role,
            ))
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(f"[Archive] Could not write archive log for {submission.id}: {e}")

    async def get_download_url(
        self,
        db: AsyncSession,
        submission_id: str,
        user: User,
    ) -> Tuple[str, int]:
        """Presigned attachment URL for a completed archive, and its lifetime"""
        submission = await self.get_submission(db, submission_id)

        if submission.archive_status != ArchiveStatus.COMPLETED or not submission.archive_file_key:
            raise ArchiveNotAvailableError(submission_id)

        is_owner = user.department_id is not None and user.department_id == submission.department_id
        if not is_owner and user.role not in ARCHIVE_READER_ROLES:
            raise AuthorizationError("Not authorized to download this archive")

        expires_in = settings.ARCHIVE_DOWNLOAD_URL_EXPIRY
        url = await self.storage.get_presigned_url(
            submission.archive_file_key,
            expiration=expires_in,
            as_attachment=True,
        )
        logger.info(f"[Archive] Download link issued for {submission_id} to {user.email}")
        return url, expires_in

    async def list_archivable_submissions(
        self,
        db: AsyncSession,
        academic_year: Optional[str] = None,
    ) -> List[Submission]:
        query = (
            select(Submission)
            .options(selectinload(Submission.school), selectinload(Submission.department))
            .where(Submission.status.in_(list(ARCHIVABLE_STATUSES)))
            .order_by(Submission.academic_year.desc(), Submission.title)
        )
        if academic_year:
            query = query.where(Submission.academic_year == academic_year)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_archive_logs(
        self,
        db: AsyncSession,
        submission_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[ArchiveLog]:
        query = select(ArchiveLog).order_by(ArchiveLog.created_at.desc()).limit(limit)
        if submission_id:
            normalized_id = canonical_uuid(submission_id)
            if normalized_id is None:
                raise InvalidIdentifierError("Submission", submission_id)
            query = query.where(ArchiveLog.submission_id == normalized_id)
        result = await db.execute(query)
        return list(result.scalars().all())
