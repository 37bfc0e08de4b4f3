"""
Unit Tests for ArchiveService: eligibility, bookkeeping and downloads
"""
import asyncio
import threading
import uuid

import pytest
from sqlalchemy import select, func

from ifqe_portal.core.exceptions import (
    ArchiveGenerationError,
    ArchiveInProgressError,
    ArchiveNotAvailableError,
    AuthorizationError,
    InvalidIdentifierError,
    PresignedUrlError,
    SubmissionNotArchivableError,
    SubmissionNotFoundError,
)
from ifqe_portal.models import ArchiveLog, ArchiveStatus, SubmissionStatus
from ifqe_portal.services.archive_service import ArchiveService

from mocks.submission_factory import indicator, part_a, part_b

BUCKET = "test-bucket"
ARCHIVE_KEY = "archives/2024-25/School_of_Engineering/Computer_Science/Annual_Report.zip"


async def _log_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(ArchiveLog))).scalar_one()


class TestGenerateArchive:
    """Test archive generation and its bookkeeping"""

    @pytest.mark.asyncio
    async def test_success_records_key_size_and_log(self, db_session, storage, s3_client, make_submission, admin_user):
        """A successful run updates the submission and appends one log entry"""
        s3_client.put(BUCKET, "e/summary.pdf", b"summary")
        s3_client.put(BUCKET, "e/1.1.1.xlsx", b"sheet")
        submission = await make_submission(
            part_a=part_a("e/summary.pdf"),
            part_b=part_b(indicator("1.1.1", file_key="e/1.1.1.xlsx")),
        )
        service = ArchiveService(storage)

        result = await service.generate_archive(db_session, submission.id, admin_user)

        assert result.archive_key == ARCHIVE_KEY
        await db_session.refresh(submission)
        assert submission.archive_status == ArchiveStatus.COMPLETED
        assert submission.archive_file_key == ARCHIVE_KEY
        assert submission.archive_size_bytes == len(s3_client.object_bytes(BUCKET, ARCHIVE_KEY))
        assert submission.archive_generated_by == "admin"
        assert submission.archive_generated_at is not None
        assert submission.archive_error is None

        logs = (await db_session.execute(select(ArchiveLog))).scalars().all()
        assert len(logs) == 1
        assert logs[0].file_count == 2
        assert logs[0].archive_key == ARCHIVE_KEY
        assert logs[0].school == "School of Engineering"
        assert logs[0].department == "Computer Science"
        assert logs[0].created_by == "admin"

    @pytest.mark.asyncio
    async def test_no_evidence_writes_no_log(self, db_session, storage, make_submission, admin_user):
        """Nothing to archive: None, status reset, no archive record"""
        submission = await make_submission(part_b=part_b(indicator("1.1.1")))
        service = ArchiveService(storage)

        result = await service.generate_archive(db_session, submission.id, admin_user)

        assert result is None
        assert submission.archive_status == ArchiveStatus.NOT_GENERATED
        assert submission.archive_file_key is None
        assert await _log_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_key_unmodified(self, db_session, storage, s3_client, make_submission, admin_user):
        """A failed upload marks the run Failed and keeps the previous key"""
        s3_client.put(BUCKET, "e/a.pdf", b"a")
        s3_client.fail_complete = True
        submission = await make_submission(
            part_a=part_a("e/a.pdf"),
            archive_status=ArchiveStatus.COMPLETED,
            archive_file_key="archives/old/previous.zip",
        )
        service = ArchiveService(storage)

        with pytest.raises(ArchiveGenerationError):
            await service.generate_archive(db_session, submission.id, admin_user)

        assert submission.archive_status == ArchiveStatus.FAILED
        assert submission.archive_file_key == "archives/old/previous.zip"
        assert submission.archive_error
        assert await _log_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_size_lookup_failure_is_not_fatal(self, db_session, storage, s3_client, make_submission, admin_user):
        """A failed head_object still counts as success and still logs the run"""
        s3_client.put(BUCKET, "e/a.pdf", b"a")
        s3_client.fail_head = True
        submission = await make_submission(part_a=part_a("e/a.pdf"))
        service = ArchiveService(storage)

        result = await service.generate_archive(db_session, submission.id, admin_user)

        assert result is not None
        assert submission.archive_status == ArchiveStatus.COMPLETED
        assert submission.archive_size_bytes is None
        logs = (await db_session.execute(select(ArchiveLog))).scalars().all()
        assert len(logs) == 1
        assert logs[0].size_bytes is None

    @pytest.mark.asyncio
    async def test_log_write_failure_is_not_fatal(self, db_session, storage, s3_client, make_submission, admin_user, monkeypatch):
        """Bookkeeping errors after upload do not undo the archive"""
        s3_client.put(BUCKET, "e/a.pdf", b"a")
        submission = await make_submission(part_a=part_a("e/a.pdf"))
        service = ArchiveService(storage)

        original_add = db_session.add

        def failing_add(instance, *args, **kwargs):
            if isinstance(instance, ArchiveLog):
                raise RuntimeError("database unavailable")
            return original_add(instance, *args, **kwargs)

        monkeypatch.setattr(db_session, "add", failing_add)

        result = await service.generate_archive(db_session, submission.id, admin_user)

        assert result.archive_key == ARCHIVE_KEY
        await db_session.refresh(submission)
        assert submission.archive_status == ArchiveStatus.COMPLETED
        assert submission.archive_file_key == ARCHIVE_KEY

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        SubmissionStatus.DRAFT,
        SubmissionStatus.UNDER_REVIEW,
        SubmissionStatus.PENDING_FINAL_APPROVAL,
        SubmissionStatus.APPEAL_SUBMITTED,
    ])
    async def test_rejects_unfinished_submissions(self, db_session, storage, make_submission, admin_user, status):
        """Only Completed or Appeal Closed submissions are archived"""
        submission = await make_submission(status=status, part_a=part_a("e/a.pdf"))
        service = ArchiveService(storage)

        with pytest.raises(SubmissionNotArchivableError):
            await service.generate_archive(db_session, submission.id, admin_user)

        assert submission.archive_status == ArchiveStatus.NOT_GENERATED

    @pytest.mark.asyncio
    async def test_appeal_closed_is_archivable(self, db_session, storage, s3_client, make_submission, superuser_user):
        s3_client.put(BUCKET, "e/a.pdf", b"a")
        submission = await make_submission(status=SubmissionStatus.APPEAL_CLOSED, part_a=part_a("e/a.pdf"))
        service = ArchiveService(storage)

        result = await service.generate_archive(db_session, submission.id, superuser_user)

        assert result is not None
        assert submission.archive_generated_by == "superuser"

    @pytest.mark.asyncio
    async def test_rejects_concurrent_run(self, db_session, storage, make_submission, admin_user):
        """A submission already being archived is refused"""
        submission = await make_submission(part_a=part_a("e/a.pdf"), archive_status=ArchiveStatus.IN_PROGRESS)
        service = ArchiveService(storage)

        with pytest.raises(ArchiveInProgressError):
            await service.generate_archive(db_session, submission.id, admin_user)

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, db_session, storage, admin_user):
        service = ArchiveService(storage)

        with pytest.raises(SubmissionNotFoundError):
            await service.generate_archive(db_session, str(uuid.uuid4()), admin_user)
        with pytest.raises(InvalidIdentifierError):
            await service.generate_archive(db_session, "not-an-id", admin_user)

    @pytest.mark.asyncio
    async def test_cancelled_run_is_marked_failed(self, db_session, storage, s3_client, make_submission, admin_user, monkeypatch):
        """Cancelling mid-stream aborts the upload and releases the submission"""
        for n in range(1, 4):
            s3_client.put(BUCKET, f"e/{n}.pdf", b"data")
        fetching = threading.Event()
        release = threading.Event()
        fetch_object = storage.fetch_object

        def slow_fetch(key, bucket=None):
            if key == "e/2.pdf":
                fetching.set()
                release.wait(timeout=5)
            return fetch_object(key, bucket=bucket)

        monkeypatch.setattr(storage, "fetch_object", slow_fetch)
        submission = await make_submission(
            part_b=part_b(*[indicator(f"1.1.{n}", file_key=f"e/{n}.pdf") for n in range(1, 4)]),
        )
        service = ArchiveService(storage)

        task = asyncio.create_task(service.generate_archive(db_session, submission.id, admin_user))
        try:
            assert await asyncio.get_running_loop().run_in_executor(None, fetching.wait, 5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            release.set()

        for _ in range(50):
            if s3_client.aborted_uploads:
                break
            await asyncio.sleep(0.1)

        await db_session.refresh(submission)
        assert submission.archive_status == ArchiveStatus.FAILED
        assert submission.archive_error == "Archive generation interrupted"
        assert submission.archive_file_key is None
        assert s3_client.aborted_uploads == [ARCHIVE_KEY]
        assert s3_client.completed_uploads == []

    @pytest.mark.asyncio
    async def test_uppercase_id_matches(self, db_session, storage, make_submission):
        """Ids are compared in canonical lowercase form"""
        submission = await make_submission()
        service = ArchiveService(storage)

        found = await service.get_submission(db_session, submission.id.upper())
        braced = await service.get_submission(db_session, "{" + submission.id.replace("-", "") + "}")

        assert found.id == submission.id
        assert braced.id == submission.id


class TestDownloadUrl:
    """Test download link issuing"""

    @pytest.mark.asyncio
    async def test_owner_department_gets_link(self, db_session, storage, s3_client, make_submission, department_user):
        submission = await make_submission(archive_status=ArchiveStatus.COMPLETED, archive_file_key=ARCHIVE_KEY)
        service = ArchiveService(storage)

        url, expires_in = await service.get_download_url(db_session, submission.id, department_user)

        assert ARCHIVE_KEY in url
        assert expires_in == 300
        call = s3_client.presign_calls[0]
        assert call["method"] == "get_object"
        assert call["params"]["ResponseContentDisposition"] == "attachment"
        assert call["expires_in"] == 300

    @pytest.mark.asyncio
    async def test_other_department_is_refused(self, db_session, storage, make_submission, other_department_user):
        submission = await make_submission(archive_status=ArchiveStatus.COMPLETED, archive_file_key=ARCHIVE_KEY)
        service = ArchiveService(storage)

        with pytest.raises(AuthorizationError):
            await service.get_download_url(db_session, submission.id, other_department_user)

    @pytest.mark.asyncio
    async def test_qaa_may_download_any_archive(self, db_session, storage, make_submission, qaa_user):
        submission = await make_submission(archive_status=ArchiveStatus.COMPLETED, archive_file_key=ARCHIVE_KEY)
        service = ArchiveService(storage)

        url, _ = await service.get_download_url(db_session, submission.id, qaa_user)

        assert url

    @pytest.mark.asyncio
    @pytest.mark.parametrize("archive_status,archive_key", [
        (ArchiveStatus.NOT_GENERATED, None),
        (ArchiveStatus.FAILED, ARCHIVE_KEY),
        (ArchiveStatus.IN_PROGRESS, ARCHIVE_KEY),
        (ArchiveStatus.COMPLETED, None),
    ])
    async def test_unavailable_archive(self, db_session, storage, make_submission, admin_user, archive_status, archive_key):
        submission = await make_submission(archive_status=archive_status, archive_file_key=archive_key)
        service = ArchiveService(storage)

        with pytest.raises(ArchiveNotAvailableError):
            await service.get_download_url(db_session, submission.id, admin_user)

    @pytest.mark.asyncio
    async def test_signing_failure(self, db_session, storage, s3_client, make_submission, admin_user):
        s3_client.fail_presign = True
        submission = await make_submission(archive_status=ArchiveStatus.COMPLETED, archive_file_key=ARCHIVE_KEY)
        service = ArchiveService(storage)

        with pytest.raises(PresignedUrlError) as exc_info:
            await service.get_download_url(db_session, submission.id, admin_user)

        assert exc_info.value.message == "Could not generate archive download URL"


class TestListings:
    """Test archivable submission and log listings"""

    @pytest.mark.asyncio
    async def test_lists_only_final_submissions(self, db_session, storage, make_submission):
        await make_submission(title="Done", status=SubmissionStatus.COMPLETED)
        await make_submission(title="Closed", status=SubmissionStatus.APPEAL_CLOSED, academic_year="2023-24")
        await make_submission(title="Draft", status=SubmissionStatus.DRAFT)
        service = ArchiveService(storage)

        all_final = await service.list_archivable_submissions(db_session)
        this_year = await service.list_archivable_submissions(db_session, academic_year="2024-25")

        assert {s.title for s in all_final} == {"Done", "Closed"}
        assert [s.title for s in this_year] == ["Done"]

    @pytest.mark.asyncio
    async def test_logs_filtered_by_submission(self, db_session, storage, make_submission):
        first = await make_submission(title="First")
        second = await make_submission(title="Second")
        for submission in (first, second):
            db_session.add(ArchiveLog(submission_id=submission.id, archive_key=f"archives/{submission.title}.zip",
                                      file_count=1, missing_file_count=0))
        await db_session.commit()
        service = ArchiveService(storage)

        logs = await service.list_archive_logs(db_session, submission_id=first.id)

        assert [log.archive_key for log in logs] == ["archives/First.zip"]

    @pytest.mark.asyncio
    async def test_log_filter_accepts_any_uuid_spelling(self, db_session, storage, make_submission):
        submission = await make_submission()
        db_session.add(ArchiveLog(submission_id=submission.id, archive_key="archives/x.zip",
                                  file_count=1, missing_file_count=0))
        await db_session.commit()
        service = ArchiveService(storage)

        logs = await service.list_archive_logs(db_session, submission_id=submission.id.upper())

        assert [log.archive_key for log in logs] == ["archives/x.zip"]
        with pytest.raises(InvalidIdentifierError):
            await service.list_archive_logs(db_session, submission_id="nope")
