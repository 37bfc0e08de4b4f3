"""
Submission archiver.

Streams every evidence file of a submission into a single zip object in
S3 without holding the whole archive in memory. The zip encoder and the
multipart uploader run on executor threads joined by an ArchiveStream.
"""
import asyncio
import time
import zipfile
from dataclasses import dataclass, field
from typing import List, Optional

from ifqe_portal.core.exceptions import ArchiveGenerationError, StorageError
from ifqe_portal.core.logging_config import logger
from ifqe_portal.schemas.submission import PartA, PartB
from ifqe_portal.services.archive_stream import ArchiveStream, ArchiveStreamAborted
from ifqe_portal.services.evidence_collector import (
    EvidenceFile,
    build_archive_key,
    collect_evidence_files,
    placeholder_entry_name,
    placeholder_entry_text,
)
from ifqe_portal.services.storage_service import MultipartUpload, StorageService

MIN_PART_SIZE = 5 * 1024 * 1024


@dataclass(frozen=True)
class ArchiveConfig:
    bucket_name: str
    key_prefix: str = "archives"
    compression_level: int = 9
    part_size: int = 8 * 1024 * 1024
    chunk_size: int = 256 * 1024
    queue_depth: int = 16
    content_type: str = "application/zip"

    @classmethod
    def from_settings(cls, settings, bucket_name: Optional[str] = None) -> "ArchiveConfig":
        return cls(
            bucket_name=bucket_name or settings.effective_bucket_name,
            key_prefix=settings.ARCHIVE_KEY_PREFIX,
            compression_level=settings.ARCHIVE_COMPRESSION_LEVEL,
            part_size=max(settings.ARCHIVE_PART_SIZE_MB * 1024 * 1024, MIN_PART_SIZE),
            chunk_size=settings.ARCHIVE_CHUNK_SIZE_KB * 1024,
            queue_depth=settings.ARCHIVE_QUEUE_DEPTH,
        )


@dataclass
class ArchiveSource:
    """What the archiver needs to know about a submission"""
    submission_id: str
    academic_year: str
    school_name: str
    department_name: str
    title: str
    part_a: Optional[PartA] = None
    part_b: Optional[PartB] = None


@dataclass
class ArchiveResult:
    archive_key: str
    file_count: int
    missing_count: int
    bytes_streamed: int
    duration_seconds: float
    missing_keys: List[str] = field(default_factory=list)


class SubmissionArchiver:
    """Builds one zip per submission and uploads it to object storage"""

    def __init__(self, storage: StorageService, config: ArchiveConfig):
        self._storage = storage
        self._config = config

    def destination_key(self, source: ArchiveSource) -> str:
        return build_archive_key(
            source.academic_year,
            source.school_name,
            source.department_name,
            source.title,
            prefix=self._config.key_prefix,
        )

    async def create_archive(self, source: ArchiveSource) -> Optional[ArchiveResult]:
        """
        Archive all evidence of ``source``.

        Returns None when the submission has no evidence at all. Raises
        ArchiveGenerationError if encoding or upload fails; the multipart
        upload is aborted first.
        """
        files = collect_evidence_files(source.part_a, source.part_b)
        if not files:
            logger.log_archive_event(source.submission_id, "no evidence files, nothing to archive")
            return None

        archive_key = self.destination_key(source)
        logger.log_archive_event(
            source.submission_id,
            f"streaming {len(files)} files to {archive_key}",
            archive_key=archive_key,
            file_count=len(files),
        )

        stream = ArchiveStream(chunk_size=self._config.chunk_size, max_chunks=self._config.queue_depth)
        loop = asyncio.get_running_loop()
        started = time.perf_counter()

        encoder = loop.run_in_executor(None, self._encode, files, stream)
        uploader = loop.run_in_executor(None, self._upload, archive_key, stream)

        try:
            encoded, uploaded = await asyncio.gather(encoder, uploader, return_exceptions=True)
        except asyncio.CancelledError:
            # Both threads poll the stream and stop on their next call
            stream.abort(ArchiveGenerationError(source.submission_id, "cancelled", archive_key))
            raise

        failures = [r for r in (encoded, uploaded) if isinstance(r, BaseException)]
        if failures:
            cause = _root_cause(failures)
            logger.log_archive_event(
                source.submission_id,
                f"failed: {type(cause).__name__}: {cause}",
                success=False,
                archive_key=archive_key,
            )
            raise ArchiveGenerationError(source.submission_id, str(cause), archive_key) from cause

        duration = time.perf_counter() - started
        missing_keys = encoded
        result = ArchiveResult(
            archive_key=archive_key,
            file_count=len(files),
            missing_count=len(missing_keys),
            bytes_streamed=uploaded,
            duration_seconds=round(duration, 3),
            missing_keys=missing_keys,
        )
        logger.log_archive_event(
            source.submission_id,
            f"uploaded {archive_key} ({result.file_count} files, "
            f"{result.missing_count} missing, {result.bytes_streamed} bytes, {result.duration_seconds}s)",
            archive_key=archive_key,
            file_count=result.file_count,
            missing_count=result.missing_count,
        )
        return result

    # -- producer ------------------------------------------------------

    def _encode(self, files: List[EvidenceFile], stream: ArchiveStream) -> List[str]:
        """Write the zip into ``stream``. Returns keys that could not be fetched."""
        missing: List[str] = []
        try:
            with zipfile.ZipFile(
                stream,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self._config.compression_level,
            ) as archive:
                for evidence in files:
                    try:
                        data = self._storage.fetch_object(evidence.key, bucket=self._config.bucket_name)
                    except StorageError as e:
                        logger.warning(f"[Archive] Missing evidence {evidence.key}: {e.message}")
                        missing.append(evidence.key)
                        archive.writestr(placeholder_entry_name(evidence), placeholder_entry_text(evidence))
                        continue
                    archive.writestr(evidence.label, data)
            stream.close()
        except BaseException as e:
            stream.abort(e)
            raise
        return missing

    # -- consumer ------------------------------------------------------

    def _upload(self, archive_key: str, stream: ArchiveStream) -> int:
        """Drain ``stream`` into a multipart upload. Returns bytes uploaded."""
        upload: Optional[MultipartUpload] = None
        try:
            upload = self._storage.start_multipart_upload(
                archive_key,
                content_type=self._config.content_type,
                bucket=self._config.bucket_name,
            )
            buffer = bytearray()
            while True:
                chunk = stream.read_chunk()
                if chunk is None:
                    break
                buffer.extend(chunk)
                if len(buffer) >= self._config.part_size:
                    upload.upload_part(bytes(buffer))
                    buffer.clear()
            # The last part may be short; S3 still needs at least one part
            if buffer or upload.part_count == 0:
                upload.upload_part(bytes(buffer))
            upload.complete()
            return upload.bytes_uploaded
        except BaseException as e:
            stream.abort(e)
            if upload is not None:
                upload.abort()
            raise


def _root_cause(failures: List[BaseException]) -> BaseException:
    """Prefer the error that started the teardown over the abort it caused"""
    for failure in failures:
        if not isinstance(failure, ArchiveStreamAborted):
            return failure
    first = failures[0]
    return first.cause if isinstance(first, ArchiveStreamAborted) and first.cause is not None else first
