"""
Unit Tests for StorageService against the in-memory S3 client
"""
import pytest

from ifqe_portal.core.exceptions import PresignedUrlError, S3DownloadError, S3UploadError, StorageError

BUCKET = "test-bucket"


class TestObjectAccess:
    """Test reads and metadata"""

    def test_fetch_object(self, storage, s3_client):
        s3_client.put(BUCKET, "a/b.pdf", b"content")

        assert storage.fetch_object("a/b.pdf") == b"content"

    def test_fetch_missing_object_raises(self, storage):
        with pytest.raises(S3DownloadError) as exc_info:
            storage.fetch_object("a/missing.pdf")

        assert exc_info.value.code == "S3_DOWNLOAD_FAILED"
        assert exc_info.value.details["s3_key"] == "a/missing.pdf"
        assert "NoSuchKey" in exc_info.value.message

    def test_head_object_size(self, storage, s3_client):
        s3_client.put(BUCKET, "a/b.pdf", b"12345")

        assert storage.head_object_size("a/b.pdf") == 5

    def test_head_missing_object_raises(self, storage):
        with pytest.raises(StorageError):
            storage.head_object_size("nope")

    @pytest.mark.asyncio
    async def test_async_wrappers(self, storage, s3_client):
        s3_client.put(BUCKET, "a/b.pdf", b"xyz")

        assert await storage.get_object_size("a/b.pdf") == 3


class TestMultipartUpload:
    """Test the multipart upload wrapper"""

    def test_upload_parts_and_complete(self, storage, s3_client):
        upload = storage.start_multipart_upload("out/archive.zip", content_type="application/zip")
        upload.upload_part(b"abc")
        upload.upload_part(b"def")
        upload.complete()

        assert upload.part_count == 2
        assert upload.bytes_uploaded == 6
        assert s3_client.object_bytes(BUCKET, "out/archive.zip") == b"abcdef"
        assert s3_client.content_types["out/archive.zip"] == "application/zip"

    def test_failed_part_raises_upload_error(self, storage, s3_client):
        s3_client.fail_upload_part_after = 0
        upload = storage.start_multipart_upload("out/archive.zip")

        with pytest.raises(S3UploadError):
            upload.upload_part(b"abc")

    def test_abort_removes_upload(self, storage, s3_client):
        upload = storage.start_multipart_upload("out/archive.zip")
        upload.upload_part(b"abc")

        assert upload.abort() is True
        assert s3_client.aborted_uploads == ["out/archive.zip"]
        assert not s3_client.has_object(BUCKET, "out/archive.zip")

    def test_explicit_bucket(self, storage, s3_client):
        upload = storage.start_multipart_upload("k.zip", bucket="archive-bucket")
        upload.upload_part(b"z")
        upload.complete()

        assert s3_client.object_bytes("archive-bucket", "k.zip") == b"z"


class TestPresignedUrls:
    """Test download link signing"""

    @pytest.mark.asyncio
    async def test_attachment_disposition(self, storage, s3_client):
        url = await storage.get_presigned_url("out/a.zip", expiration=300, as_attachment=True)

        assert "out/a.zip" in url
        assert s3_client.presign_calls[0]["params"] == {
            "Bucket": BUCKET,
            "Key": "out/a.zip",
            "ResponseContentDisposition": "attachment",
        }

    def test_signing_failure(self, storage, s3_client):
        s3_client.fail_presign = True

        with pytest.raises(PresignedUrlError):
            storage.generate_presigned_url("out/a.zip")
