"""
Storage Service - evidence and archive objects in S3/MinIO

Blocking boto3 calls are exposed directly (the archive pipeline runs them
on executor threads) and as async wrappers for request handlers.
"""

import asyncio
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ifqe_portal.core.config import settings
from ifqe_portal.core.exceptions import (
    PresignedUrlError,
    S3DownloadError,
    S3UploadError,
    StorageError,
)
from ifqe_portal.core.logging_config import logger


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code', '')
    return type(error).__name__


class MultipartUpload:
    """One in-flight S3 multipart upload"""

    def __init__(self, client, bucket: str, key: str, upload_id: str):
        self._client = client
        self.bucket = bucket
        self.key = key
        self.upload_id = upload_id
        self._parts = []
        self.bytes_uploaded = 0

    @property
    def part_count(self) -> int:
        return len(self._parts)

    def upload_part(self, data: bytes) -> None:
        part_number = len(self._parts) + 1
        try:
            response = self._client.upload_part(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
                PartNumber=part_number,
                Body=data,
            )
        except (ClientError, BotoCoreError) as e:
            logger.log_storage_event("upload_part", self.key, success=False, reason=str(e))
            raise S3UploadError(self.key, f"part {part_number}: {_error_code(e)}") from e

        self._parts.append({'ETag': response['ETag'], 'PartNumber': part_number})
        self.bytes_uploaded += len(data)
        logger.log_storage_event("upload_part", self.key, part_number=part_number, part_size=len(data))

    def complete(self) -> None:
        try:
            self._client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
                MultipartUpload={'Parts': self._parts},
            )
        except (ClientError, BotoCoreError) as e:
            logger.log_storage_event("complete_multipart_upload", self.key, success=False, reason=str(e))
            raise S3UploadError(self.key, f"complete: {_error_code(e)}") from e

        logger.info(f"[Storage] Uploaded {self.key} ({self.part_count} parts, {self.bytes_uploaded} bytes)")

    def abort(self) -> bool:
        """Abort the upload. Failures are logged, never raised."""
        try:
            self._client.abort_multipart_upload(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"[Storage] Abort of multipart upload {self.upload_id} for {self.key} failed: {e}")
            return False

        logger.info(f"[Storage] Aborted multipart upload for {self.key}")
        return True


class StorageService:
    """
    S3/MinIO access for the portal.

    A client and bucket can be injected; otherwise the boto3 client is
    created lazily from settings.
    """

    def __init__(self, client=None, bucket_name: Optional[str] = None):
        self._client = client
        self._bucket_name = bucket_name or settings.effective_bucket_name

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _get_client(self):
        """Lazy initialization of S3/MinIO client"""
        if self._client is None:
            if settings.USE_MINIO:
                scheme = "https" if settings.MINIO_SECURE else "http"
                self._client = boto3.client(
                    's3',
                    endpoint_url=f"{scheme}://{settings.MINIO_ENDPOINT}",
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    config=Config(
                        signature_version='s3v4',
                        s3={'addressing_style': 'path'}
                    ),
                    region_name=settings.AWS_REGION
                )
            elif settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                self._client = boto3.client(
                    's3',
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    region_name=settings.AWS_REGION,
                    config=Config(signature_version='s3v4'),
                )
            else:
                # IAM role credentials (ECS/EC2)
                self._client = boto3.client(
                    's3',
                    region_name=settings.AWS_REGION,
                    config=Config(signature_version='s3v4'),
                )
                logger.info("S3 client using IAM role credentials")

            logger.info(f"StorageService connected to bucket: {self._bucket_name}")

        return self._client

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def fetch_object(self, key: str, bucket: Optional[str] = None) -> bytes:
        """Read a whole object. Raises S3DownloadError on any failure."""
        try:
            response = self._get_client().get_object(Bucket=bucket or self._bucket_name, Key=key)
            return response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            code = _error_code(e)
            logger.log_storage_event("get_object", key, success=False, reason=code)
            raise S3DownloadError(key, code or str(e)) from e

    def head_object_size(self, key: str, bucket: Optional[str] = None) -> int:
        try:
            response = self._get_client().head_object(Bucket=bucket or self._bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not read metadata for {key}: {_error_code(e)}") from e
        return int(response['ContentLength'])

    def start_multipart_upload(
        self,
        key: str,
        content_type: str = "application/octet-stream",
        bucket: Optional[str] = None,
    ) -> MultipartUpload:
        bucket = bucket or self._bucket_name
        client = self._get_client()
        try:
            response = client.create_multipart_upload(Bucket=bucket, Key=key, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.log_storage_event("create_multipart_upload", key, success=False, reason=str(e))
            raise S3UploadError(key, f"create: {_error_code(e)}") from e

        return MultipartUpload(client, bucket, key, response['UploadId'])

    def generate_presigned_url(
        self,
        key: str,
        expiration: int = 300,
        as_attachment: bool = False,
        bucket: Optional[str] = None,
    ) -> str:
        params = {'Bucket': bucket or self._bucket_name, 'Key': key}
        if as_attachment:
            params['ResponseContentDisposition'] = 'attachment'
        try:
            return self._get_client().generate_presigned_url(
                'get_object',
                Params=params,
                ExpiresIn=expiration,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for {key}: {e}")
            raise PresignedUrlError(key) from e

    # ------------------------------------------------------------------
    # Async wrappers
    # ------------------------------------------------------------------

    async def get_object_size(self, key: str) -> int:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.head_object_size, key)

    async def get_presigned_url(self, key: str, expiration: int = 300, as_attachment: bool = False) -> str:
        """Generate presigned URL for direct file download"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self.generate_presigned_url(key, expiration, as_attachment)
        )


# Singleton instance
storage_service = StorageService()


def get_storage_service() -> StorageService:
    """FastAPI dependency; overridden in tests"""
    return storage_service
