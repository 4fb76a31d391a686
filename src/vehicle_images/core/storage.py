"""S3-backed blob store adapter."""

from typing import Dict, Optional

from .error_handling import with_storage_error_handling
from .models import ImageBytes, ImageObjectRef
from .protocols import LoggerProtocol, S3ClientProtocol

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class S3BlobStore:
    """Blob storage over any S3-compatible API client.

    Failures surface as ``ObjectNotFoundError`` or ``StorageUnavailableError``.
    """

    def __init__(self, s3_client: S3ClientProtocol, logger: LoggerProtocol):
        self._s3_client = s3_client
        self._logger = logger

    @with_storage_error_handling
    def download(self, ref: ImageObjectRef) -> ImageBytes:
        """Download the blob at ref together with its content type and metadata."""
        self._logger.debug(f"Downloading s3://{ref.bucket}/{ref.object_key}")
        response = self._s3_client.get_object(Bucket=ref.bucket, Key=ref.object_key)
        return ImageBytes(
            data=response["Body"].read(),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            metadata=dict(response.get("Metadata") or {}),
        )

    @with_storage_error_handling
    def upload(
        self,
        ref: ImageObjectRef,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Upload bytes to ref, overwriting any existing object."""
        self._logger.debug(
            f"Uploading {len(data)} bytes to s3://{ref.bucket}/{ref.object_key}"
        )
        self._s3_client.put_object(
            Bucket=ref.bucket,
            Key=ref.object_key,
            Body=data,
            ContentType=content_type,
            Metadata=dict(metadata or {}),
        )

    @with_storage_error_handling
    def issue_upload_url(self, ref: ImageObjectRef, expires_in: int) -> str:
        """Issue a presigned PUT URL for ref valid for ``expires_in`` seconds."""
        url = self._s3_client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": ref.bucket, "Key": ref.object_key},
            ExpiresIn=expires_in,
        )
        self._logger.debug(
            f"Issued upload URL for s3://{ref.bucket}/{ref.object_key} "
            f"(expires in {expires_in}s)"
        )
        return url
