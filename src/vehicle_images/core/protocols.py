"""Protocol definitions for dependency injection and testability."""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import (
    ImageBytes,
    ImageObjectRef,
    NormalizedImagePath,
    VehicleRecord,
)


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the blob store relies on."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: bytes,
        ContentType: str,
        Metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int
    ) -> str:
        """Generate a presigned URL for an S3 operation."""
        ...


class BlobStoreProtocol(Protocol):
    """Protocol for uninterpreted binary storage keyed by bucket and object key."""

    def download(self, ref: ImageObjectRef) -> ImageBytes:
        """Download the blob at ref."""
        ...

    def upload(
        self,
        ref: ImageObjectRef,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Upload bytes to ref, overwriting any existing blob."""
        ...

    def issue_upload_url(self, ref: ImageObjectRef, expires_in: int) -> str:
        """Issue a time-limited, write-only URL for ref."""
        ...


class ImageTransformerProtocol(Protocol):
    """Protocol for the pure image transform."""

    def normalize(self, image: ImageBytes) -> ImageBytes:
        """Turn input image bytes into normalized output bytes."""
        ...


@runtime_checkable
class VehicleStoreProtocol(Protocol):
    """Protocol for the vehicle record collaborator."""

    def get_by_id(self, vehicle_id: str) -> Optional[VehicleRecord]:
        """Fetch a vehicle by id."""
        ...

    def update(self, vehicle_id: str, fields: Dict[str, Any]) -> Optional[VehicleRecord]:
        """Update some fields of a vehicle."""
        ...

    def list_all(self) -> List[VehicleRecord]:
        """List every vehicle."""
        ...

    def append_image(
        self, vehicle_id: str, path: NormalizedImagePath
    ) -> Optional[VehicleRecord]:
        """Atomically append an image path to a vehicle's image list."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
