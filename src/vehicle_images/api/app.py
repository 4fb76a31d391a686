"""FastAPI application exposing image serving, upload and processing endpoints."""

import hmac
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Response, status
from pydantic import AliasChoices, BaseModel, Field

from .. import __version__
from ..core.exceptions import (
    InvalidPathError,
    VehicleImagesError,
    VehicleNotFoundError,
)
from ..core.factories import ImagePipelineFactory, ImageServices
from ..core.logging_config import get_logger


class AttachImageRequest(BaseModel):
    """Body of the attach endpoint; ``imageURL`` is accepted for older clients."""

    upload_url: str = Field(
        default="", validation_alias=AliasChoices("uploadURL", "imageURL", "upload_url")
    )
    vehicle_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("vehicleId", "vehicle_id")
    )


def create_app(services: Optional[ImageServices] = None) -> FastAPI:
    """Create the FastAPI app wired to the given (or environment-built) services."""

    if services is None:
        services = ImagePipelineFactory.create_services()

    settings = services.settings
    logger = get_logger("vehicle-images.api")

    app = FastAPI(title="Vehicle Images API", version=__version__)
    app.state.services = services

    def require_admin(
        x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    ) -> None:
        """Reject callers that do not present the configured admin token."""

        if not settings.admin_token:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Admin token is not configured.",
            )
        if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized - Admin access required",
            )

    admin_only = [Depends(require_admin)]

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.get(services.scheme.prefix + "{object_path:path}")
    def serve_object(object_path: str) -> Response:
        """Stream a stored image with its stored content type."""

        path = services.scheme.prefix + object_path
        try:
            image = services.ingestion.open_image(path)
        except VehicleImagesError as e:
            logger.warning(f"Error serving object {path}: {e}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

        return Response(
            content=image.data,
            media_type=image.content_type,
            headers={"Cache-Control": f"public, max-age={settings.serve_cache_ttl}"},
        )

    @app.post("/api/objects/upload", dependencies=admin_only)
    def issue_upload_url() -> Dict[str, str]:
        """Issue a short-lived signed URL the browser PUTs the raw image to."""

        try:
            upload_url, _ = services.ingestion.issue_upload_url()
        except VehicleImagesError as e:
            logger.error(f"Error getting upload URL: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to get upload URL",
            )
        return {"uploadURL": upload_url}

    @app.put("/api/vehicle-images", dependencies=admin_only)
    def attach_vehicle_image(payload: AttachImageRequest) -> Dict[str, str]:
        """Normalize, process and optionally attach a freshly uploaded image."""

        if not payload.upload_url:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="uploadURL is required"
            )

        try:
            path = services.ingestion.ingest_upload(payload.upload_url, payload.vehicle_id)
        except InvalidPathError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except VehicleNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
        except VehicleImagesError as e:
            logger.error(f"Error attaching vehicle image: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
            )

        return {"normalizedPath": path}

    @app.post("/api/admin/process-images", dependencies=admin_only)
    def process_images() -> Dict[str, int]:
        """Reprocess every vehicle image and report the aggregate counts."""

        try:
            report = services.reprocessor.reprocess_all()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error in bulk image processing: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to process images",
            )
        return report.model_dump(by_alias=True)

    return app
