"""Shared data models for the vehicle image pipeline."""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

# Application-facing image reference, e.g. "/objects/vehicle-images/uploads/abc123".
NormalizedImagePath = str


class ProcessingConfig(BaseModel):
    """Constants of the resize and watermark transform."""

    canvas_width: int = 800
    canvas_height: int = 600
    watermark_width: int = 120
    watermark_margin: int = 20
    jpeg_quality: int = 85
    processed_marker_key: str = "processed-by-server"
    processed_at_key: str = "processed-at"
    originals_prefix: str = "originals/"


class ImageObjectRef(BaseModel):
    """Coordinates of a stored blob."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    object_key: str


class ImageBytes(BaseModel):
    """Raw image buffer plus its content type and storage metadata."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    content_type: str = "image/jpeg"
    metadata: Dict[str, str] = Field(default_factory=dict)


class ProcessingOutcome(str, Enum):
    """Per-image outcome of an ingestion or reprocessing step."""

    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


class ProcessingResult(BaseModel):
    """Result of processing a single image."""

    path: str
    status: ProcessingOutcome = ProcessingOutcome.FAILED
    error: str = ""
    used_original: bool = False
    processing_time: float = 0.0


class BatchReport(BaseModel):
    """Aggregate counts of a reprocessing run."""

    model_config = ConfigDict(populate_by_name=True)

    processed_count: int = Field(default=0, alias="processedCount")
    error_count: int = Field(default=0, alias="errorCount")
    total_vehicles: int = Field(default=0, alias="totalVehicles")


class VehicleRecord(BaseModel):
    """The part of a vehicle row the image pipeline reads and writes."""

    id: str
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    status: str = "available"
    images: List[NormalizedImagePath] = Field(default_factory=list)
