"""Core services and shared components for the vehicle image pipeline."""

from .addressing import ObjectAddressingScheme
from .exceptions import (
    ConfigurationError,
    ImageProcessingError,
    InvalidPathError,
    ObjectNotFoundError,
    StorageUnavailableError,
    VehicleImagesError,
    VehicleNotFoundError,
)
from .logging_config import get_logger, setup_logger
from .models import (
    BatchReport,
    ImageBytes,
    ImageObjectRef,
    NormalizedImagePath,
    ProcessingConfig,
    ProcessingOutcome,
    ProcessingResult,
    VehicleRecord,
)
from .services import (
    BatchReprocessor,
    ImageIngestionService,
    WatermarkAsset,
    WatermarkTransformService,
)
from .settings import ServiceSettings

__all__ = [
    "ObjectAddressingScheme",
    "BatchReport",
    "ImageBytes",
    "ImageObjectRef",
    "NormalizedImagePath",
    "ProcessingConfig",
    "ProcessingOutcome",
    "ProcessingResult",
    "VehicleRecord",
    "BatchReprocessor",
    "ImageIngestionService",
    "WatermarkAsset",
    "WatermarkTransformService",
    "ServiceSettings",
    "setup_logger",
    "get_logger",
    "VehicleImagesError",
    "ConfigurationError",
    "ImageProcessingError",
    "InvalidPathError",
    "ObjectNotFoundError",
    "StorageUnavailableError",
    "VehicleNotFoundError",
]
