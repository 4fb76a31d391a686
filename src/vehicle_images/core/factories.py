"""Factory classes for creating configured service instances."""

from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

import boto3
from botocore.config import Config

from .addressing import ObjectAddressingScheme
from .models import ProcessingConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import LoggerProtocol, S3ClientProtocol, VehicleStoreProtocol
from .services import (
    BatchReprocessor,
    ImageIngestionService,
    WatermarkAsset,
    WatermarkTransformService,
)
from .settings import ServiceSettings
from .storage import S3BlobStore
from .vehicle_store import SqliteVehicleStore

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: Optional[str] = None) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level=level)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(settings: Optional[ServiceSettings] = None, **kwargs: Any) -> "S3Client":
        """Create an S3 client, honouring a custom endpoint and region."""
        settings = settings or ServiceSettings()
        if settings.s3_endpoint_url:
            kwargs.setdefault("endpoint_url", settings.s3_endpoint_url)
            # Presigned URLs keep the bucket in the path for non-AWS endpoints.
            kwargs.setdefault("config", Config(s3={"addressing_style": "path"}))
        if settings.aws_region:
            kwargs.setdefault("region_name", settings.aws_region)
        session = boto3.Session()
        return session.client("s3", **kwargs)


@dataclass
class ImageServices:
    """All wired services for one process."""

    settings: ServiceSettings
    scheme: ObjectAddressingScheme
    blob_store: S3BlobStore
    transformer: WatermarkTransformService
    vehicle_store: VehicleStoreProtocol
    ingestion: ImageIngestionService
    reprocessor: BatchReprocessor
    metrics: MetricsCollector


class ImagePipelineFactory:
    """Factory for creating the complete image pipeline."""

    @staticmethod
    def create_services(
        settings: Optional[ServiceSettings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        vehicle_store: Optional[VehicleStoreProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        config: Optional[ProcessingConfig] = None,
    ) -> ImageServices:
        """Create fully configured services; missing collaborators are built from settings."""
        if settings is None:
            settings = ServiceSettings.from_env()

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client(settings)

        if logger is None:
            logger = LoggerFactory.create_logger("vehicle-images", level=settings.log_level)

        if vehicle_store is None:
            vehicle_store = SqliteVehicleStore(settings.vehicle_db_path)

        config = config or ProcessingConfig()
        metrics = MetricsCollector()

        # Loaded once; the logo never changes while the process runs.
        watermark = WatermarkAsset.load(settings.watermark_path, logger)

        scheme = ObjectAddressingScheme(default_bucket=settings.images_bucket)
        blob_store = S3BlobStore(s3_client, logger)
        transformer = WatermarkTransformService(config, watermark, logger)
        ingestion = ImageIngestionService(
            blob_store=blob_store,
            transformer=transformer,
            scheme=scheme,
            vehicle_store=vehicle_store,
            logger=logger,
            config=config,
            preserve_originals=settings.preserve_originals,
            upload_url_ttl=settings.upload_url_ttl,
            metrics_collector=metrics,
        )
        reprocessor = BatchReprocessor(
            ingestion_service=ingestion,
            vehicle_store=vehicle_store,
            logger=logger,
            max_workers=settings.batch_workers,
            metrics_collector=metrics,
        )

        return ImageServices(
            settings=settings,
            scheme=scheme,
            blob_store=blob_store,
            transformer=transformer,
            vehicle_store=vehicle_store,
            ingestion=ingestion,
            reprocessor=reprocessor,
            metrics=metrics,
        )
