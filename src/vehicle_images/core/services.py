"""Service implementations for the vehicle image pipeline."""

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import Image

from .addressing import ObjectAddressingScheme
from .error_handling import BatchOperationContextManager
from .exceptions import (
    ImageProcessingError,
    InvalidPathError,
    ObjectNotFoundError,
    VehicleImagesError,
    VehicleNotFoundError,
)
from .image_utils import (
    composite_watermark,
    cover_fit,
    decode_image,
    encode_jpeg,
    scale_watermark,
    watermark_position,
)
from .models import (
    BatchReport,
    ImageBytes,
    ImageObjectRef,
    NormalizedImagePath,
    ProcessingConfig,
    ProcessingOutcome,
    ProcessingResult,
)
from .observability import LogContext, MetricsCollector
from .protocols import (
    BlobStoreProtocol,
    ImageTransformerProtocol,
    LoggerProtocol,
    VehicleStoreProtocol,
)

_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class WatermarkAsset:
    """The dealership logo composited onto every vehicle photo."""

    image: Image.Image
    source_path: str

    @classmethod
    def load(
        cls, path: str, logger: Optional[LoggerProtocol] = None
    ) -> Optional["WatermarkAsset"]:
        """
        Load the watermark once, returning None if it is missing or unreadable.
        """
        if not os.path.isfile(path):
            if logger:
                logger.warning(f"Watermark not found at {path}, processing without watermark")
            return None

        try:
            with Image.open(path) as img:
                img.load()
                rgba = img.convert("RGBA")
        except _DECODE_ERRORS as e:
            if logger:
                logger.warning(f"Watermark at {path} could not be read: {e}")
            return None

        return cls(image=rgba, source_path=str(path))


class WatermarkTransformService:
    """Pure transform: cover-fit to the canvas, watermark, encode as JPEG."""

    def __init__(
        self,
        config: Optional[ProcessingConfig] = None,
        watermark: Optional[WatermarkAsset] = None,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._config = config or ProcessingConfig()
        self._logger = logger
        self._watermark: Optional[Image.Image] = None

        if watermark is not None:
            try:
                self._watermark = scale_watermark(
                    watermark.image, self._config.watermark_width
                )
            except Exception as e:  # noqa: BLE001
                self._warn(f"Could not scale watermark {watermark.source_path}: {e}")

    @property
    def has_watermark(self) -> bool:
        return self._watermark is not None

    def _warn(self, message: str) -> None:
        if self._logger:
            self._logger.warning(message)

    def _apply_watermark(self, canvas: Image.Image) -> Image.Image:
        wm_size: Tuple[Optional[int], Optional[int]] = (None, None)
        if self._watermark is not None:
            wm_size = self._watermark.size
        position = watermark_position(
            canvas.size,
            wm_size,
            self._config.watermark_margin,
            fallback=self._config.watermark_width,
        )
        return composite_watermark(canvas, self._watermark, position)

    def normalize(self, image: ImageBytes) -> ImageBytes:
        """
        Normalize an image to an 800x600 watermarked JPEG.

        A missing watermark or a failure while compositing it degrades to the
        resized image without watermark.

        Raises:
            ImageProcessingError: If the input cannot be decoded or resized.
        """
        size = (self._config.canvas_width, self._config.canvas_height)
        try:
            canvas = cover_fit(decode_image(image.data), size)
        except _DECODE_ERRORS as e:
            raise ImageProcessingError(f"Cannot decode or resize image: {e}") from e

        if self._watermark is not None:
            try:
                canvas = self._apply_watermark(canvas)
            except Exception as e:  # noqa: BLE001
                self._warn(f"Watermarking failed, keeping resized image only: {e}")

        return ImageBytes(
            data=encode_jpeg(canvas, self._config.jpeg_quality),
            content_type="image/jpeg",
        )


class ImageIngestionService:
    """Download -> transform -> overwrite, and ingest-and-attach for uploads."""

    def __init__(
        self,
        blob_store: BlobStoreProtocol,
        transformer: ImageTransformerProtocol,
        scheme: ObjectAddressingScheme,
        vehicle_store: VehicleStoreProtocol,
        logger: LoggerProtocol,
        config: Optional[ProcessingConfig] = None,
        preserve_originals: bool = True,
        upload_url_ttl: int = 900,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._blob_store = blob_store
        self._transformer = transformer
        self._scheme = scheme
        self._vehicle_store = vehicle_store
        self._logger = logger
        self._config = config or ProcessingConfig()
        self._preserve_originals = preserve_originals
        self._upload_url_ttl = upload_url_ttl
        self._metrics_collector = metrics_collector

    @property
    def scheme(self) -> ObjectAddressingScheme:
        return self._scheme

    def original_ref(self, ref: ImageObjectRef) -> ImageObjectRef:
        """Storage ref of the raw copy kept for a processed object."""
        return ImageObjectRef(
            bucket=ref.bucket,
            object_key=f"{self._config.originals_prefix}{ref.object_key}",
        )

    def is_preserved_original(self, ref: ImageObjectRef) -> bool:
        """True for keys under the originals prefix, which are never served."""
        return ref.object_key.startswith(self._config.originals_prefix)

    def _is_processed(self, image: ImageBytes) -> bool:
        return image.metadata.get(self._config.processed_marker_key) == "true"

    def _select_source(
        self, ref: ImageObjectRef, current: ImageBytes, log_context: LogContext
    ) -> Tuple[ImageBytes, bool]:
        """Pick the bytes to derive from: the preserved original once processed."""
        if not self._preserve_originals or not self._is_processed(current):
            return current, False

        try:
            return self._blob_store.download(self.original_ref(ref)), True
        except ObjectNotFoundError:
            self._logger.warning(
                "Processed image has no preserved original, re-deriving from current bytes",
                log_context,
            )
            return current, False

    def _preserve_original(
        self, ref: ImageObjectRef, current: ImageBytes, log_context: LogContext
    ) -> None:
        # Only unmarked bytes are raw uploads; marked ones already have their copy.
        if not self._preserve_originals or self._is_processed(current):
            return
        self._logger.debug(
            "Preserving raw upload", log_context.with_operation("preserve_original")
        )
        self._blob_store.upload(
            self.original_ref(ref), current.data, current.content_type, current.metadata
        )

    def _record(self, start_time: float, success: bool, ref: ImageObjectRef, error: str = "") -> None:
        if self._metrics_collector:
            self._metrics_collector.record(
                "process_and_replace",
                start_time,
                success,
                error_message=error or None,
                bucket=ref.bucket,
                object_key=ref.object_key,
            )

    def process_and_replace(self, ref: ImageObjectRef) -> ProcessingResult:
        """
        Normalize the image stored at ref and overwrite it in place.

        Raises:
            ObjectNotFoundError: If nothing is stored at ref.
            ImageProcessingError: For any other download, transform or upload failure.
        """
        start_time = time.time()
        path = self._scheme.path_for(ref)
        log_context = LogContext.for_object(
            ref.bucket, ref.object_key, "process_and_replace", "image_ingestion_service"
        )

        try:
            self._logger.debug("Downloading image", log_context.with_operation("download_image"))
            current = self._blob_store.download(ref)
        except ObjectNotFoundError as e:
            self._logger.error("Image not found", log_context.with_metadata(error=str(e)))
            self._record(start_time, False, ref, str(e))
            raise
        except Exception as e:  # noqa: BLE001
            self._logger.error("Image download failed", log_context.with_metadata(error=str(e)))
            self._record(start_time, False, ref, str(e))
            raise ImageProcessingError(f"Failed to download {path}: {e}") from e

        try:
            source, used_original = self._select_source(ref, current, log_context)

            self._logger.debug("Normalizing image", log_context.with_operation("normalize"))
            processed = self._transformer.normalize(source)
            self._preserve_original(ref, current, log_context)

            metadata = {
                self._config.processed_marker_key: "true",
                self._config.processed_at_key: datetime.now(timezone.utc).isoformat(),
            }
            self._logger.debug("Uploading processed image", log_context.with_operation("upload_image"))
            self._blob_store.upload(ref, processed.data, "image/jpeg", metadata)
        except Exception as e:  # noqa: BLE001
            self._logger.error("Image processing failed", log_context.with_metadata(error=str(e)))
            self._record(start_time, False, ref, str(e))
            raise ImageProcessingError(f"Failed to process {path}: {e}") from e

        self._record(start_time, True, ref)
        processing_time = time.time() - start_time
        self._logger.info(
            "Successfully processed image",
            log_context,
            processing_time_ms=round(processing_time * 1000, 1),
            used_original=used_original,
        )
        return ProcessingResult(
            path=path,
            status=ProcessingOutcome.PROCESSED,
            used_original=used_original,
            processing_time=processing_time,
        )

    def ingest_upload(
        self, upload_url: str, vehicle_id: Optional[str] = None
    ) -> NormalizedImagePath:
        """
        Normalize a fresh upload, process it best-effort and attach it to a vehicle.

        Processing failures are logged and the raw upload stays in place; the
        returned path is usable either way.

        Raises:
            InvalidPathError: If no path can be derived from the URL at all.
            VehicleNotFoundError: If vehicle_id does not exist.
        """
        path, used_fallback = self._scheme.normalize_with_fallback(upload_url)
        if used_fallback:
            self._logger.warning(f"Upload URL could not be normalized, using fallback path {path}")

        if vehicle_id and self._vehicle_store.get_by_id(vehicle_id) is None:
            raise VehicleNotFoundError(f"Vehicle {vehicle_id} not found")

        try:
            self.process_and_replace(self._scheme.resolve(path))
        except VehicleImagesError as e:
            self._logger.error(f"Error processing image {path}, keeping raw upload: {e}")

        if vehicle_id:
            if self._vehicle_store.append_image(vehicle_id, path) is None:
                raise VehicleNotFoundError(f"Vehicle {vehicle_id} not found")
            self._logger.info(f"Attached {path} to vehicle {vehicle_id}")

        return path

    def issue_upload_url(self) -> Tuple[str, ImageObjectRef]:
        """Issue a presigned upload URL for a brand new object key."""
        ref = self._scheme.new_upload_ref()
        url = self._blob_store.issue_upload_url(ref, self._upload_url_ttl)
        return url, ref

    def open_image(self, path: NormalizedImagePath) -> ImageBytes:
        """
        Fetch the stored bytes behind an application path.

        Raises:
            InvalidPathError: If the path is outside the addressing scheme or
                points at a preserved original.
            ObjectNotFoundError: If no object is stored there.
        """
        ref = self._scheme.resolve(path)
        if self.is_preserved_original(ref):
            raise InvalidPathError(f"Path {path} is not publicly served")
        return self._blob_store.download(ref)


class BatchReprocessor:
    """Re-runs ingestion processing over every image of every vehicle."""

    def __init__(
        self,
        ingestion_service: ImageIngestionService,
        vehicle_store: VehicleStoreProtocol,
        logger: LoggerProtocol,
        max_workers: int = 1,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._ingestion_service = ingestion_service
        self._vehicle_store = vehicle_store
        self._logger = logger
        self._max_workers = max(1, max_workers)
        self._metrics_collector = metrics_collector

    def _collect_refs(
        self, paths: List[str]
    ) -> Tuple[List[Tuple[str, ImageObjectRef]], List[ProcessingResult]]:
        """Split paths into resolvable refs and SKIPPED results for the rest."""
        scheme = self._ingestion_service.scheme
        refs: List[Tuple[str, ImageObjectRef]] = []
        skipped: List[ProcessingResult] = []
        for path in paths:
            if not scheme.matches(path):
                self._logger.debug(f"Skipping non-object path {path}")
                skipped.append(
                    ProcessingResult(
                        path=path, status=ProcessingOutcome.SKIPPED, error="not an object path"
                    )
                )
                continue
            try:
                refs.append((path, scheme.resolve(path)))
            except InvalidPathError as e:
                self._logger.warning(f"Skipping unresolvable path {path}: {e}")
                skipped.append(
                    ProcessingResult(path=path, status=ProcessingOutcome.SKIPPED, error=str(e))
                )
        return refs, skipped

    def _process_one(self, path: str, ref: ImageObjectRef) -> ProcessingResult:
        try:
            return self._ingestion_service.process_and_replace(ref)
        except Exception as e:  # noqa: BLE001
            return ProcessingResult(path=path, status=ProcessingOutcome.FAILED, error=str(e))

    def _run(self, refs: List[Tuple[str, ImageObjectRef]]) -> Iterator[ProcessingResult]:
        if self._max_workers == 1 or len(refs) <= 1:
            for path, ref in refs:
                yield self._process_one(path, ref)
            return

        max_workers = min(self._max_workers, len(refs))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_path = {
                executor.submit(self._process_one, path, ref): path for path, ref in refs
            }
            for future in as_completed(future_to_path):
                yield future.result()

    def _timings(self, since: float) -> Dict[str, float]:
        if not self._metrics_collector:
            return {}
        summary = self._metrics_collector.get_summary("process_and_replace", since=since)
        if not summary:
            return {}
        return {
            "avg_duration_ms": round(summary["avg_duration_ms"], 1),
            "max_duration_ms": round(summary["max_duration_ms"], 1),
        }

    def reprocess_all(self) -> BatchReport:
        """
        Reprocess every stored image referenced by a vehicle.

        Individual failures are counted and logged, never raised. Skipped paths
        count toward neither total.
        """
        start_time = time.time()
        vehicles = self._vehicle_store.list_all()
        paths = [path for vehicle in vehicles for path in vehicle.images]
        refs, skipped = self._collect_refs(paths)

        report = BatchReport(total_vehicles=len(vehicles))
        with BatchOperationContextManager("Vehicle image reprocessing") as batch:
            for result in self._run(refs):
                if result.status is ProcessingOutcome.PROCESSED:
                    report.processed_count += 1
                else:
                    report.error_count += 1
                    batch.add_error(result.error or "Unknown error", result.path)

        self._logger.info(
            "Image reprocessing completed",
            processed=report.processed_count,
            errors=report.error_count,
            skipped=len(skipped),
            vehicles=report.total_vehicles,
            duration_s=round(time.time() - start_time, 2),
            **self._timings(start_time),
        )
        return report
