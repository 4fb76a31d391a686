"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError

from .exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str, minimum: int) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {parsed}")
    return parsed


class ServiceSettings(BaseModel):
    """Configuration for the image services and HTTP layer."""

    images_bucket: str = "vehicle-images"
    watermark_path: str = "assets/watermark.png"
    admin_token: str = ""
    s3_endpoint_url: Optional[str] = None
    aws_region: Optional[str] = None
    upload_url_ttl: int = 900
    serve_cache_ttl: int = 3600
    batch_workers: int = 1
    preserve_originals: bool = True
    vehicle_db_path: str = "vehicles.db"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceSettings":
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values = {
            "images_bucket": env.get("IMAGES_BUCKET", "vehicle-images"),
            "watermark_path": env.get("WATERMARK_PATH", "assets/watermark.png"),
            "admin_token": env.get("ADMIN_TOKEN", ""),
            "s3_endpoint_url": env.get("S3_ENDPOINT_URL") or None,
            "aws_region": env.get("AWS_REGION") or None,
            "upload_url_ttl": _parse_int("UPLOAD_URL_TTL", env.get("UPLOAD_URL_TTL", "900"), 1),
            "serve_cache_ttl": _parse_int("SERVE_CACHE_TTL", env.get("SERVE_CACHE_TTL", "3600"), 0),
            "batch_workers": _parse_int("BATCH_WORKERS", env.get("BATCH_WORKERS", "1"), 1),
            "preserve_originals": _parse_bool(
                "PRESERVE_ORIGINALS", env.get("PRESERVE_ORIGINALS", "true")
            ),
            "vehicle_db_path": env.get("VEHICLE_DB_PATH", "vehicles.db"),
            "log_level": env.get("LOG_LEVEL", "INFO"),
        }
        if not values["images_bucket"]:
            raise ConfigurationError("IMAGES_BUCKET must not be empty")
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
