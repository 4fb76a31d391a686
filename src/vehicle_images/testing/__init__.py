"""Testing utilities and fakes for the vehicle image pipeline."""

from .fakes import (
    FAKE_S3_ENDPOINT,
    FakeLogger,
    FakeS3Client,
    InMemoryVehicleStore,
    S3Bucket,
    S3Object,
    create_test_image,
    create_test_logo,
    save_test_logo,
    setup_test_s3_environment,
)

__all__ = [
    "FAKE_S3_ENDPOINT",
    "FakeLogger",
    "FakeS3Client",
    "InMemoryVehicleStore",
    "S3Bucket",
    "S3Object",
    "create_test_image",
    "create_test_logo",
    "save_test_logo",
    "setup_test_s3_environment",
]
