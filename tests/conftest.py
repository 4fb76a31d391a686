"""Shared test fixtures: fake S3, vehicle store, watermark logo and wired services."""

import pytest

from vehicle_images.core.factories import ImagePipelineFactory, ImageServices
from vehicle_images.core.settings import ServiceSettings
from vehicle_images.testing.fakes import (
    FakeLogger,
    FakeS3Client,
    InMemoryVehicleStore,
    save_test_logo,
    setup_test_s3_environment,
)


@pytest.fixture()
def fake_s3() -> FakeS3Client:
    return setup_test_s3_environment("vehicle-images")


@pytest.fixture()
def logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture()
def vehicle_store() -> InMemoryVehicleStore:
    return InMemoryVehicleStore()


@pytest.fixture()
def logo_path(tmp_path) -> str:
    return save_test_logo(str(tmp_path / "logo.png"))


@pytest.fixture()
def settings(logo_path) -> ServiceSettings:
    return ServiceSettings(
        images_bucket="vehicle-images",
        watermark_path=logo_path,
        admin_token="test-admin-token",
        vehicle_db_path=":memory:",
    )


@pytest.fixture()
def services(settings, fake_s3, vehicle_store, logger) -> ImageServices:
    return ImagePipelineFactory.create_services(
        settings=settings,
        s3_client=fake_s3,
        vehicle_store=vehicle_store,
        logger=logger,
    )
