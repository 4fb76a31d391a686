# tests/core/test_error_handling.py

import pytest
from unittest import mock

from botocore.exceptions import ClientError, EndpointConnectionError
from PIL import UnidentifiedImageError

from vehicle_images.core.error_handling import (
    BatchOperationContextManager,
    client_error_code,
    with_storage_error_handling,
)
from vehicle_images.core.exceptions import (
    InvalidPathError,
    ObjectNotFoundError,
    StorageUnavailableError,
)


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "test"}}, "GetObject")


@pytest.fixture
def mock_logger():
    """Patch logging.getLogger as used by the decorator and context manager."""
    with mock.patch("vehicle_images.core.error_handling.logging") as mock_logging:
        mock_log_instance = mock.Mock()
        mock_logging.getLogger.return_value = mock_log_instance
        yield mock_log_instance


# --- Tests for @with_storage_error_handling ---


def test_client_error_code():
    assert client_error_code(_client_error("NoSuchKey")) == "NoSuchKey"
    assert client_error_code(ClientError({}, "GetObject")) == ""


@pytest.mark.parametrize("code", ["NoSuchKey", "NoSuchBucket", "404", "NotFound"])
def test_not_found_codes_map_to_object_not_found(code):
    @with_storage_error_handling
    def download():
        raise _client_error(code)

    with pytest.raises(ObjectNotFoundError) as exc_info:
        download()
    assert isinstance(exc_info.value.__cause__, ClientError)


@pytest.mark.parametrize("code", ["AccessDenied", "ServiceUnavailable", "SlowDown"])
def test_other_client_errors_map_to_storage_unavailable(code, mock_logger):
    @with_storage_error_handling
    def upload():
        raise _client_error(code)

    with pytest.raises(StorageUnavailableError, match="upload"):
        upload()
    args, kwargs = mock_logger.error.call_args
    assert kwargs.get("exc_info") is True


def test_botocore_errors_map_to_storage_unavailable():
    @with_storage_error_handling
    def download():
        raise EndpointConnectionError(endpoint_url="http://localhost:9000")

    with pytest.raises(StorageUnavailableError):
        download()


def test_image_decode_errors_are_not_translated():
    @with_storage_error_handling
    def decode():
        raise UnidentifiedImageError("cannot identify image file")

    with pytest.raises(UnidentifiedImageError):
        decode()


def test_pipeline_errors_pass_through():
    @with_storage_error_handling
    def resolve():
        raise InvalidPathError("bad path")

    with pytest.raises(InvalidPathError, match="bad path"):
        resolve()


def test_unrelated_errors_are_not_swallowed():
    @with_storage_error_handling
    def broken():
        raise ValueError("Original error")

    with pytest.raises(ValueError, match="Original error"):
        broken()


def test_successful_call_returns_value():
    @with_storage_error_handling
    def ok(value):
        return value * 2

    assert ok(21) == 42
    assert ok.__name__ == "ok"


# --- Tests for BatchOperationContextManager ---


def test_batch_context_manager_collects_errors(mock_logger):
    with BatchOperationContextManager("Reprocessing") as batch:
        batch.add_error("boom", "/objects/vehicle-images/uploads/a")
        batch.add_error(ValueError("bad"), "/objects/vehicle-images/uploads/b")

    assert batch.error_count == 2
    assert batch.errors[0] == {"item": "/objects/vehicle-images/uploads/a", "error": "boom"}
    assert batch.errors[1]["error"] == "bad"
    mock_logger.warning.assert_called_once()
    assert mock_logger.error.call_count == 2


def test_batch_context_manager_success(mock_logger):
    with BatchOperationContextManager("Reprocessing") as batch:
        pass

    assert batch.error_count == 0
    mock_logger.info.assert_any_call("Reprocessing completed successfully.")


def test_batch_context_manager_does_not_suppress_exceptions(mock_logger):
    with pytest.raises(RuntimeError):
        with BatchOperationContextManager("Reprocessing"):
            raise RuntimeError("store down")

    mock_logger.error.assert_called_once()
