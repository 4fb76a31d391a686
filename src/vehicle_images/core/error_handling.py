# src/vehicle_images/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Dict, List, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import (
    ObjectNotFoundError,
    StorageUnavailableError,
    VehicleImagesError,
)

NOT_FOUND_ERROR_CODES = ("NoSuchKey", "NoSuchBucket", "404", "NotFound")

F = TypeVar("F", bound=Callable[..., Any])


def client_error_code(error: ClientError) -> str:
    """Return the S3 error code carried by a botocore ClientError."""
    return str(error.response.get("Error", {}).get("Code", ""))


def with_storage_error_handling(func: F) -> F:
    """
    Translate object storage failures into pipeline errors.

    botocore ``ClientError`` with a not-found code becomes ``ObjectNotFoundError``;
    any other botocore failure becomes ``StorageUnavailableError``. Pipeline errors
    pass through untouched. Image decoding is not translated here, the transform
    service maps decode failures to ``ImageProcessingError`` itself.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(func.__module__ + "." + func.__name__)
        try:
            return func(*args, **kwargs)
        except VehicleImagesError:
            raise
        except ClientError as e:
            code = client_error_code(e)
            if code in NOT_FOUND_ERROR_CODES:
                logger.debug(f"Object not found in '{func.__name__}': {e}")
                raise ObjectNotFoundError(f"Object not found ({code}): {e}") from e
            logger.error(f"S3 operation failed in '{func.__name__}': {e}", exc_info=True)
            raise StorageUnavailableError(
                f"S3 operation failed in {func.__name__}: {e}"
            ) from e
        except BotoCoreError as e:
            logger.error(f"S3 backend unreachable in '{func.__name__}': {e}", exc_info=True)
            raise StorageUnavailableError(
                f"S3 backend unavailable in {func.__name__}: {e}"
            ) from e

    return wrapper  # type: ignore[return-value]


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Exceptions not reported through add_error propagate.
        return False

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed (e.g. an image path).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
