"""Exception hierarchy for the vehicle image pipeline."""

from __future__ import annotations


class VehicleImagesError(Exception):
    """Base exception for all vehicle image pipeline errors."""


class ConfigurationError(VehicleImagesError):
    """Error raised for invalid configuration options."""


class InvalidPathError(VehicleImagesError):
    """Error raised when a path or URL does not fit the object addressing scheme."""


class ObjectNotFoundError(VehicleImagesError):
    """Error raised when a requested blob does not exist."""


class StorageUnavailableError(VehicleImagesError):
    """Error raised for transient object storage failures."""


class ImageProcessingError(VehicleImagesError):
    """Error raised when processing a single image fails."""


class VehicleNotFoundError(VehicleImagesError):
    """Error raised when a vehicle record does not exist."""
