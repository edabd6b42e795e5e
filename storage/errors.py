"""Storage error hierarchy shared by the GCS backend, URL cache and media service."""


class StorageError(RuntimeError):
    """Base class for object storage failures surfaced to callers."""


class SignedUrlGenerationError(StorageError):
    """Raised when the provider could not sign a URL for an object."""


class FileUploadError(StorageError):
    """Raised when an object could not be written to the bucket."""


class FileDeletionError(StorageError):
    """Raised when an object could not be deleted from the bucket."""


class InvalidImageError(ValueError):
    """Raised when an uploaded image fails type or size validation."""


__all__ = [
    "StorageError",
    "SignedUrlGenerationError",
    "FileUploadError",
    "FileDeletionError",
    "InvalidImageError",
]
