"""
Cloud storage module.

Contains:
- gcs: Google Cloud Storage operations
- url_cache: Signed URL TTL cache
- media: Image upload and URL resolution
"""

from storage.errors import (
    FileDeletionError,
    FileUploadError,
    InvalidImageError,
    SignedUrlGenerationError,
    StorageError,
)
from storage.gcs import GCSStorageManager, StorageProvider
from storage.media import MediaService
from storage.url_cache import SignedUrlCache, SignedUrlCacheEntry

__all__ = [
    "GCSStorageManager",
    "StorageProvider",
    "MediaService",
    "SignedUrlCache",
    "SignedUrlCacheEntry",
    "StorageError",
    "SignedUrlGenerationError",
    "FileUploadError",
    "FileDeletionError",
    "InvalidImageError",
]
