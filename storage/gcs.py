"""
Google Cloud Storage backend for user and product images.

Handles:
1. Uploading image bytes to the bucket
2. Generating V4 signed URLs for read access
3. Deleting objects

The methods are synchronous (the SDK is blocking); async callers run them
through ``asyncio.to_thread``. SDK errors are logged and re-raised so the
caching and media layers can wrap them.
"""

import logging
import os
from datetime import timedelta
from typing import Optional, Protocol

from google.api_core.exceptions import NotFound
from google.cloud import storage
from google.oauth2 import service_account

from storage.storage_config import StorageSettings

logger = logging.getLogger(__name__)


class StorageProvider(Protocol):
    """Operations the signed URL cache and media service need from a bucket."""

    def generate_signed_url(self, blob_path: str, ttl_seconds: int) -> str:
        ...

    def upload_bytes(self, data: bytes, blob_path: str, content_type: str) -> str:
        ...

    def delete_object(self, blob_path: str) -> None:
        ...


class GCSStorageManager:
    """Image bucket backed by a service account; implements StorageProvider."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
    ):
        """
        Open the image bucket.

        Arguments left as None fall back to GCS_BUCKET, GCS_CREDENTIALS_JSON
        and GCS_PROJECT_ID. The service account must be allowed to sign URLs,
        since V4 signing happens locally with its private key.

        Raises:
            ValueError: no bucket configured or the key file is missing
        """
        bucket_name = bucket_name or os.getenv("GCS_BUCKET")
        credentials_path = credentials_path or os.getenv("GCS_CREDENTIALS_JSON")
        if not bucket_name:
            raise ValueError("GCS_BUCKET not configured")
        if not credentials_path or not os.path.exists(credentials_path):
            raise ValueError(f"GCS credentials not found at: {credentials_path}")

        self.bucket_name = bucket_name
        self.project_id = project_id or os.getenv("GCS_PROJECT_ID")
        self.credentials = service_account.Credentials.from_service_account_file(credentials_path)
        self.bucket = storage.Client(credentials=self.credentials, project=self.project_id).bucket(bucket_name)

        logger.info("Image bucket ready: %s (project=%s)", bucket_name, self.project_id or "default")

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "GCSStorageManager":
        return cls(
            bucket_name=settings.bucket_name,
            credentials_path=settings.credentials_path,
            project_id=settings.project_id,
        )

    def get_gs_url(self, blob_path: str) -> str:
        """Get gs:// URL for a blob"""
        return f"gs://{self.bucket_name}/{blob_path}"

    def upload_bytes(self, data: bytes, blob_path: str, content_type: str) -> str:
        """Upload raw bytes and return the object key."""
        try:
            blob = self.bucket.blob(blob_path)
            blob.upload_from_string(data, content_type=content_type)
        except Exception as exc:
            logger.error("Failed to upload %s to GCS: %s", blob_path, exc, exc_info=True)
            raise

        logger.info(
            "Uploaded object to GCS: %s (size: %d bytes)",
            self.get_gs_url(blob_path),
            len(data)
        )
        return blob_path

    def generate_signed_url(self, blob_path: str, ttl_seconds: int) -> str:
        """Generate a V4 GET signed URL valid for ``ttl_seconds``."""
        try:
            blob = self.bucket.blob(blob_path)
            url = blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
                credentials=self.credentials
            )
        except Exception as exc:
            logger.error("Failed to generate signed URL for %s: %s", blob_path, exc, exc_info=True)
            raise

        logger.debug("Generated signed URL for %s (expires in %d s)", blob_path, ttl_seconds)
        return url

    def delete_object(self, blob_path: str) -> None:
        """Delete an object; a missing object is not an error."""
        try:
            self.bucket.blob(blob_path).delete()
        except NotFound:
            logger.debug("Object already absent from GCS: %s", blob_path)
            return
        except Exception as exc:
            logger.error("Failed to delete %s from GCS: %s", blob_path, exc, exc_info=True)
            raise

        logger.info("Deleted object from GCS: %s", blob_path)


__all__ = ["GCSStorageManager", "StorageProvider"]
