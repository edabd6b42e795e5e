"""
Object Storage Configuration
============================

Environment Variables:
    GCS_BUCKET: Bucket holding user and product images (required)
    GCS_CREDENTIALS_JSON: Path to the service account JSON (required)
    GCS_PROJECT_ID: GCP project ID (optional)
    SIGNED_URL_TTL_SECONDS: Lifetime requested for signed URLs (default: 3600)
    SIGNED_URL_MARGIN_SECONDS: How long before provider expiry a cached URL
        is discarded (default: 300)

Usage:
    from storage.storage_config import get_storage_settings

    settings = get_storage_settings()
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# UPLOAD RULES
# =============================================================================

MAX_FILE_SIZE = 2 * 1024 * 1024  # 2MB
ALLOWED_MIME_TYPES: tuple[str, ...] = ("image/jpeg", "image/png")

USER_PROFILE_PATH = "users/profile-pictures"
PRODUCT_IMAGES_PATH = "products/images"
DEFAULT_PROFILE_PICTURE_KEY = "defaults/default-profile.jpg"

DEFAULT_SIGNED_URL_TTL_SECONDS = 3600
DEFAULT_SIGNED_URL_MARGIN_SECONDS = 5 * 60


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class StorageSettings:
    """Bucket and signed URL configuration loaded from environment variables."""

    bucket_name: str
    credentials_path: str
    project_id: str | None
    signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS
    signed_url_margin_seconds: int = DEFAULT_SIGNED_URL_MARGIN_SECONDS


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """Load storage settings, failing fast on missing bucket or credentials."""
    bucket_name = os.getenv("GCS_BUCKET")
    credentials_path = os.getenv("GCS_CREDENTIALS_JSON")

    missing = [
        name
        for name, value in (
            ("GCS_BUCKET", bucket_name),
            ("GCS_CREDENTIALS_JSON", credentials_path),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing storage env vars: {', '.join(missing)}")

    return StorageSettings(
        bucket_name=bucket_name,
        credentials_path=credentials_path,
        project_id=os.getenv("GCS_PROJECT_ID") or None,
        signed_url_ttl_seconds=int(
            os.getenv("SIGNED_URL_TTL_SECONDS", str(DEFAULT_SIGNED_URL_TTL_SECONDS))
        ),
        signed_url_margin_seconds=int(
            os.getenv("SIGNED_URL_MARGIN_SECONDS", str(DEFAULT_SIGNED_URL_MARGIN_SECONDS))
        ),
    )
