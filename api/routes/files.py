"""
File Routes Module.

Handles image uploads and signed URL access with caching:
- GET /files/default-profile-picture: Signed URL of the shared default picture
- POST /files/profile-picture: Upload the caller's profile picture
- POST /files/products/{product_id}/image: Upload a product image
- GET /files/{key}/signed-url: Signed URL for an object (?refresh=true to re-sign)
- DELETE /files/{key}: Delete an object and its cached URL (admin)
- GET /files/cache/status, POST /files/cache/clean: Cache housekeeping (admin)

Caching System:
- Signed URLs are requested with a 1 hour lifetime
- Cached URLs are discarded 5 minutes before that lifetime ends
"""

import logging
from urllib.parse import unquote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.middleware import require_admin, require_user
from api.services.container import ServiceContainer, get_services
from auth.tokens import AuthenticatedUser
from storage.errors import InvalidImageError, StorageError
from storage.media import validate_image
from storage.storage_config import DEFAULT_PROFILE_PICTURE_KEY, MAX_FILE_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class FileUrlResponse(BaseModel):
    key: str
    url: str


class FileDeletedResponse(BaseModel):
    message: str
    key: str


class UrlCacheStatusResponse(BaseModel):
    size: int


class UrlCacheCleanResponse(BaseModel):
    removed: int
    size: int


def _error_response(message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": message, "error": str(exc)},
    )


def _validation_response(exc: InvalidImageError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


def _normalize_key(key: str) -> str:
    decoded = unquote(key).strip().lstrip("/")
    if not decoded:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="key cannot be empty")
    return decoded


async def _read_image(file: UploadFile) -> bytes:
    """Read an upload, never buffering more than one byte past the size limit."""
    if file.size is not None:
        validate_image(file.content_type, file.size)
    data = await file.read(MAX_FILE_SIZE + 1)
    validate_image(file.content_type, len(data))
    return data


# =============================================================================
# CACHE HOUSEKEEPING (admin)
# =============================================================================

@router.get("/cache/status", response_model=UrlCacheStatusResponse, dependencies=[Depends(require_admin)])
async def get_url_cache_status(services: ServiceContainer = Depends(get_services)) -> UrlCacheStatusResponse:
    return UrlCacheStatusResponse(size=services.url_cache.get_cache_size())


@router.post("/cache/clean", response_model=UrlCacheCleanResponse, dependencies=[Depends(require_admin)])
async def clean_url_cache(services: ServiceContainer = Depends(get_services)) -> UrlCacheCleanResponse:
    removed = services.url_cache.clean_expired_cache()
    return UrlCacheCleanResponse(removed=removed, size=services.url_cache.get_cache_size())


# =============================================================================
# UPLOADS
# =============================================================================

@router.get("/default-profile-picture", response_model=FileUrlResponse, dependencies=[Depends(require_user)])
async def get_default_profile_picture(services: ServiceContainer = Depends(get_services)):
    try:
        url = await services.media.get_default_profile_picture_url()
    except StorageError as exc:
        logger.error("Error getting default profile picture URL: %s", exc)
        return _error_response("Failed to get default profile picture URL", exc)
    return FileUrlResponse(key=DEFAULT_PROFILE_PICTURE_KEY, url=url)


@router.post("/profile-picture", response_model=FileUrlResponse)
async def upload_profile_picture(
    file: UploadFile = File(...),
    previous_key: str | None = Form(None),
    user: AuthenticatedUser = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Upload a new profile picture for the authenticated user.

    When ``previous_key`` is given, the old picture is deleted after the new
    one is stored. Only the caller's own profile pictures can be replaced;
    any other key is a 400.
    """
    try:
        data = await _read_image(file)
        key, url = await services.media.upload_profile_picture(
            user.id,
            data,
            file.content_type,
            previous_key=_normalize_key(previous_key) if previous_key else None,
        )
    except InvalidImageError as exc:
        return _validation_response(exc)
    except StorageError as exc:
        logger.error("Error uploading profile picture for user %s: %s", user.id, exc)
        return _error_response("Error uploading profile picture", exc)
    return FileUrlResponse(key=key, url=url)


@router.post("/products/{product_id}/image", response_model=FileUrlResponse, dependencies=[Depends(require_user)])
async def upload_product_image(
    product_id: str,
    file: UploadFile = File(...),
    services: ServiceContainer = Depends(get_services),
):
    try:
        data = await _read_image(file)
        key, url = await services.media.upload_product_image(product_id, data, file.content_type)
    except InvalidImageError as exc:
        return _validation_response(exc)
    except StorageError as exc:
        logger.error("Error uploading image for product %s: %s", product_id, exc)
        return _error_response("Error uploading product image", exc)
    return FileUrlResponse(key=key, url=url)


# =============================================================================
# SIGNED URLS
# =============================================================================

@router.get("/{key:path}/signed-url", response_model=FileUrlResponse, dependencies=[Depends(require_user)])
async def get_file_signed_url(
    key: str,
    refresh: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    """
    Get a signed URL for an object, reusing the cached one when still valid.

    Args:
        key: Object key inside the bucket
        refresh: Re-sign even if a cached URL is still valid
    """
    object_key = _normalize_key(key)
    try:
        if refresh:
            url = await services.url_cache.refresh_signed_url(object_key)
        else:
            url = await services.url_cache.get_signed_url(object_key)
    except StorageError as exc:
        return _error_response("Error generating signed URL", exc)
    return FileUrlResponse(key=object_key, url=url)


@router.delete("/{key:path}", response_model=FileDeletedResponse, dependencies=[Depends(require_admin)])
async def delete_file(key: str, services: ServiceContainer = Depends(get_services)):
    object_key = _normalize_key(key)
    try:
        await services.url_cache.delete_file(object_key)
    except StorageError as exc:
        return _error_response("Error deleting file", exc)
    logger.info("Deleted file %s", object_key)
    return FileDeletedResponse(message="File deleted", key=object_key)


__all__ = ["router"]
