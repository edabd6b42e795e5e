"""Shared test fixtures: fake clock, fake bucket, service container and API client."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from alerts.cache import WeatherAlertsCache
from api.services.container import ServiceContainer
from auth.tokens import AccessTokenManager, AuthenticatedUser, TokenSettings
from jobs.scheduler import JobScheduler
from storage.media import MediaService
from storage.url_cache import SignedUrlCache

T0 = 1_700_000_000_000

SAMPLE_ALERTS = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[-0.5, 42.7], [-0.4, 42.7], [-0.4, 42.8], [-0.5, 42.7]]],
            },
            "properties": {"nivel": "amarillo", "fenomeno": "Nevadas", "areaDesc": "Pirineo oscense"},
        }
    ],
}


class FakeClock:
    """Millisecond clock advanced manually by tests."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeStorageProvider:
    """In-memory stand-in for the GCS backend that records every call."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.sign_calls: list[tuple[str, int]] = []
        self.delete_calls: list[str] = []
        self.fail_sign = False
        self.fail_delete = False
        self.fail_upload = False

    def generate_signed_url(self, blob_path: str, ttl_seconds: int) -> str:
        if self.fail_sign:
            raise ConnectionError("signing service unavailable")
        self.sign_calls.append((blob_path, ttl_seconds))
        return f"https://storage.test/{blob_path}?sig={len(self.sign_calls)}"

    def upload_bytes(self, data: bytes, blob_path: str, content_type: str) -> str:
        if self.fail_upload:
            raise ConnectionError("bucket unavailable")
        self.objects[blob_path] = (data, content_type)
        return blob_path

    def delete_object(self, blob_path: str) -> None:
        if self.fail_delete:
            raise ConnectionError("bucket unavailable")
        self.delete_calls.append(blob_path)
        self.objects.pop(blob_path, None)


class FakeAlertsFetcher:
    """Async callable returning queued results or raising queued errors."""

    def __init__(self, data=SAMPLE_ALERTS) -> None:
        self.data = data
        self.error: Exception | None = None
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeStorageProvider:
    return FakeStorageProvider()


@pytest.fixture
def url_cache(provider, clock) -> SignedUrlCache:
    return SignedUrlCache(provider, ttl_seconds=3600, margin_seconds=300, clock=clock)


@pytest.fixture
def fetcher() -> FakeAlertsFetcher:
    return FakeAlertsFetcher()


@pytest.fixture
def alerts_cache(fetcher, clock) -> WeatherAlertsCache:
    return WeatherAlertsCache(fetcher, clock=clock)


@pytest.fixture
def token_manager() -> AccessTokenManager:
    return AccessTokenManager(TokenSettings(secret="test-secret"))


@pytest.fixture
def services(provider, url_cache, alerts_cache, token_manager, clock) -> ServiceContainer:
    return ServiceContainer(
        url_cache=url_cache,
        media=MediaService(provider, url_cache, clock=clock),
        alerts_cache=alerts_cache,
        tokens=token_manager,
        scheduler=JobScheduler(),
    )


@pytest.fixture
def client(services):
    from main import create_app

    app = create_app(services=services, start_jobs=False)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_headers(token_manager) -> dict[str, str]:
    token = token_manager.issue(AuthenticatedUser(id="user-1", username="farmer"))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(token_manager) -> dict[str, str]:
    token = token_manager.issue(AuthenticatedUser(id="admin-1", username="root", is_admin=True))
    return {"Authorization": f"Bearer {token}"}
