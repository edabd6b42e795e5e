"""
Unit Tests for the Signed URL Cache

Tests storage/url_cache.py: hit/miss behaviour, forced refresh, deletion,
expiry sweeps and error wrapping.
"""

import pytest

from conftest import T0
from storage.errors import FileDeletionError, SignedUrlGenerationError
from storage.url_cache import SignedUrlCache

TTL_MS = 3600 * 1000
MARGIN_MS = 300 * 1000


class TestGetSignedUrl:
    """Cache hits and misses."""

    @pytest.mark.asyncio
    async def test_second_call_within_window_is_served_from_cache(self, url_cache, provider, clock):
        first = await url_cache.get_signed_url("products/images/p1.jpg")
        clock.advance(TTL_MS - MARGIN_MS - 1)
        second = await url_cache.get_signed_url("products/images/p1.jpg")

        assert first == second
        assert provider.sign_calls == [("products/images/p1.jpg", 3600)]

    @pytest.mark.asyncio
    async def test_entry_expires_at_ttl_minus_margin(self, url_cache, clock):
        await url_cache.get_signed_url("a.jpg")

        entry = url_cache.get_entry("a.jpg")
        assert entry.expires_at == T0 + TTL_MS - MARGIN_MS

    @pytest.mark.asyncio
    async def test_expired_entry_is_resigned(self, url_cache, provider, clock):
        first = await url_cache.get_signed_url("a.jpg")
        clock.advance(TTL_MS - MARGIN_MS)
        second = await url_cache.get_signed_url("a.jpg")

        assert first != second
        assert len(provider.sign_calls) == 2
        assert url_cache.get_entry("a.jpg").expires_at == clock.now + TTL_MS - MARGIN_MS

    @pytest.mark.asyncio
    async def test_keys_are_cached_independently(self, url_cache, provider):
        await url_cache.get_signed_url("a.jpg")
        await url_cache.get_signed_url("b.jpg")
        await url_cache.get_signed_url("a.jpg")

        assert [call[0] for call in provider.sign_calls] == ["a.jpg", "b.jpg"]
        assert url_cache.get_cache_size() == 2


class TestForcedRefresh:
    """force_refresh and refresh_signed_url always go upstream."""

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_valid_entry(self, url_cache, provider):
        first = await url_cache.get_signed_url("a.jpg")
        refreshed = await url_cache.get_signed_url("a.jpg", force_refresh=True)

        assert refreshed != first
        assert len(provider.sign_calls) == 2
        assert url_cache.get_entry("a.jpg").url == refreshed

    @pytest.mark.asyncio
    async def test_refresh_signed_url_on_empty_cache(self, url_cache, provider):
        url = await url_cache.refresh_signed_url("a.jpg")

        assert url == url_cache.get_entry("a.jpg").url
        assert len(provider.sign_calls) == 1


class TestProviderFailures:
    """Signing errors are wrapped and never cached."""

    @pytest.mark.asyncio
    async def test_signing_error_is_wrapped(self, url_cache, provider):
        provider.fail_sign = True

        with pytest.raises(SignedUrlGenerationError, match="Failed to generate signed URL") as exc_info:
            await url_cache.get_signed_url("a.jpg")

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert url_cache.get_cache_size() == 0

    @pytest.mark.asyncio
    async def test_failure_does_not_touch_other_keys(self, url_cache, provider):
        cached = await url_cache.get_signed_url("a.jpg")
        provider.fail_sign = True

        with pytest.raises(SignedUrlGenerationError):
            await url_cache.get_signed_url("b.jpg")

        assert url_cache.get_entry("a.jpg").url == cached
        assert await url_cache.get_signed_url("a.jpg") == cached

    @pytest.mark.asyncio
    async def test_failed_forced_refresh_keeps_previous_entry(self, url_cache, provider):
        cached = await url_cache.get_signed_url("a.jpg")
        provider.fail_sign = True

        with pytest.raises(SignedUrlGenerationError):
            await url_cache.refresh_signed_url("a.jpg")

        assert url_cache.get_entry("a.jpg").url == cached


class TestDeleteFile:
    """delete_file removes the object and its cached URL."""

    @pytest.mark.asyncio
    async def test_delete_drops_cache_entry(self, url_cache, provider):
        await url_cache.get_signed_url("a.jpg")
        await url_cache.get_signed_url("b.jpg")

        await url_cache.delete_file("a.jpg")

        assert provider.delete_calls == ["a.jpg"]
        assert url_cache.get_entry("a.jpg") is None
        assert url_cache.get_cache_size() == 1

    @pytest.mark.asyncio
    async def test_delete_uncached_key_is_noop_for_cache(self, url_cache, provider):
        await url_cache.delete_file("never-cached.jpg")

        assert provider.delete_calls == ["never-cached.jpg"]
        assert url_cache.get_cache_size() == 0

    @pytest.mark.asyncio
    async def test_delete_error_is_wrapped_and_entry_kept(self, url_cache, provider):
        await url_cache.get_signed_url("a.jpg")
        provider.fail_delete = True

        with pytest.raises(FileDeletionError, match="Failed to delete file"):
            await url_cache.delete_file("a.jpg")

        assert url_cache.get_entry("a.jpg") is not None


class TestCleanExpiredCache:
    """Periodic sweep of expired entries."""

    @pytest.mark.asyncio
    async def test_removes_all_and_only_expired_entries(self, url_cache, clock):
        await url_cache.get_signed_url("old.jpg")
        clock.advance(30 * 60 * 1000)
        await url_cache.get_signed_url("new.jpg")

        # old.jpg expires exactly now; new.jpg has 30 minutes left.
        clock.advance(TTL_MS - MARGIN_MS - 30 * 60 * 1000)
        removed = url_cache.clean_expired_cache()

        assert removed == 1
        assert url_cache.get_entry("old.jpg") is None
        assert url_cache.get_entry("new.jpg") is not None

    @pytest.mark.asyncio
    async def test_is_idempotent(self, url_cache, clock):
        await url_cache.get_signed_url("a.jpg")
        clock.advance(TTL_MS)

        assert url_cache.clean_expired_cache() == 1
        assert url_cache.clean_expired_cache() == 0
        assert url_cache.get_cache_size() == 0

    def test_empty_cache(self, url_cache):
        assert url_cache.clean_expired_cache() == 0


class TestMarginEdgeCase:
    """A TTL shorter than the margin yields entries that are born expired."""

    @pytest.mark.asyncio
    async def test_short_ttl_never_hits(self, provider, clock, caplog):
        with caplog.at_level("WARNING", logger="storage.url_cache"):
            cache = SignedUrlCache(provider, ttl_seconds=60, margin_seconds=300, clock=clock)
        assert "safety margin" in caplog.text

        await cache.get_signed_url("a.jpg")
        await cache.get_signed_url("a.jpg")

        assert len(provider.sign_calls) == 2
        assert cache.clean_expired_cache() == 1
