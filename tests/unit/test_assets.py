"""Unit tests for the two-tier poster cache."""

import httpx
import pytest

from reelshelf.core.assets import AssetCache, AssetDiskStore

URL = "https://img.example.com/poster.jpg"


@pytest.fixture
def disk(tmp_path):
    return AssetDiskStore(tmp_path / "assets.db")


def make_cache(disk, client_factory, handler=None, **kwargs):
    handler = handler or (lambda request: httpx.Response(200, content=b"poster"))
    return AssetCache(disk, client=client_factory(handler), **kwargs)


class TestAssetDiskStore:
    """Test the durable tier."""

    def test_put_get_clear(self, disk):
        assert disk.get(URL) is None

        disk.put(URL, b"abc")
        disk.put(URL, b"abcd")

        assert disk.get(URL) == b"abcd"
        assert disk.stats() == {"entries": 1, "bytes": 4}
        assert disk.clear() == 1
        assert disk.get(URL) is None


class TestAssetCache:
    """Test AssetCache."""

    def test_put_then_get(self, disk, client_factory):
        cache = make_cache(disk, client_factory)

        cache.put(URL, b"data")

        assert cache.get(URL) == b"data"
        assert disk.get(URL) == b"data"

    def test_miss(self, disk, client_factory):
        assert make_cache(disk, client_factory).get(URL) is None

    def test_disk_hit_promoted_to_memory(self, disk, client_factory):
        disk.put(URL, b"data")
        cache = make_cache(disk, client_factory)

        assert cache.stats()["memory"]["entries"] == 0
        assert cache.get(URL) == b"data"
        assert cache.stats()["memory"] == {"entries": 1, "bytes": 4}

    def test_lru_eviction_by_count(self, disk, client_factory):
        cache = make_cache(disk, client_factory, max_entries=2)

        cache.put("a", b"1")
        cache.put("b", b"2")
        cache.get("a")  # "b" is now least recently used
        cache.put("c", b"3")

        assert list(cache._memory) == ["a", "c"]
        # Evicted entries are still on disk
        assert cache.get("b") == b"2"

    def test_lru_eviction_by_bytes(self, disk, client_factory):
        cache = make_cache(disk, client_factory, max_bytes=10)

        cache.put("a", b"x" * 6)
        cache.put("b", b"y" * 6)

        assert list(cache._memory) == ["b"]
        assert cache.stats()["memory"]["bytes"] == 6

    def test_oversized_blob_only_on_disk(self, disk, client_factory):
        cache = make_cache(disk, client_factory, max_bytes=4)

        cache.put("big", b"x" * 5)

        assert cache.stats()["memory"]["entries"] == 0
        assert cache.get("big") == b"x" * 5

    def test_clear_empties_both_tiers(self, disk, client_factory):
        cache = make_cache(disk, client_factory)
        cache.put("a", b"1")
        cache.put("b", b"2")

        assert cache.clear() == 2
        assert cache.get("a") is None
        assert cache.stats() == {
            "memory": {"entries": 0, "bytes": 0},
            "disk": {"entries": 0, "bytes": 0},
        }

    @pytest.mark.asyncio
    async def test_fetch_and_cache_downloads_once(self, disk, client_factory):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, content=b"poster")

        cache = make_cache(disk, client_factory, handler)

        assert await cache.fetch_and_cache(URL) == b"poster"
        assert await cache.fetch_and_cache(URL) == b"poster"
        assert len(calls) == 1
        assert disk.get(URL) == b"poster"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [None, "", "  ", "N/A"])
    async def test_fetch_without_url(self, disk, client_factory, key):
        cache = make_cache(disk, client_factory)

        assert await cache.fetch_and_cache(key) is None

    @pytest.mark.asyncio
    async def test_fetch_http_error_returns_none(self, disk, client_factory):
        cache = make_cache(disk, client_factory, lambda request: httpx.Response(404))

        assert await cache.fetch_and_cache(URL) is None
        assert disk.get(URL) is None

    @pytest.mark.asyncio
    async def test_fetch_transport_error_returns_none(self, disk, client_factory):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        cache = make_cache(disk, client_factory, handler)

        assert await cache.fetch_and_cache(URL) is None

    @pytest.mark.asyncio
    async def test_clear_during_download_not_cached(self, disk, client_factory):
        holder = {}

        def handler(request):
            # Simulates clear() landing while the download is in flight
            holder["cache"].clear()
            return httpx.Response(200, content=b"poster")

        cache = make_cache(disk, client_factory, handler)
        holder["cache"] = cache

        assert await cache.fetch_and_cache(URL) == b"poster"
        assert cache.get(URL) is None

    @pytest.mark.asyncio
    async def test_close(self, disk, client_factory):
        cache = make_cache(disk, client_factory)

        await cache.close()

        assert cache.client.is_closed
