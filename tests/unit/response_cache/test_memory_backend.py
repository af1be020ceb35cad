"""Tests for the in-process cache backend."""

import pytest


class TestMemoryBackend:
    """Tests for storage, expiry and isolation."""

    @pytest.mark.asyncio
    async def test_disabled_until_connected(self, memory_backend):
        assert memory_backend.enabled is False
        assert await memory_backend.set("k", {"a": 1}) is False
        assert await memory_backend.get("k") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, connected_memory_backend):
        assert await connected_memory_backend.set("k", {"a": 1}, ttl=60) is True
        assert await connected_memory_backend.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_entry_records_store_and_expiry_times(self, connected_memory_backend, clock):
        await connected_memory_backend.set("k", "v", ttl=60)
        entry = connected_memory_backend.get_raw_entry("k")
        assert entry.key == "k"
        assert entry.stored_at == clock.now
        assert entry.expires_at == clock.now + 60

    @pytest.mark.asyncio
    async def test_expired_entry_is_discarded_on_read(self, connected_memory_backend, clock):
        """Test lazy expiry removes the entry."""
        await connected_memory_backend.set("k", "v", ttl=60)
        clock.advance(59)
        assert await connected_memory_backend.get("k") == "v"

        clock.advance(1)
        assert await connected_memory_backend.get("k") is None
        assert "k" not in connected_memory_backend.get_all_keys()
        assert connected_memory_backend.evictions == 1

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self, connected_memory_backend, clock):
        await connected_memory_backend.set("k", "v")
        clock.advance(10 ** 9)
        assert await connected_memory_backend.get("k") == "v"

    @pytest.mark.asyncio
    async def test_values_are_copied(self, connected_memory_backend):
        """Test callers cannot mutate stored values."""
        value = {"sources": [1, 2]}
        await connected_memory_backend.set("k", value)
        value["sources"].append(3)

        fetched = await connected_memory_backend.get("k")
        assert fetched == {"sources": [1, 2]}
        fetched["sources"].clear()
        assert await connected_memory_backend.get("k") == {"sources": [1, 2]}

    @pytest.mark.asyncio
    async def test_delete(self, connected_memory_backend):
        await connected_memory_backend.set("k", "v")
        assert await connected_memory_backend.delete("k") is True
        assert await connected_memory_backend.delete("k") is False

    @pytest.mark.asyncio
    async def test_clear_and_count_prefix(self, connected_memory_backend, clock):
        await connected_memory_backend.set("a:1", 1)
        await connected_memory_backend.set("a:2", 2, ttl=10)
        await connected_memory_backend.set("b:1", 3)

        clock.advance(11)
        assert await connected_memory_backend.count_prefix("a:") == 1

        assert await connected_memory_backend.clear_prefix("a:") == 1
        assert connected_memory_backend.get_all_keys() == ["b:1"]
