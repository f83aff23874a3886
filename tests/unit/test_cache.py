"""
Unit tests for cache layer.
"""

import pytest

from opsportal.core.cache import CacheManager


class FailingRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value, ex=None):
        raise ConnectionError("redis down")

    async def delete(self, *keys):
        raise ConnectionError("redis down")


@pytest.mark.unit
class TestCacheManager:
    """Test cache manager functionality."""

    def test_build_key(self):
        manager = CacheManager()

        key = manager._build_key("tenant_resolution", "acme.example.com")
        assert key == "opsportal:tenant_resolution:acme.example.com"

    def test_client_requires_init(self):
        with pytest.raises(RuntimeError):
            CacheManager().client

    async def test_backend_errors_degrade_to_miss(self):
        manager = CacheManager()
        manager._client = FailingRedis()

        assert await manager.get("tenant_resolution", "acme") is None
        assert await manager.set("tenant_resolution", "acme", {"found": False}) is False
        assert await manager.delete("tenant_resolution", "acme") is False
