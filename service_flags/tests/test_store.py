"""
Unit tests for the RuleStore facade.
"""

import pytest
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from prometheus_client import CollectorRegistry

from service_flags.app.adapters import MemoryAdapter, PostgresAdapter, RedisAdapter, build_adapter
from service_flags.app.groups.registry import GroupRegistry
from service_flags.app.rules.evaluator import RuleEvaluator
from service_flags.app.rules.models import ALL, ANY
from service_flags.app.store import RuleStore, build_store, normalize_feature
from shared.config import FlagsConfig
from shared.errors import BackendError, ValidationError
from shared.metrics import MetricsCollector


class TestRuleStore:
    """Test cases for RuleStore."""

    @pytest.fixture
    def registry(self):
        """Create an isolated group registry."""
        return GroupRegistry()

    @pytest.fixture
    def metrics(self):
        """Create a metrics collector on a private registry."""
        return MetricsCollector("flags", CollectorRegistry())

    @pytest.fixture
    def store(self, registry, metrics):
        """Create RuleStore over the memory adapter."""
        return RuleStore(MemoryAdapter(RuleEvaluator(registry)), metrics)

    def test_normalize_feature(self):
        """Test feature names are trimmed and lowercased."""
        assert normalize_feature("  Search ") == "search"

        with pytest.raises(ValidationError):
            normalize_feature("   ")

        with pytest.raises(ValidationError):
            normalize_feature(None)

    @pytest.mark.asyncio
    async def test_staff_scenario(self, store):
        """Test the end-to-end staff toggle."""
        store.register("staff", lambda actor, values: actor.get("staff", False))

        await store.enable("search", "staff")

        assert await store.enabled("search", {"staff": True}) is True
        assert await store.enabled("search", {"staff": False}) is False
        assert await store.breakdown() == {"search": {"staff": []}}

        await store.disable("search", "staff")

        assert await store.enabled("search", {"staff": True}) is False

    @pytest.mark.asyncio
    async def test_names_are_normalized(self, store):
        """Test mixed-case names address the same feature."""
        await store.enable(" Search ", "ids", [1])

        assert await store.features() == ["search"]
        assert await store.exists("SEARCH") is True
        assert await store.exists("search", "ids") is True

    @pytest.mark.asyncio
    async def test_group_names_are_not_normalized(self, store):
        """Test group names are stored as given."""
        await store.enable("search", "Staff")

        assert await store.exists("search", "Staff") is True
        assert await store.exists("search", "staff") is False

    @pytest.mark.asyncio
    async def test_enable_and_disable_values(self, store):
        """Test merge then difference through the facade."""
        await store.enable("search", "ids", [1, 2, 3, 4, 5])
        await store.enable("search", "ids", (5, 6))
        await store.disable("search", "ids", {1, 3, 5})

        assert await store.breakdown() == {"search": {"ids": [2, 4, 6]}}

    @pytest.mark.asyncio
    async def test_rename_to_same_name(self, store):
        """Test renaming a feature onto itself keeps its rules."""
        await store.enable("search", "ids", [1])

        await store.rename("search", " SEARCH ")

        assert await store.breakdown() == {"search": {"ids": [1]}}

    @pytest.mark.asyncio
    async def test_rename_clobbers(self, store):
        """Test rename through the facade."""
        await store.enable("a", "m", [1])
        await store.enable("b", "n", [2])

        await store.rename("A", "b")

        assert await store.breakdown() == {"b": {"m": [1]}}

    @pytest.mark.asyncio
    async def test_unknown_feature_and_group(self, store):
        """Test queries for unknown names are not errors."""
        assert await store.enabled("ghost", {"id": 1}) is False
        assert await store.exists("ghost") is False
        assert await store.exists("ghost", "ids") is False
        assert await store.features("ids") == []

        await store.remove("ghost")
        await store.disable("ghost", "ids")

    @pytest.mark.asyncio
    async def test_selectors(self, store):
        """Test ALL and ANY selectors pass through."""
        await store.enable("search", "ids", [1])

        assert await store.features(ALL) == ["search"]
        assert await store.exists("search", ANY) is True
        assert await store.breakdown(ALL) == {"search": {"ids": [1]}}

    @pytest.mark.asyncio
    async def test_invalid_inputs_rejected_before_storage(self, registry):
        """Test malformed inputs never reach the adapter."""
        adapter = AsyncMock()
        adapter.evaluator = RuleEvaluator(registry)
        store = RuleStore(adapter)

        with pytest.raises(ValidationError):
            await store.enable("", "ids", [1])

        with pytest.raises(ValidationError):
            await store.enable("search", "", [1])

        with pytest.raises(ValidationError):
            await store.enable("search", "ids", "abc")

        with pytest.raises(ValidationError):
            await store.enable("search", "ids", 5)

        with pytest.raises(ValidationError):
            await store.disable("search", None, [1])

        with pytest.raises(ValidationError):
            await store.rename("search", "  ")

        with pytest.raises(ValidationError):
            await store.features(42)

        adapter.enable.assert_not_called()
        adapter.disable.assert_not_called()
        adapter.rename.assert_not_called()
        adapter.features.assert_not_called()

    @pytest.mark.asyncio
    async def test_backend_errors_propagate(self, registry, metrics):
        """Test adapter failures reach the caller; errors_total is left to the service."""
        adapter = AsyncMock()
        adapter.name = "redis"
        adapter.evaluator = RuleEvaluator(registry)
        adapter.enable.side_effect = BackendError("redis", "connection refused")
        store = RuleStore(adapter, metrics)

        with pytest.raises(BackendError):
            await store.enable("search", "ids", [1])

        assert metrics.registry.get_sample_value(
            "errors_total", {"error_type": "BACKEND_ERROR", "service": "flags"}
        ) is None
        assert metrics.registry.get_sample_value(
            "flag_store_operations_total", {"adapter": "redis", "operation": "enable"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, store, metrics):
        """Test operation and decision counters."""
        store.register("ids", lambda actor, values: actor in values)
        await store.enable("search", "ids", [1])
        await store.enabled("search", 1)
        await store.enabled("search", 2)

        registry = metrics.registry
        assert registry.get_sample_value(
            "flag_store_operations_total", {"adapter": "memory", "operation": "enable"}
        ) == 1.0
        assert registry.get_sample_value(
            "flag_store_operation_duration_seconds_count", {"adapter": "memory", "operation": "enable"}
        ) == 1.0
        assert registry.get_sample_value("flag_checks_total", {"decision": "enabled"}) == 1.0
        assert registry.get_sample_value("flag_checks_total", {"decision": "disabled"}) == 1.0

    @pytest.mark.asyncio
    async def test_reset_clears_features_and_groups(self, store):
        """Test reset empties both rules and the registry."""
        store.register("staff", lambda actor, values: True)
        await store.enable("search", "staff")

        await store.reset()

        assert await store.features() == []
        assert store.registered() == {}

    def test_clear_groups(self, store):
        """Test clearing groups only."""
        store.register("staff", lambda actor, values: True)
        store.clear_groups()

        assert store.registered() == {}


class TestBuildStore:
    """Test cases for configuration-driven wiring."""

    def test_memory_by_default(self):
        """Test default adapter selection."""
        store = build_store(FlagsConfig(adapter="memory"), groups=GroupRegistry())

        assert isinstance(store.adapter, MemoryAdapter)

    def test_default_groups(self):
        """Test everybody/nobody seeding."""
        registry = GroupRegistry()
        build_store(FlagsConfig(register_default_groups=True), groups=registry)

        assert set(registry.registered()) == {"everybody", "nobody"}

    def test_redis_adapter_from_config(self):
        """Test Redis options flow into the adapter."""
        config = FlagsConfig(
            adapter="redis",
            serializer="json",
            redis_url="redis://cache:6379/2",
            redis_key_prefix="x:",
            redis_set_key="x"
        )

        adapter = build_adapter(config, RuleEvaluator(GroupRegistry()))

        assert isinstance(adapter, RedisAdapter)
        assert adapter.redis_url == "redis://cache:6379/2"
        assert adapter.key_prefix == "x:"
        assert adapter.set_key == "x"
        assert adapter.serializer.name == "json"

    def test_postgres_adapter_from_config(self):
        """Test Postgres options flow into the adapter."""
        config = FlagsConfig(adapter="postgres", postgres_dsn="postgres://db/flags", postgres_table="toggles")

        adapter = build_adapter(config, RuleEvaluator(GroupRegistry()))

        assert isinstance(adapter, PostgresAdapter)
        assert adapter.dsn == "postgres://db/flags"
        assert adapter.table == "toggles"

    def test_config_from_environment(self, monkeypatch):
        """Test FLAGS_-prefixed environment variables configure the store."""
        monkeypatch.setenv("FLAGS_ADAPTER", "redis")
        monkeypatch.setenv("FLAGS_REDIS_SET_KEY", "toggles")

        config = FlagsConfig()

        assert config.adapter == "redis"
        assert config.redis_set_key == "toggles"

    def test_unknown_adapter(self):
        """Test unknown adapter names are rejected."""
        with pytest.raises(ValidationError):
            build_adapter(FlagsConfig(adapter="mongo"))


if __name__ == "__main__":
    pytest.main([__file__])
