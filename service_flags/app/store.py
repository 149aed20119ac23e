"""
RuleStore: the public entry point to feature rules.

Validates and normalizes names, delegates to the configured adapter, and
records metrics and logs around every operation.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Union

from shared.config import FlagsConfig
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from . import backup
from .adapters import RuleAdapter, build_adapter
from .groups.registry import GroupRegistry, Predicate, get_group_registry
from .rules.evaluator import RuleEvaluator
from .rules.models import ALL, ANY, Selector
from .rules.names import normalize_feature, validate_group, validate_values


class RuleStore:
    """Feature rule store bound to one adapter and one group registry."""

    def __init__(self, adapter: RuleAdapter, metrics: Optional[MetricsCollector] = None):
        self.adapter = adapter
        self.groups: GroupRegistry = adapter.evaluator.groups
        self.metrics = metrics
        self.logger = get_logger("flags.store")

    @contextmanager
    def _observe(self, operation: str):
        if self.metrics is None:
            yield
            return

        labels = {"adapter": self.adapter.name, "operation": operation}
        self.metrics.increment_counter("flag_store_operations_total", **labels)

        with self.metrics.time_operation("flag_store_operation_duration_seconds", **labels):
            yield

    # Lifecycle

    async def start(self):
        await self.adapter.start()

    async def stop(self):
        await self.adapter.stop()

    async def setup(self):
        with self._observe("setup"):
            await self.adapter.setup()

    async def health_check(self) -> bool:
        return await self.adapter.health_check()

    # Groups

    def register(self, group: str, predicate: Predicate):
        self.groups.register(group, predicate)

    def registered(self) -> Dict[str, Predicate]:
        return self.groups.registered()

    def clear_groups(self):
        self.groups.clear()

    # Rules

    async def add(self, feature: str):
        feature = normalize_feature(feature)

        with self._observe("add"):
            await self.adapter.add(feature)

        self.logger.info("Feature added", feature=feature)

    async def remove(self, feature: str):
        feature = normalize_feature(feature)

        with self._observe("remove"):
            await self.adapter.remove(feature)

        self.logger.info("Feature removed", feature=feature)

    async def enable(self, feature: str, group: str, values: Any = None):
        feature = normalize_feature(feature)
        group = validate_group(group)
        values = validate_values(values)

        with self._observe("enable"):
            await self.adapter.enable(feature, group, values)

        self.logger.info("Feature enabled", feature=feature, group=group, values=len(values))

    async def disable(self, feature: str, group: str, values: Any = None):
        feature = normalize_feature(feature)
        group = validate_group(group)
        values = validate_values(values)

        with self._observe("disable"):
            await self.adapter.disable(feature, group, values)

        self.logger.info("Feature disabled", feature=feature, group=group, values=len(values))

    async def rename(self, old: str, new: str):
        old = normalize_feature(old)
        new = normalize_feature(new)

        if old == new:
            return

        with self._observe("rename"):
            await self.adapter.rename(old, new)

        self.logger.info("Feature renamed", old=old, new=new)

    async def exists(self, feature: str, group: Union[str, Selector] = ANY) -> bool:
        feature = normalize_feature(feature)
        if group is not ANY:
            group = validate_group(group)

        with self._observe("exists"):
            return await self.adapter.exists(feature, group)

    async def features(self, group: Union[str, Selector] = ALL) -> List[str]:
        if group is not ALL:
            group = validate_group(group)

        with self._observe("features"):
            return await self.adapter.features(group)

    async def enabled(self, feature: str, actor: Any) -> bool:
        feature = normalize_feature(feature)

        with self._observe("enabled"):
            decision = await self.adapter.enabled(feature, actor)

        if self.metrics is not None:
            self.metrics.increment_counter(
                "flag_checks_total",
                decision="enabled" if decision else "disabled"
            )

        self.logger.debug("Feature checked", feature=feature, enabled=decision)
        return decision

    async def breakdown(self, actor: Any = ALL) -> Dict[str, Any]:
        with self._observe("breakdown"):
            return await self.adapter.breakdown(actor)

    async def clear(self):
        with self._observe("clear"):
            await self.adapter.clear()

        self.logger.info("Features cleared", adapter=self.adapter.name)

    async def reset(self):
        """Clear features and registered groups."""
        await self.clear()
        self.clear_groups()

    # Backup

    async def dump(self, path: str) -> int:
        """Write the full breakdown to ``path``; returns the number of features."""
        return await backup.dump(self, path)

    async def load(self, path: str) -> int:
        """Re-apply rules from a backup file; returns the number of features."""
        return await backup.load(self, path)


def build_store(
    config: FlagsConfig,
    groups: Optional[GroupRegistry] = None,
    metrics: Optional[MetricsCollector] = None
) -> RuleStore:
    """Wire registry, evaluator, adapter and store from configuration."""
    groups = groups or get_group_registry()
    if config.register_default_groups:
        groups.register_defaults()

    adapter = build_adapter(config, RuleEvaluator(groups))
    return RuleStore(adapter, metrics)
