"""
In-memory rule adapter.

The table is replaced wholesale on every write (copy-on-write), so reads
take a consistent snapshot without locking while writers serialize on a
single lock. Suited to tests and single-process deployments; nothing
survives a restart.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .base import RuleAdapter, Rules
from ..rules.evaluator import RuleEvaluator
from ..rules.models import ALL, ANY, Selector
from ..rules.values import diff_values, merge_values

# group -> sorted, de-duplicated values
_FeatureRules = Dict[str, Tuple[Any, ...]]


class MemoryAdapter(RuleAdapter):
    name = "memory"

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        super().__init__(evaluator)
        self._table: Dict[str, _FeatureRules] = {}
        self._lock = threading.Lock()

    def _publish(self, feature: str, rules: Optional[_FeatureRules]):
        """Swap in a new table with ``feature`` replaced or dropped. Caller holds the lock."""
        table = dict(self._table)
        if rules is None:
            table.pop(feature, None)
        else:
            table[feature] = rules
        self._table = table

    async def add(self, feature: str):
        with self._lock:
            if feature not in self._table:
                self._publish(feature, {})

    async def remove(self, feature: str):
        with self._lock:
            if feature in self._table:
                self._publish(feature, None)

    async def enable(self, feature: str, group: str, values: Sequence[Any]):
        with self._lock:
            rules = dict(self._table.get(feature, {}))
            rules[group] = tuple(merge_values(rules.get(group, ()), values))
            self._publish(feature, rules)

    async def disable(self, feature: str, group: str, values: Sequence[Any]):
        with self._lock:
            current = self._table.get(feature)
            if current is None or group not in current:
                return

            rules = dict(current)
            if values:
                rules[group] = tuple(diff_values(rules[group], values))
            else:
                del rules[group]
            self._publish(feature, rules)

    async def rename(self, old: str, new: str):
        with self._lock:
            if old == new or old not in self._table:
                return

            table = dict(self._table)
            table[new] = table.pop(old)
            self._table = table

    async def exists(self, feature: str, group: Union[str, Selector] = ANY) -> bool:
        rules = self._table.get(feature)
        if rules is None:
            return False

        return group is ANY or group in rules

    async def features(self, group: Union[str, Selector] = ALL) -> List[str]:
        table = self._table

        if group is ALL:
            return sorted(table)

        return sorted(name for name, rules in table.items() if group in rules)

    async def get_rules(self, feature: str) -> Optional[Rules]:
        rules = self._table.get(feature)
        if rules is None:
            return None

        return {group: list(values) for group, values in rules.items()}

    async def all_rules(self) -> Dict[str, Rules]:
        table = self._table
        return {
            feature: {group: list(values) for group, values in rules.items()}
            for feature, rules in table.items()
        }

    async def clear(self):
        with self._lock:
            self._table = {}
