"""
Rule adapter interface shared by every storage backend.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from shared.errors import BackendError
from shared.logging import get_logger
from ..rules.evaluator import RuleEvaluator
from ..rules.models import ALL, ANY, Selector

Rules = Dict[str, List[Any]]


class RuleAdapter(ABC):
    """Storage backend for feature rules.

    Adapters receive names that the store has already validated and
    normalized. Each adapter is responsible for making its own mutations
    atomic with respect to concurrent callers.
    """

    name = "base"

    # Driver exceptions translated into BackendError
    driver_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        self.evaluator = evaluator or RuleEvaluator()
        self.logger = get_logger(f"flags.adapters.{self.name}")

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Release connections."""

    async def setup(self):
        """Create backing storage. Idempotent."""

    async def health_check(self) -> bool:
        return True

    @contextmanager
    def _backend_errors(self, operation: str):
        try:
            yield
        except self.driver_errors as e:
            self.logger.error(
                "Backend operation failed",
                adapter=self.name,
                operation=operation,
                error=str(e)
            )
            raise BackendError(self.name, str(e), {"operation": operation}) from e

    @abstractmethod
    async def add(self, feature: str):
        """Register a feature without rules."""

    @abstractmethod
    async def remove(self, feature: str):
        """Delete a feature and all of its rules."""

    @abstractmethod
    async def enable(self, feature: str, group: str, values: Sequence[Any]):
        """Bind a group to a feature, merging values into any existing set."""

    @abstractmethod
    async def disable(self, feature: str, group: str, values: Sequence[Any]):
        """Unbind a group, or subtract values when any are given."""

    @abstractmethod
    async def rename(self, old: str, new: str):
        """Move a feature's rules to a new name, replacing any existing target."""

    @abstractmethod
    async def exists(self, feature: str, group: Union[str, Selector] = ANY) -> bool:
        ...

    @abstractmethod
    async def features(self, group: Union[str, Selector] = ALL) -> List[str]:
        """Sorted feature names, optionally only those bound to ``group``."""

    @abstractmethod
    async def get_rules(self, feature: str) -> Optional[Rules]:
        """Rules of one feature, or None when the feature is unknown."""

    @abstractmethod
    async def all_rules(self) -> Dict[str, Rules]:
        """Rules of every known feature."""

    @abstractmethod
    async def clear(self):
        """Delete every feature."""

    async def enabled(self, feature: str, actor: Any) -> bool:
        rules = await self.get_rules(feature)
        return self.evaluator.evaluate(rules, actor)

    async def breakdown(self, actor: Any = ALL) -> Union[Dict[str, Rules], Dict[str, bool]]:
        """Full rule dump, or per-feature decisions for one actor."""
        rules = await self.all_rules()

        if actor is ALL:
            return rules

        return self.evaluator.evaluate_all(rules, actor)
