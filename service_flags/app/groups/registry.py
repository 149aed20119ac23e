"""
Process-wide registry of group predicates.
"""

import inspect
import threading
from typing import Any, Callable, Dict, Optional, Sequence

from shared.errors import ValidationError
from shared.logging import get_logger

Predicate = Callable[[Any, Sequence[Any]], bool]

EVERYBODY = "everybody"
NOBODY = "nobody"


def _everybody(actor: Any, values: Sequence[Any]) -> bool:
    return True


def _nobody(actor: Any, values: Sequence[Any]) -> bool:
    return False


class GroupRegistry:
    """Named group predicates.

    Writes replace the whole mapping under a lock so that readers can take
    a snapshot without locking.
    """

    def __init__(self):
        self.logger = get_logger("flags.groups")
        self._groups: Dict[str, Predicate] = {}
        self._lock = threading.Lock()

    def register(self, group: str, predicate: Predicate):
        """Register or replace the predicate for a group."""
        if not isinstance(group, str) or not group:
            raise ValidationError("Group name must be a non-empty string", {"group": repr(group)})

        if not callable(predicate):
            raise ValidationError("Group predicate must be callable", {"group": group})

        try:
            inspect.signature(predicate).bind(None, None)
        except TypeError as e:
            raise ValidationError(
                "Group predicate must accept (actor, values)",
                {"group": group, "reason": str(e)}
            ) from e
        except ValueError:
            # No introspectable signature (some builtins); accept as-is
            pass

        with self._lock:
            groups = dict(self._groups)
            replaced = group in groups
            groups[group] = predicate
            self._groups = groups

        self.logger.info("Group registered", group=group, replaced=replaced)

    def registered(self) -> Dict[str, Predicate]:
        """Snapshot of registered groups."""
        return dict(self._groups)

    def get(self, group: str) -> Optional[Predicate]:
        return self._groups.get(group)

    def clear(self):
        """Remove every registered group."""
        with self._lock:
            self._groups = {}

        self.logger.info("Groups cleared")

    def register_defaults(self):
        """Register the built-in ``everybody`` and ``nobody`` groups."""
        self.register(EVERYBODY, _everybody)
        self.register(NOBODY, _nobody)


_registry: Optional[GroupRegistry] = None
_registry_lock = threading.Lock()


def get_group_registry() -> GroupRegistry:
    """Get the process-wide group registry."""
    global _registry

    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = GroupRegistry()

    return _registry
