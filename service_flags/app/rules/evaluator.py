"""
Rule evaluator: decides whether an actor passes a feature's rules.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from ..groups.registry import GroupRegistry, get_group_registry


class RuleEvaluator:
    """A feature is enabled for an actor when any of its groups matches.

    Groups bound in storage but missing from the registry never match.
    Exceptions raised by a predicate propagate to the caller.
    """

    def __init__(self, groups: Optional[GroupRegistry] = None):
        self.groups = groups or get_group_registry()

    def evaluate(self, rules: Optional[Mapping[str, Sequence[Any]]], actor: Any) -> bool:
        if not rules:
            return False

        predicates = self.groups.registered()

        for group, values in rules.items():
            predicate = predicates.get(group)
            if predicate is None:
                continue

            if predicate(actor, values):
                return True

        return False

    def evaluate_all(
        self,
        rules_by_feature: Mapping[str, Mapping[str, Sequence[Any]]],
        actor: Any
    ) -> Dict[str, bool]:
        """Evaluate every feature for one actor."""
        return {
            feature: self.evaluate(rules, actor)
            for feature, rules in rules_by_feature.items()
        }
