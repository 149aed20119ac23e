"""
Rules package.

A rule is a (group, value set) pair stored under a feature. This package
holds the set algebra every adapter uses to merge and subtract value sets,
the request/response models for the HTTP surface, and the evaluator that
turns a feature's rules into an allow/deny decision for an actor.

Modules of interest:
- values: Union and difference over value sets with deterministic order.
- names: Feature, group and value-list validation.
- evaluator: "Enabled if any bound group matches" policy.
- models: Selectors (ALL/ANY) and pydantic API models.
"""
