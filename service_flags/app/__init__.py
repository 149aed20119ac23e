"""
Feature Flags service package.

Applications register named groups (predicates that classify an actor),
bind features to groups through rules, and ask whether a feature is enabled
for a given actor. It provides:

- app.store: RuleStore facade (validation, normalization, metrics, backup).
- app.adapters: Rule storage backends (memory, Redis, PostgreSQL).
- app.rules: Value set algebra and the rule evaluator.
- app.groups: Process-wide group registry.
- app.serializers: Value encoding for backends that need bytes.
- app.main: HTTP admin surface and health.

Guidelines:
- Adapters own their consistency: each serializes or transactionally
  isolates its own mutations.
- Groups are process-local configuration; only group names are stored.
- Keep evaluation deterministic and observable (metrics + logs).
"""
