"""
Rule storage adapters.

- memory: process-local, copy-on-write table.
- redis: set of names plus one hash per feature.
- postgres: one JSONB row per feature.
"""

from typing import Optional

from shared.config import FlagsConfig
from shared.errors import ValidationError
from .base import RuleAdapter
from .memory import MemoryAdapter
from .postgres import PostgresAdapter
from .redis_adapter import RedisAdapter
from ..rules.evaluator import RuleEvaluator
from ..serializers import get_serializer

ADAPTERS = ("memory", "redis", "postgres")


def build_adapter(config: FlagsConfig, evaluator: Optional[RuleEvaluator] = None) -> RuleAdapter:
    """Build the adapter selected by ``config.adapter``."""
    name = config.adapter.lower()

    if name == "memory":
        return MemoryAdapter(evaluator=evaluator)

    if name == "redis":
        return RedisAdapter(
            redis_url=config.redis_url,
            key_prefix=config.redis_key_prefix,
            set_key=config.redis_set_key,
            serializer=get_serializer(config.serializer),
            evaluator=evaluator
        )

    if name == "postgres":
        return PostgresAdapter(
            dsn=config.postgres_dsn,
            table=config.postgres_table,
            min_pool_size=config.postgres_min_pool_size,
            max_pool_size=config.postgres_max_pool_size,
            command_timeout=config.postgres_command_timeout,
            evaluator=evaluator
        )

    raise ValidationError(f"Unknown adapter: {config.adapter}", {"available": list(ADAPTERS)})


__all__ = ["RuleAdapter", "MemoryAdapter", "RedisAdapter", "PostgresAdapter", "ADAPTERS", "build_adapter"]
