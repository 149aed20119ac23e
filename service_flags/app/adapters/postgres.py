"""
PostgreSQL rule adapter.

One row per feature; ``rules`` is a JSONB object of group -> value array.
Values are stored as native JSON, so they must be JSON types.
"""

import asyncio
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Union

import asyncpg

from shared.errors import BackendError, ValidationError
from .base import RuleAdapter, Rules
from ..rules.evaluator import RuleEvaluator
from ..rules.models import ALL, ANY, Selector
from ..rules.values import diff_values, merge_values, sorted_values

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class PostgresAdapter(RuleAdapter):
    name = "postgres"
    driver_errors = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

    def __init__(
        self,
        dsn: str,
        table: str = "feature_flags",
        min_pool_size: int = 2,
        max_pool_size: int = 10,
        command_timeout: float = 30,
        evaluator: Optional[RuleEvaluator] = None,
        pool: Optional[asyncpg.Pool] = None
    ):
        super().__init__(evaluator)

        if not _IDENTIFIER.match(table):
            raise ValidationError("Invalid table name", {"table": table})

        self.dsn = dsn
        self.table = table
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout = command_timeout
        self.pool: Optional[asyncpg.Pool] = pool

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection):
        await conn.set_type_codec(
            "jsonb",
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog"
        )

    async def start(self):
        """Open the connection pool."""
        if self.pool is None:
            with self._backend_errors("start"):
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=self.min_pool_size,
                    max_size=self.max_pool_size,
                    command_timeout=self.command_timeout,
                    init=self._init_connection
                )

        self.logger.info("PostgreSQL adapter started", table=self.table)

    async def stop(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL adapter stopped")

    async def health_check(self) -> bool:
        if not self.pool:
            return False

        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except self.driver_errors:
            return False

    def _pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise BackendError(self.name, "Adapter not started")
        return self.pool

    async def setup(self):
        """Create the rules table and its index."""
        with self._backend_errors("setup"):
            async with self._pool().acquire() as conn:
                await conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        name VARCHAR(140) NOT NULL CHECK (name <> ''),
                        rules JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                        CONSTRAINT {self.table}_unique_name UNIQUE (name)
                    );
                """)
                await conn.execute(f"""
                    CREATE INDEX IF NOT EXISTS {self.table}_rules_idx
                    ON {self.table} USING GIN (rules);
                """)

        self.logger.info("PostgreSQL rules table ready", table=self.table)

    async def add(self, feature: str):
        with self._backend_errors("add"):
            async with self._pool().acquire() as conn:
                await conn.execute(
                    f"INSERT INTO {self.table} (name) VALUES ($1) ON CONFLICT (name) DO NOTHING",
                    feature
                )

    async def remove(self, feature: str):
        with self._backend_errors("remove"):
            async with self._pool().acquire() as conn:
                await conn.execute(f"DELETE FROM {self.table} WHERE name = $1", feature)

    async def enable(self, feature: str, group: str, values: Sequence[Any]):
        # Merge happens inside the upsert; the row lock makes it atomic
        with self._backend_errors("enable"):
            async with self._pool().acquire() as conn:
                await conn.execute(f"""
                    INSERT INTO {self.table} AS t (name, rules)
                    VALUES ($1, jsonb_build_object($2::text, $3::jsonb))
                    ON CONFLICT (name) DO UPDATE
                    SET rules = jsonb_set(
                        t.rules,
                        ARRAY[$2::text],
                        (
                            SELECT COALESCE(jsonb_agg(DISTINCT value ORDER BY value), '[]'::jsonb)
                            FROM jsonb_array_elements(
                                COALESCE(t.rules -> $2::text, '[]'::jsonb) || $3::jsonb
                            )
                        )
                    )
                """, feature, group, merge_values([], values))

    async def disable(self, feature: str, group: str, values: Sequence[Any]):
        with self._backend_errors("disable"):
            async with self._pool().acquire() as conn:
                if not values:
                    await conn.execute(
                        f"UPDATE {self.table} SET rules = rules - $2::text WHERE name = $1",
                        feature, group
                    )
                    return

                async with conn.transaction():
                    current = await conn.fetchval(f"""
                        SELECT rules -> $2::text FROM {self.table}
                        WHERE name = $1 AND rules ? $2::text
                        FOR UPDATE
                    """, feature, group)

                    if current is None:
                        return

                    await conn.execute(f"""
                        UPDATE {self.table}
                        SET rules = jsonb_set(rules, ARRAY[$2::text], $3::jsonb)
                        WHERE name = $1
                    """, feature, group, diff_values(current, values))

    async def rename(self, old: str, new: str):
        if old == new:
            return

        with self._backend_errors("rename"):
            async with self._pool().acquire() as conn:
                async with conn.transaction():
                    found = await conn.fetchval(
                        f"SELECT 1 FROM {self.table} WHERE name = $1 FOR UPDATE",
                        old
                    )
                    if found is None:
                        return

                    await conn.execute(f"DELETE FROM {self.table} WHERE name = $1", new)
                    await conn.execute(
                        f"UPDATE {self.table} SET name = $1 WHERE name = $2",
                        new, old
                    )

    async def exists(self, feature: str, group: Union[str, Selector] = ANY) -> bool:
        with self._backend_errors("exists"):
            async with self._pool().acquire() as conn:
                if group is ANY:
                    return await conn.fetchval(
                        f"SELECT EXISTS (SELECT 1 FROM {self.table} WHERE name = $1)",
                        feature
                    )

                return await conn.fetchval(
                    f"SELECT EXISTS (SELECT 1 FROM {self.table} WHERE name = $1 AND rules ? $2::text)",
                    feature, group
                )

    async def features(self, group: Union[str, Selector] = ALL) -> List[str]:
        with self._backend_errors("features"):
            async with self._pool().acquire() as conn:
                if group is ALL:
                    rows = await conn.fetch(
                        f'SELECT name FROM {self.table} ORDER BY name COLLATE "C"'
                    )
                else:
                    rows = await conn.fetch(
                        f'SELECT name FROM {self.table} WHERE rules ? $1::text ORDER BY name COLLATE "C"',
                        group
                    )

        return [row["name"] for row in rows]

    async def get_rules(self, feature: str) -> Optional[Rules]:
        with self._backend_errors("get_rules"):
            async with self._pool().acquire() as conn:
                rules = await conn.fetchval(
                    f"SELECT rules FROM {self.table} WHERE name = $1",
                    feature
                )

        if rules is None:
            return None

        return {group: sorted_values(values) for group, values in rules.items()}

    async def all_rules(self) -> Dict[str, Rules]:
        with self._backend_errors("all_rules"):
            async with self._pool().acquire() as conn:
                table = await conn.fetchval(
                    f"SELECT jsonb_object_agg(name, rules) FROM {self.table}"
                )

        return {
            feature: {group: sorted_values(values) for group, values in rules.items()}
            for feature, rules in (table or {}).items()
        }

    async def clear(self):
        with self._backend_errors("clear"):
            async with self._pool().acquire() as conn:
                await conn.execute(f"TRUNCATE {self.table}")

        self.logger.info("PostgreSQL rules cleared", table=self.table)
