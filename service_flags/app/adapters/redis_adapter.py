"""
Redis rule adapter.

Layout:
- ``{set_key}``: set of known feature names.
- ``{key_prefix}{feature}``: hash of group -> serialized value list.

Read-modify-write operations run as optimistic WATCH/MULTI/EXEC
transactions, so concurrent writers from any process never lose updates.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import BackendError
from .base import RuleAdapter, Rules
from ..rules.evaluator import RuleEvaluator
from ..rules.models import ALL, ANY, Selector
from ..rules.values import diff_values, merge_values, sorted_values
from ..serializers import PickleSerializer, Serializer


def _text(value: Union[bytes, str]) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class RedisAdapter(RuleAdapter):
    name = "redis"
    driver_errors = (RedisError,)

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "feature-flags:",
        set_key: str = "feature-flags",
        serializer: Optional[Serializer] = None,
        evaluator: Optional[RuleEvaluator] = None,
        client: Optional[redis.Redis] = None
    ):
        super().__init__(evaluator)
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.set_key = set_key
        self.serializer = serializer or PickleSerializer()
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Connect to Redis."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )

        with self._backend_errors("start"):
            await self.redis.ping()

        self.logger.info("Redis adapter started", url=self.redis_url, set_key=self.set_key)

    async def stop(self):
        """Close the Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis adapter stopped")

    async def health_check(self) -> bool:
        if not self.redis:
            return False

        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        if self.redis is None:
            raise BackendError(self.name, "Adapter not started")
        return self.redis

    def _key(self, feature: str) -> str:
        return f"{self.key_prefix}{feature}"

    def _decode_rules(self, raw: Dict[bytes, bytes]) -> Rules:
        return {
            _text(group): sorted_values(self.serializer.decode(values))
            for group, values in raw.items()
        }

    async def add(self, feature: str):
        with self._backend_errors("add"):
            await self.client.sadd(self.set_key, feature)

    async def remove(self, feature: str):
        with self._backend_errors("remove"):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.srem(self.set_key, feature)
                pipe.delete(self._key(feature))
                await pipe.execute()

    async def enable(self, feature: str, group: str, values: Sequence[Any]):
        key = self._key(feature)

        async def merge(pipe):
            current = await pipe.hget(key, group)
            existing = self.serializer.decode(current) if current is not None else []
            encoded = self.serializer.encode(merge_values(existing, values))

            pipe.multi()
            pipe.sadd(self.set_key, feature)
            pipe.hset(key, group, encoded)

        with self._backend_errors("enable"):
            await self.client.transaction(merge, key)

    async def disable(self, feature: str, group: str, values: Sequence[Any]):
        key = self._key(feature)

        if not values:
            with self._backend_errors("disable"):
                await self.client.hdel(key, group)
            return

        async def subtract(pipe):
            current = await pipe.hget(key, group)
            if current is None:
                return

            encoded = self.serializer.encode(diff_values(self.serializer.decode(current), values))

            pipe.multi()
            pipe.hset(key, group, encoded)

        with self._backend_errors("disable"):
            await self.client.transaction(subtract, key)

    async def rename(self, old: str, new: str):
        if old == new:
            return

        old_key = self._key(old)
        new_key = self._key(new)

        async def move(pipe):
            known = await pipe.sismember(self.set_key, old)
            has_rules = await pipe.exists(old_key)
            if not known and not has_rules:
                return

            pipe.multi()
            pipe.srem(self.set_key, old)
            pipe.sadd(self.set_key, new)
            pipe.delete(new_key)
            if has_rules:
                pipe.rename(old_key, new_key)

        with self._backend_errors("rename"):
            await self.client.transaction(move, self.set_key, old_key, new_key)

    async def exists(self, feature: str, group: Union[str, Selector] = ANY) -> bool:
        with self._backend_errors("exists"):
            if group is ANY:
                return bool(await self.client.sismember(self.set_key, feature))

            return bool(await self.client.hexists(self._key(feature), group))

    async def features(self, group: Union[str, Selector] = ALL) -> List[str]:
        with self._backend_errors("features"):
            names = sorted(_text(name) for name in await self.client.smembers(self.set_key))

            if group is ALL or not names:
                return names

            async with self.client.pipeline(transaction=False) as pipe:
                for name in names:
                    pipe.hexists(self._key(name), group)
                bound = await pipe.execute()

        return [name for name, present in zip(names, bound) if present]

    async def get_rules(self, feature: str) -> Optional[Rules]:
        with self._backend_errors("get_rules"):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.sismember(self.set_key, feature)
                pipe.hgetall(self._key(feature))
                known, raw = await pipe.execute()

        if not known:
            return None

        return self._decode_rules(raw)

    async def all_rules(self) -> Dict[str, Rules]:
        with self._backend_errors("all_rules"):
            names = sorted(_text(name) for name in await self.client.smembers(self.set_key))
            if not names:
                return {}

            async with self.client.pipeline(transaction=True) as pipe:
                for name in names:
                    pipe.hgetall(self._key(name))
                rows = await pipe.execute()

        return {name: self._decode_rules(raw) for name, raw in zip(names, rows)}

    async def clear(self):
        keys: List[str] = []

        async def wipe(pipe):
            names = await pipe.smembers(self.set_key)
            keys[:] = [self._key(_text(name)) for name in names]
            pipe.multi()
            pipe.delete(self.set_key, *keys)

        # A concurrent enable touches set_key, so EXEC fails and the wipe reruns
        with self._backend_errors("clear"):
            await self.client.transaction(wipe, self.set_key)

        self.logger.info("Redis rules cleared", features=len(keys))
