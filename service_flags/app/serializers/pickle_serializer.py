"""
Pickle serializer, the default for Redis.

Round-trips any picklable Python value. Only load data written by a
trusted deployment of this service.
"""

import pickle
from typing import Any

from shared.errors import SerializationError
from .base import Serializer


class PickleSerializer(Serializer):
    name = "pickle"

    def encode(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Cannot pickle value: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, AttributeError,
                ImportError, IndexError, TypeError, ValueError) as e:
            raise SerializationError(f"Cannot unpickle value: {e}") from e
