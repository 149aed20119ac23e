"""
JSON serializer.

Portable across languages, but only round-trips JSON types: tuples come
back as lists and non-string mapping keys become strings.
"""

import json
from typing import Any

from shared.errors import SerializationError
from .base import Serializer


class JSONSerializer(Serializer):
    name = "json"

    def encode(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode value as JSON: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot decode JSON value: {e}") from e
