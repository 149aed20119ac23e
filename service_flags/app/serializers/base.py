"""
Serializer interface.
"""

from abc import ABC, abstractmethod
from typing import Any


class Serializer(ABC):
    """Two-way mapping between a value set and bytes.

    ``decode(encode(v)) == v`` must hold for every value the serializer
    accepts. Failures raise ``SerializationError``.
    """

    name = "base"

    @abstractmethod
    def encode(self, value: Any) -> bytes:
        ...

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        ...
