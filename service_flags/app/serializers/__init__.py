"""
Value serializers for byte-oriented backends.
"""

from typing import Dict, Type

from shared.errors import ValidationError
from .base import Serializer
from .json_serializer import JSONSerializer
from .pickle_serializer import PickleSerializer

SERIALIZERS: Dict[str, Type[Serializer]] = {
    PickleSerializer.name: PickleSerializer,
    JSONSerializer.name: JSONSerializer,
}


def get_serializer(name: str = "pickle") -> Serializer:
    """Build a serializer by configured name."""
    try:
        return SERIALIZERS[name.lower()]()
    except KeyError:
        raise ValidationError(
            f"Unknown serializer: {name}",
            {"available": sorted(SERIALIZERS)}
        ) from None


__all__ = ["Serializer", "PickleSerializer", "JSONSerializer", "SERIALIZERS", "get_serializer"]
