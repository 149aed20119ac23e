"""
Input validation for feature names, group names and value lists.
"""

from collections.abc import Iterable, Mapping
from typing import Any, List

from shared.errors import ValidationError
from .values import unique_values


def normalize_feature(feature: Any) -> str:
    """Feature names are case-insensitive and ignore surrounding whitespace."""
    if not isinstance(feature, str):
        raise ValidationError("Feature name must be a string", {"feature": repr(feature)})

    name = feature.strip().lower()
    if not name:
        raise ValidationError("Feature name must not be empty")

    return name


def validate_group(group: Any) -> str:
    if not isinstance(group, str) or not group:
        raise ValidationError("Group name must be a non-empty string", {"group": repr(group)})
    return group


def validate_values(values: Any) -> List[Any]:
    if values is None:
        return []

    if isinstance(values, (str, bytes, Mapping)) or not isinstance(values, Iterable):
        raise ValidationError(
            "Values must be a list of values",
            {"type": type(values).__name__}
        )

    return unique_values(values)
