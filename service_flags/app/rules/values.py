"""
Value set algebra shared by every adapter.

Value sets are kept as sorted, de-duplicated sequences. Values are usually
small integers or strings, but anything serializable is accepted, including
unhashable JSON values such as lists and dicts.
"""

from typing import Any, Iterable, List, Tuple


def _sort_key(value: Any) -> Tuple[str, Any]:
    return (type(value).__name__, value)


def sorted_values(values: Iterable[Any]) -> List[Any]:
    """Sort values; mixed types are grouped by type name, then ordered by value."""
    values = list(values)
    try:
        return sorted(values, key=_sort_key)
    except TypeError:
        # Unorderable values (dicts, mixed containers)
        return sorted(values, key=repr)


def unique_values(values: Iterable[Any]) -> List[Any]:
    """Drop duplicates, keeping the first occurrence."""
    seen = set()
    unhashable: List[Any] = []
    result = []

    for value in values:
        try:
            if value in seen:
                continue
            seen.add(value)
        except TypeError:
            if value in unhashable:
                continue
            unhashable.append(value)
        result.append(value)

    return result


def merge_values(existing: Iterable[Any], incoming: Iterable[Any]) -> List[Any]:
    """Union of two value sets."""
    return sorted_values(unique_values([*existing, *incoming]))


def diff_values(existing: Iterable[Any], removing: Iterable[Any]) -> List[Any]:
    """Values of ``existing`` that are not in ``removing``."""
    removing = list(removing)
    return sorted_values(
        value for value in unique_values(existing)
        if value not in removing
    )
