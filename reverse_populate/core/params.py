"""Select and sort specification helpers.

Select specs are space-delimited field lists (``"title author"``); a
leading ``-`` excludes a field (``"-content"``). Sort specs use the same
syntax with ``-`` meaning descending, or may be given as a mapping or a
list of ``(field, direction)`` pairs.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

ASCENDING = 1
DESCENDING = -1

_DIRECTION_NAMES: dict[str, int] = {
    "asc": ASCENDING,
    "ascending": ASCENDING,
    "desc": DESCENDING,
    "descending": DESCENDING,
}


@lru_cache(maxsize=256)
def split_fields(field_spec: str) -> tuple[str, ...]:
    """Split a space-delimited field spec into its tokens."""
    return tuple(field_spec.split())


def build_select_spec(field_spec: str | None, required_field: str) -> str | None:
    """Return *field_spec* guaranteed to include *required_field*.

    An absent or blank spec means "all fields" and is returned unchanged.
    A spec that only excludes fields already returns *required_field*,
    unless it excludes it explicitly, in which case that exclusion is
    dropped.

    Args:
        field_spec: Space-delimited field list, or None.
        required_field: Field name that must be present in the result.

    Returns:
        The adjusted spec, or None when no restriction remains.
    """
    if field_spec is None or not field_spec.strip():
        return field_spec

    fields = split_fields(field_spec)
    if required_field in fields:
        return field_spec

    if all(name.startswith("-") for name in fields):
        excluded = "-" + required_field
        if excluded not in fields:
            return field_spec
        remaining = [name for name in fields if name != excluded]
        return " ".join(remaining) or None

    return " ".join((*fields, required_field))


@lru_cache(maxsize=256)
def _parse_sort_string(sort_spec: str) -> tuple[tuple[str, int], ...]:
    pairs: list[tuple[str, int]] = []
    for name in split_fields(sort_spec):
        if name.startswith("-"):
            pairs.append((name[1:], DESCENDING))
        else:
            pairs.append((name.lstrip("+"), ASCENDING))
    return tuple(pairs)


def _coerce_direction(direction: Any) -> int:
    if isinstance(direction, str):
        try:
            return _DIRECTION_NAMES[direction.lower()]
        except KeyError:
            raise ValueError(f"Unknown sort direction: {direction!r}") from None
    if direction in (ASCENDING, DESCENDING):
        return int(direction)
    raise ValueError(f"Unknown sort direction: {direction!r}")


def parse_sort(sort_spec: Any) -> list[tuple[str, int]] | None:
    """Normalize a sort spec to ``[(field, 1 | -1), ...]``.

    * ``None`` / empty → None (storage order).
    * ``str`` → ``"title -date"`` syntax.
    * mapping → ``{"title": 1, "date": "desc"}``.
    * list / tuple → ``[("title", 1), ...]`` or bare field names.
    """
    if not sort_spec:
        return None
    if isinstance(sort_spec, str):
        return list(_parse_sort_string(sort_spec))
    if isinstance(sort_spec, Mapping):
        return [(name, _coerce_direction(d)) for name, d in sort_spec.items()]
    pairs: list[tuple[str, int]] = []
    for item in sort_spec:
        if isinstance(item, str):
            pairs.extend(_parse_sort_string(item))
        else:
            name, direction = item
            pairs.append((name, _coerce_direction(direction)))
    return pairs
