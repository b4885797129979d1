"""Grouping and attachment of related records onto parents.

Single-pass O(n) grouping using identity maps keyed by stringified tokens.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, MutableMapping, Sequence
from typing import Any

from reverse_populate.core.exceptions import AttachmentError
from reverse_populate.core.keys import (
    ArrayKey,
    ScalarKey,
    classify_foreign_key,
    read_field,
    token_key,
)

logger = logging.getLogger(__name__)


def key_by(items: Iterable[Any], key: str | Callable[[Any], Any]) -> dict[str, Any]:
    """Index *items* by a field name or key function.

    Keys are stringified; when two items share a key the last one wins.
    Items whose key is None are skipped.
    """
    result: dict[str, Any] = {}
    for item in items:
        value = key(item) if callable(key) else read_field(item, key)
        if value is None:
            continue
        result[str(value)] = item
    return result


def group_by_key(records: Iterable[Any], key_field: str) -> dict[str, list[Any]]:
    """Group related records by the parent tokens held in *key_field*.

    A scalar key places the record in one group. An array key places it in
    the group of every distinct token it holds. Records with an absent or
    None key are skipped.
    """
    groups: dict[str, list[Any]] = {}

    for record in records:
        foreign_key = classify_foreign_key(read_field(record, key_field))

        if foreign_key is None:
            continue

        if isinstance(foreign_key, ScalarKey):
            key = token_key(foreign_key.token)
            if key is not None:
                groups.setdefault(key, []).append(record)
        elif isinstance(foreign_key, ArrayKey):
            # Deduplicate repeated tokens within one record
            seen: set[str] = set()
            for token in foreign_key.tokens:
                key = token_key(token)
                if key is None or key in seen:
                    continue
                seen.add(key)
                groups.setdefault(key, []).append(record)

    return groups


def _write(target: Any, store_where: str, value: Any) -> None:
    if isinstance(target, MutableMapping):
        target[store_where] = value
        return
    try:
        setattr(target, store_where, value)
    except (AttributeError, TypeError, ValueError) as e:
        raise AttachmentError(store_where, type(target).__name__, str(e)) from e


def _snapshot(target: Any, store_where: str) -> tuple[bool, Any]:
    if isinstance(target, Mapping):
        return store_where in target, target.get(store_where)
    return hasattr(target, store_where), getattr(target, store_where, None)


def _restore(target: Any, store_where: str, state: tuple[bool, Any]) -> None:
    present, previous = state
    if isinstance(target, MutableMapping):
        if present:
            target[store_where] = previous
        else:
            target.pop(store_where, None)
    elif present:
        setattr(target, store_where, previous)
    else:
        delattr(target, store_where)


def attach_groups(
    targets: Sequence[Any],
    groups: Mapping[str, list[Any]],
    store_where: str,
    array_pop: bool,
) -> Sequence[Any]:
    """Write each target's group onto ``target[store_where]``.

    Plural attachment writes the (possibly empty) list of matches. Singular
    attachment writes the first match in query order, or None.

    If a target cannot receive the result, the targets already written are
    restored to their previous state before AttachmentError propagates.

    Returns:
        *targets*, annotated in place.
    """
    written: list[tuple[Any, tuple[bool, Any]]] = []
    try:
        for target in targets:
            key = token_key(target)
            matches = groups.get(key, []) if key is not None else []

            if array_pop:
                value: Any = list(matches)
            else:
                if len(matches) > 1:
                    logger.debug(
                        "%d records matched parent %s for singular field '%s'; using the first",
                        len(matches),
                        key,
                        store_where,
                    )
                value = matches[0] if matches else None

            state = _snapshot(target, store_where)
            _write(target, store_where, value)
            written.append((target, state))
    except AttachmentError:
        for target, state in reversed(written):
            _restore(target, store_where, state)
        raise

    return targets
