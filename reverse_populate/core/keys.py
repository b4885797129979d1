"""Identity tokens and foreign-key classification.

Identifiers are opaque equatable tokens (ObjectId, str, int, UUID, ...).
Entities are matched by token value, never by reference, and tokens are
stringified wherever they are used as grouping keys.

A foreign-key field may hold a single token or a collection of tokens.
``classify_foreign_key`` turns that shape into an explicit tagged value so
grouping code branches on the tag instead of sniffing the runtime type.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

_ARRAY_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class ScalarKey:
    """Foreign key referencing exactly one parent."""

    token: Any

    @property
    def tokens(self) -> tuple[Any, ...]:
        return (self.token,)


@dataclass(frozen=True)
class ArrayKey:
    """Foreign key referencing zero or more parents."""

    tokens: tuple[Any, ...]


ForeignKey = Union[ScalarKey, ArrayKey]


def identity_of(value: Any) -> Any:
    """Return the identifier token held by *value*.

    Mappings are read through ``_id`` (falling back to ``id``), objects
    through their ``id`` or ``_id`` attribute. Anything else is assumed to
    already be a raw token and is returned unchanged.
    """
    if isinstance(value, Mapping):
        if "_id" in value:
            return value["_id"]
        return value.get("id")
    for attr in ("id", "_id"):
        if hasattr(value, attr):
            token = getattr(value, attr)
            if not callable(token):
                return token
    return value


def token_key(value: Any) -> str | None:
    """Stringified identity of *value*, or None when it has no identity."""
    token = identity_of(value)
    if token is None:
        return None
    return str(token)


def identity_matches(a: Any, b: Any) -> bool:
    """True if *a* and *b* carry equal identifier tokens.

    Either side may be a raw token or an entity wrapping one.
    """
    key_a = token_key(a)
    return key_a is not None and key_a == token_key(b)


def identities_match(left: Any, right: Any) -> bool:
    """True if two sequences hold the same identifier tokens, in any order."""
    left_keys = sorted(str(key) for key in map(token_key, left))
    right_keys = sorted(str(key) for key in map(token_key, right))
    return left_keys == right_keys


def classify_foreign_key(value: Any) -> ForeignKey | None:
    """Tag a raw foreign-key value as scalar or array.

    Returns None for an absent key. Members of an array key that are None
    are dropped.
    """
    if value is None:
        return None
    if isinstance(value, _ARRAY_TYPES):
        return ArrayKey(tuple(item for item in value if item is not None))
    return ScalarKey(value)


def read_field(entity: Any, field_name: str) -> Any:
    """Read *field_name* from a mapping or an attribute-bearing entity."""
    if isinstance(entity, Mapping):
        return entity.get(field_name)
    if field_name == "_id":
        return identity_of(entity)
    return getattr(entity, field_name, None)
