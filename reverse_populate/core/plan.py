"""Query plan for the related-model lookup.

Frozen dataclass holding the compiled query for one reverse populate call.
Built from validated PopulateOptions before any I/O is performed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reverse_populate.core.keys import identity_of, token_key
from reverse_populate.core.options import PopulateOptions
from reverse_populate.core.params import build_select_spec, split_fields


@dataclass(frozen=True)
class QueryPlan:
    """Compiled lookup against the related model."""

    filter: dict[str, Any]
    select: str | None = None
    sort: Any = None
    populate: tuple[str, ...] = field(default_factory=tuple)
    lean: bool = False


def collect_parent_tokens(parents: Any) -> list[Any]:
    """Distinct identifier tokens of *parents*, in first-seen order.

    Raw tokens are kept (not stringified) so they match the stored type.
    Parents without an identifier are skipped.
    """
    seen: set[str] = set()
    tokens: list[Any] = []
    for parent in parents:
        key = token_key(parent)
        if key is None or key in seen:
            continue
        seen.add(key)
        tokens.append(identity_of(parent))
    return tokens


def build_query_plan(options: PopulateOptions) -> QueryPlan:
    """Compile options into a QueryPlan.

    The foreign key is constrained to the parents' tokens; caller filters,
    when given, must hold as well.
    """
    key_filter: dict[str, Any] = {
        options.id_field: {"$in": collect_parent_tokens(options.model_array)}
    }
    if options.filters:
        query_filter: dict[str, Any] = {"$and": [dict(options.filters), key_filter]}
    else:
        query_filter = key_filter

    populate = split_fields(options.populate) if options.populate else ()

    return QueryPlan(
        filter=query_filter,
        select=build_select_spec(options.select, options.id_field),
        sort=options.sort,
        populate=populate,
        lean=options.lean,
    )
