"""Reverse populate orchestration.

Validates the call options, issues exactly one query against the related
model, groups the results by foreign key and attaches each group onto its
parent entity.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from reverse_populate.core.exceptions import QueryError
from reverse_populate.core.options import PopulateOptions, coerce_options
from reverse_populate.core.plan import QueryPlan, build_query_plan
from reverse_populate.mapping.document import Document
from reverse_populate.mapping.grouping import attach_groups, group_by_key

logger = logging.getLogger(__name__)


def _as_plain(entity: Any) -> dict[str, Any]:
    """Shallow plain-data copy of a parent entity for lean mode."""
    if isinstance(entity, Mapping):
        return dict(entity)
    if isinstance(entity, Document):
        return entity.to_plain()
    if hasattr(entity, "model_fields"):
        # Other Pydantic models iterate as (field, value) pairs
        return dict(entity)
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}
    return dict(vars(entity))


def _start_query(options: PopulateOptions, plan: QueryPlan) -> Any:
    """Build the query chain on the related model."""
    query = options.related_model.find(plan.filter, plan.select)
    if plan.sort:
        query = query.sort(plan.sort)
    for path in plan.populate:
        query = query.populate(path)
    if plan.lean:
        query = query.lean()
    return query


def _prepare(
    options: PopulateOptions | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> tuple[PopulateOptions, QueryPlan | None]:
    opts = coerce_options(options, overrides)
    if len(opts.model_array) == 0:
        logger.debug("reverse populate on %s skipped: no parents", opts.related_name)
        return opts, None

    plan = build_query_plan(opts)
    logger.debug(
        "reverse populate %s.%s for %d parents (select=%r, sort=%r, populate=%r, lean=%s)",
        opts.related_name,
        opts.id_field,
        len(opts.model_array),
        plan.select,
        plan.sort,
        plan.populate,
        plan.lean,
    )
    return opts, plan


def _query_failed(options: PopulateOptions, error: Exception) -> QueryError:
    logger.debug("reverse populate query against %s failed: %s", options.related_name, error)
    return QueryError(options.related_name, error)


def _finish(options: PopulateOptions, records: list[Any]) -> Sequence[Any]:
    groups = group_by_key(records, options.id_field)
    logger.debug(
        "reverse populate %s: %d records in %d groups",
        options.related_name,
        len(records),
        len(groups),
    )

    if options.lean:
        targets: Sequence[Any] = [_as_plain(entity) for entity in options.model_array]
    else:
        targets = options.model_array

    return attach_groups(targets, groups, options.store_where, options.array_pop)


def reverse_populate(
    options: PopulateOptions | Mapping[str, Any] | None = None,
    /,
    **kwargs: Any,
) -> Sequence[Any]:
    """Attach related records onto their parents.

    Options can be given as a mapping, a PopulateOptions instance, keyword
    arguments, or a mix (keywords win)::

        reverse_populate(
            model_array=authors,
            store_where="posts",
            array_pop=True,
            related_model=posts,
            id_field="author",
        )

    Returns:
        ``model_array`` annotated in place, in input order. In lean mode, a
        new list of plain dict copies.

    Raises:
        MissingFieldError: A mandatory option is missing. No query is issued.
        InvalidOptionError: An option has an unusable value.
        QueryError: The related-model query failed. No result is produced.
        AttachmentError: A parent could not receive the result.
    """
    opts, plan = _prepare(options, kwargs)
    if plan is None:
        return opts.model_array

    try:
        records = _start_query(opts, plan).exec()
        if inspect.isawaitable(records):
            if inspect.iscoroutine(records):
                records.close()
            raise TypeError(
                f"{opts.related_name} returned an awaitable from exec(); "
                "use reverse_populate_async"
            )
        records = list(records)
    except Exception as e:
        raise _query_failed(opts, e) from e

    return _finish(opts, records)


async def reverse_populate_async(
    options: PopulateOptions | Mapping[str, Any] | None = None,
    /,
    **kwargs: Any,
) -> Sequence[Any]:
    """Asynchronous variant of reverse_populate.

    The related model may return either an awaitable or a plain result
    from ``exec``; the call suspends only while the query runs.
    """
    opts, plan = _prepare(options, kwargs)
    if plan is None:
        return opts.model_array

    try:
        records = _start_query(opts, plan).exec()
        if inspect.isawaitable(records):
            records = await records
        records = list(records)
    except Exception as e:
        raise _query_failed(opts, e) from e

    return _finish(opts, records)
