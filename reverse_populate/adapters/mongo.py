"""MongoDB adapter - sync (pymongo) and async (pymongo asynchronous API).

Wraps a collection in the QueryModel protocol: select strings become
pymongo projections, sort specs become ``(field, direction)`` lists, and
nested populate resolves references through other registered models.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pymongo import ASCENDING, DESCENDING

from reverse_populate.core.exceptions import AdapterError
from reverse_populate.core.keys import (
    ArrayKey,
    ScalarKey,
    classify_foreign_key,
    identity_of,
    token_key,
)
from reverse_populate.core.params import parse_sort, split_fields
from reverse_populate.mapping.document import Document
from reverse_populate.mapping.grouping import key_by
from reverse_populate.mapping.model import DocumentMapper

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection
    from pymongo.collection import Collection

logger = logging.getLogger(__name__)


def select_to_projection(select: str | Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Convert a ``"title -content"`` select spec to a pymongo projection.

    Mappings are passed through as already-built projections.
    """
    if select is None:
        return None
    if isinstance(select, Mapping):
        return dict(select)

    fields = split_fields(select)
    if not fields:
        return None

    projection: dict[str, Any] = {}
    for name in fields:
        if name.startswith("-"):
            projection[name[1:]] = 0
        else:
            projection[name.lstrip("+")] = 1
    return projection


def to_pymongo_sort(spec: Any) -> list[tuple[str, int]] | None:
    """Convert a sort spec to pymongo's ``[(field, ASCENDING|DESCENDING)]``."""
    pairs = parse_sort(spec)
    if pairs is None:
        return None
    return [(name, ASCENDING if direction > 0 else DESCENDING) for name, direction in pairs]


def _reference_tokens(documents: list[dict[str, Any]], path: str) -> list[Any]:
    """Distinct raw tokens stored under *path* across *documents*."""
    seen: set[str] = set()
    tokens: list[Any] = []
    for document in documents:
        foreign_key = classify_foreign_key(document.get(path))
        if foreign_key is None:
            continue
        for token in foreign_key.tokens:
            key = token_key(token)
            if key is None or key in seen:
                continue
            seen.add(key)
            tokens.append(identity_of(token))
    return tokens


def _replace_references(
    documents: list[dict[str, Any]],
    path: str,
    referenced: dict[str, Any],
) -> None:
    """Swap tokens under *path* for the referenced records.

    Unresolved scalar references become None; unresolved array members
    are dropped.
    """
    for document in documents:
        foreign_key = classify_foreign_key(document.get(path))
        if isinstance(foreign_key, ArrayKey):
            document[path] = [
                referenced[key]
                for key in map(token_key, foreign_key.tokens)
                if key in referenced
            ]
        elif isinstance(foreign_key, ScalarKey):
            document[path] = referenced.get(token_key(foreign_key.token))


class _BaseMongoQuery:
    """Query state shared by the sync and async builders."""

    def __init__(self, model: Any, filter: dict[str, Any], projection: Any = None) -> None:
        self._model = model
        self._filter = filter
        self._projection = select_to_projection(projection)
        self._sort: list[tuple[str, int]] | None = None
        self._populate: list[str] = []
        self._lean = False

    def sort(self, spec: Any) -> Any:
        self._sort = to_pymongo_sort(spec)
        return self

    def populate(self, path: str) -> Any:
        self._populate.extend(split_fields(path))
        return self

    def lean(self, enabled: bool = True) -> Any:
        self._lean = enabled
        return self

    def _cursor(self) -> Any:
        logger.debug(
            "find on %s: filter=%r projection=%r sort=%r",
            self._model.name,
            self._filter,
            self._projection,
            self._sort,
        )
        cursor = self._model.collection.find(self._filter, self._projection)
        if self._sort:
            cursor = cursor.sort(self._sort)
        return cursor

    def _finish(self, documents: list[dict[str, Any]]) -> list[Any]:
        if self._lean:
            return documents
        return self._model.mapper.map_many(documents)


class MongoQuery(_BaseMongoQuery):
    """Synchronous chainable query over a pymongo collection."""

    def exec(self) -> list[Any]:
        """Run the query and resolve nested populate paths."""
        documents = list(self._cursor())

        for path in self._populate:
            tokens = _reference_tokens(documents, path)
            if not tokens:
                continue
            reference = self._model.reference(path)
            referenced = reference.find({"_id": {"$in": tokens}}).lean(self._lean).exec()
            logger.debug("populated %s: %d of %d references", path, len(referenced), len(tokens))
            _replace_references(documents, path, key_by(referenced, identity_of))

        return self._finish(documents)


class AsyncMongoQuery(_BaseMongoQuery):
    """Asynchronous chainable query over a pymongo async collection."""

    async def exec(self) -> list[Any]:
        """Run the query asynchronously and resolve nested populate paths."""
        documents = await self._cursor().to_list(None)

        for path in self._populate:
            tokens = _reference_tokens(documents, path)
            if not tokens:
                continue
            reference = self._model.reference(path)
            referenced = await reference.find({"_id": {"$in": tokens}}).lean(self._lean).exec()
            logger.debug("populated %s: %d of %d references", path, len(referenced), len(tokens))
            _replace_references(documents, path, key_by(referenced, identity_of))

        return self._finish(documents)


class _BaseMongoModel:
    """Collection wrapper shared by the sync and async models."""

    def __init__(
        self,
        collection: Any,
        document_class: type = Document,
        references: dict[str, Any] | None = None,
    ) -> None:
        self.collection = collection
        self.mapper: DocumentMapper[Any] = DocumentMapper(document_class)
        self._references: dict[str, Any] = dict(references or {})

    @property
    def name(self) -> str:
        return str(getattr(self.collection, "name", type(self.collection).__name__))

    def register_reference(self, path: str, model: Any) -> None:
        """Declare that ids stored under *path* point into *model*."""
        self._references[path] = model

    def reference(self, path: str) -> Any:
        """Model that ids under *path* refer to."""
        try:
            return self._references[path]
        except KeyError:
            raise AdapterError(
                f"No reference registered for populate path '{path}' on '{self.name}'"
            ) from None


class MongoModel(_BaseMongoModel):
    """QueryModel over a synchronous pymongo ``Collection``.

    Args:
        collection: The related pymongo collection.
        document_class: Class non-lean results are hydrated into.
        references: Populate path -> MongoModel holding the referenced documents.
    """

    collection: Collection[Any]

    def find(self, filter: dict[str, Any], projection: Any = None) -> MongoQuery:
        return MongoQuery(self, filter, projection)


class AsyncMongoModel(_BaseMongoModel):
    """QueryModel over an ``AsyncCollection`` (``pymongo.AsyncMongoClient``).

    Args:
        collection: The related async pymongo collection.
        document_class: Class non-lean results are hydrated into.
        references: Populate path -> AsyncMongoModel holding the referenced documents.
    """

    collection: AsyncCollection[Any]

    def find(self, filter: dict[str, Any], projection: Any = None) -> AsyncMongoQuery:
        return AsyncMongoQuery(self, filter, projection)
