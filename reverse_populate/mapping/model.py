"""Hydration of raw MongoDB documents into model instances."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from reverse_populate.core.exceptions import DocumentMappingError

T = TypeVar("T")


def _init_fields(cls: type) -> frozenset[str] | None:
    """Keyword names a dataclass accepts, or None for other classes."""
    if not dataclasses.is_dataclass(cls):
        return None
    return frozenset(f.name for f in dataclasses.fields(cls) if f.init)


class DocumentMapper(Generic[T]):
    """Builds *target_class* instances from documents returned by a find.

    - Pydantic models validate the document as stored. ``Document``
      subclasses take ``_id`` through their field alias, and subdocuments
      already hydrated by nested populate are accepted by attributes.
    - Dataclasses are built from the keys they declare. ``_id`` becomes
      ``id`` unless the class declares ``_id`` itself. Other keys, such as
      populated paths the class does not model, are dropped.
    - Plain classes receive every key as a keyword, ``_id`` renamed to
      ``id``.

    Args:
        target_class: The class to construct from document data.
        aliases: Stored-name to field-name mapping. Replaces the default
            ``_id`` rename when given.
    """

    def __init__(
        self,
        target_class: type[T],
        aliases: dict[str, str] | None = None,
    ) -> None:
        self._target_class = target_class
        self._is_pydantic = isinstance(target_class, type) and issubclass(target_class, BaseModel)
        self._fields = _init_fields(target_class)
        if aliases is None:
            keeps_underscore_id = self._is_pydantic or (
                self._fields is not None and "_id" in self._fields
            )
            aliases = {} if keeps_underscore_id else {"_id": "id"}
        self._aliases = aliases

    @property
    def target_class(self) -> type[T]:
        return self._target_class

    def _fail(self, detail: str) -> DocumentMappingError:
        return DocumentMappingError(self._target_class.__name__, detail)

    def map_one(self, document: Mapping[str, Any]) -> T:
        """Hydrate one document."""
        data = {self._aliases.get(key, key): value for key, value in document.items()}

        if self._is_pydantic:
            try:
                return self._target_class.model_validate(data, from_attributes=True)  # type: ignore[attr-defined, no-any-return]
            except ValidationError as e:
                raise self._fail(str(e)) from e

        if self._fields is not None:
            data = {key: value for key, value in data.items() if key in self._fields}

        try:
            return self._target_class(**data)
        except TypeError as e:
            raise self._fail(str(e)) from e

    def map_many(self, documents: list[Mapping[str, Any]]) -> list[T]:
        """Hydrate documents in cursor order."""
        return [self.map_one(document) for document in documents]
