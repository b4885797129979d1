"""Query model protocols.

Every related model handed to reverse populate MUST implement one of these
protocols. The sync and async flavours differ only in ``exec``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class QueryBuilder(Protocol):
    """Chainable query returned by ``QueryModel.find``."""

    def sort(self, spec: Any) -> QueryBuilder:
        """Order results: ``"title -date"``, a mapping, or ``(field, dir)`` pairs."""
        ...

    def populate(self, path: str) -> QueryBuilder:
        """Expand references held under *path* on each result."""
        ...

    def lean(self, enabled: bool = True) -> QueryBuilder:
        """Return plain dicts instead of hydrated documents."""
        ...

    def exec(self) -> list[Any]:
        """Run the query and return all matching records."""
        ...


@runtime_checkable
class AsyncQueryBuilder(Protocol):
    """Async variant of QueryBuilder."""

    def sort(self, spec: Any) -> AsyncQueryBuilder:
        ...

    def populate(self, path: str) -> AsyncQueryBuilder:
        ...

    def lean(self, enabled: bool = True) -> AsyncQueryBuilder:
        ...

    async def exec(self) -> list[Any]:
        """Run the query asynchronously and return all matching records."""
        ...


@runtime_checkable
class QueryModel(Protocol):
    """A queryable related collection."""

    @property
    def name(self) -> str:
        """Collection name, used in logs and errors."""
        ...

    def find(self, filter: dict[str, Any], projection: Any = None) -> Any:
        """Start a query: returns a QueryBuilder or an AsyncQueryBuilder."""
        ...
