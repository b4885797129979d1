"""Unit tests for the reverse populate orchestrator."""

from __future__ import annotations

import inspect
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from reverse_populate.core.exceptions import QueryError
from reverse_populate.core.options import PopulateOptions
from reverse_populate.core.populate import reverse_populate, reverse_populate_async
from reverse_populate.mapping.document import Document


def _model(records: list[Any]) -> tuple[MagicMock, MagicMock]:
    """Related model whose query chain returns *records*."""
    query = MagicMock()
    query.sort.return_value = query
    query.populate.return_value = query
    query.lean.return_value = query
    query.exec.return_value = records
    model = MagicMock()
    model.find.return_value = query
    return model, query


class TestShortCircuit:
    def test_empty_model_array(self) -> None:
        model, _ = _model([])
        parents: list[Any] = []
        result = reverse_populate(
            model_array=parents,
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        assert result == []
        assert result is parents
        model.find.assert_not_called()


class TestQueryConstruction:
    def test_filter_constrains_foreign_key(self) -> None:
        model, _ = _model([])
        reverse_populate(
            model_array=[{"_id": "a"}, {"_id": "b"}, {"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        model.find.assert_called_once_with({"author": {"$in": ["a", "b"]}}, None)

    def test_caller_filters_combined_with_and(self) -> None:
        model, _ = _model([])
        reverse_populate(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
            filters={"title": {"$ne": "draft"}},
        )
        model.find.assert_called_once_with(
            {"$and": [{"title": {"$ne": "draft"}}, {"author": {"$in": ["a"]}}]},
            None,
        )

    def test_select_includes_foreign_key(self) -> None:
        model, _ = _model([])
        reverse_populate(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
            select="title",
        )
        assert model.find.call_args.args[1] == "title author"

    def test_modifiers_applied(self) -> None:
        model, query = _model([])
        reverse_populate(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
            sort="-title",
            populate="categories tags",
            lean=True,
        )
        query.sort.assert_called_once_with("-title")
        assert [c.args[0] for c in query.populate.call_args_list] == ["categories", "tags"]
        query.lean.assert_called_once_with()
        query.exec.assert_called_once_with()

    def test_modifiers_skipped_when_unset(self) -> None:
        model, query = _model([])
        reverse_populate(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        query.sort.assert_not_called()
        query.populate.assert_not_called()
        query.lean.assert_not_called()


class TestQueryErrors:
    def test_exec_failure_wrapped(self) -> None:
        model, query = _model([])
        boom = RuntimeError("unknown top level operator: $ne")
        query.exec.side_effect = boom
        parents = [{"_id": "a"}]

        with pytest.raises(QueryError, match="unknown top level operator") as exc_info:
            reverse_populate(
                model_array=parents,
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
                filters={"$ne": "not valid"},
            )

        assert exc_info.value.original is boom
        assert exc_info.value.__cause__ is boom
        assert "posts" not in parents[0]

    def test_find_failure_wrapped(self) -> None:
        model = MagicMock()
        model.find.side_effect = TypeError("bad projection")
        with pytest.raises(QueryError, match="bad projection"):
            reverse_populate(
                model_array=[{"_id": "a"}],
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
            )

    def test_async_model_rejected_by_sync_call(self) -> None:
        async def fetch() -> list[Any]:
            return [{"_id": 1, "author": "a"}]

        pending = fetch()
        model, query = _model([])
        query.exec.return_value = pending
        parents = [{"_id": "a"}]

        with pytest.raises(QueryError, match="reverse_populate_async") as exc_info:
            reverse_populate(
                model_array=parents,
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
            )

        assert isinstance(exc_info.value.original, TypeError)
        assert inspect.getcoroutinestate(pending) == inspect.CORO_CLOSED
        assert "posts" not in parents[0]

    def test_non_iterable_result_wrapped(self) -> None:
        model, query = _model([])
        query.exec.return_value = None

        with pytest.raises(QueryError, match="not iterable"):
            reverse_populate(
                model_array=[{"_id": "a"}],
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
            )


class TestAttachment:
    def test_mutates_and_returns_same_sequence(self) -> None:
        records = [{"_id": 1, "author": "a"}, {"_id": 2, "author": "b"}]
        model, _ = _model(records)
        parents = [Document(_id="b"), Document(_id="a"), Document(_id="c")]

        result = reverse_populate(
            model_array=parents,
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )

        assert result is parents
        assert [p.id for p in result] == ["b", "a", "c"]
        assert result[0].posts == [records[1]]
        assert result[1].posts == [records[0]]
        assert result[2].posts == []

    def test_singular_multiple_matches_first_wins(self) -> None:
        records = [{"_id": 1, "owner": "a"}, {"_id": 2, "owner": "a"}]
        model, _ = _model(records)
        result = reverse_populate(
            model_array=[{"_id": "a"}],
            store_where="passport",
            array_pop=False,
            related_model=model,
            id_field="owner",
        )
        assert result[0]["passport"] == {"_id": 1, "owner": "a"}

    def test_lean_copies_parents(self) -> None:
        records = [{"_id": 1, "author": "a"}]
        model, _ = _model(records)
        parents = [Document(_id="a", name="Ann"), {"_id": "b"}]

        result = reverse_populate(
            model_array=parents,
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
            lean=True,
        )

        assert result is not parents
        assert result == [
            {"_id": "a", "name": "Ann", "posts": [records[0]]},
            {"_id": "b", "posts": []},
        ]
        assert not hasattr(parents[0], "posts")
        assert "posts" not in parents[1]

    def test_options_instance(self) -> None:
        model, _ = _model([{"_id": 1, "author": "a"}])
        options = PopulateOptions(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        result = reverse_populate(options)
        assert len(result[0]["posts"]) == 1


class TestAsync:
    async def test_awaits_async_exec(self) -> None:
        query = MagicMock()
        query.exec = AsyncMock(return_value=[{"_id": 1, "author": "a"}])
        model = MagicMock()
        model.find.return_value = query

        result = await reverse_populate_async(
            model_array=[{"_id": "a"}],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        assert result[0]["posts"] == [{"_id": 1, "author": "a"}]

    async def test_accepts_sync_exec(self) -> None:
        model, _ = _model([{"_id": 1, "owner": "a"}])
        result = await reverse_populate_async(
            {
                "modelArray": [{"_id": "a"}],
                "storeWhere": "passport",
                "arrayPop": False,
                "mongooseModel": model,
                "idField": "owner",
            }
        )
        assert result[0]["passport"]["_id"] == 1

    async def test_async_failure_wrapped(self) -> None:
        query = MagicMock()
        query.exec = AsyncMock(side_effect=ConnectionResetError("lost"))
        model = MagicMock()
        model.find.return_value = query

        with pytest.raises(QueryError, match="lost"):
            await reverse_populate_async(
                model_array=[{"_id": "a"}],
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
            )

    async def test_async_non_iterable_result_wrapped(self) -> None:
        query = MagicMock()
        query.exec = AsyncMock(return_value=None)
        model = MagicMock()
        model.find.return_value = query

        with pytest.raises(QueryError, match="not iterable"):
            await reverse_populate_async(
                model_array=[{"_id": "a"}],
                store_where="posts",
                array_pop=True,
                related_model=model,
                id_field="author",
            )

    async def test_async_empty_short_circuit(self) -> None:
        model, _ = _model([])
        result = await reverse_populate_async(
            model_array=[],
            store_where="posts",
            array_pop=True,
            related_model=model,
            id_field="author",
        )
        assert result == []
        model.find.assert_not_called()
