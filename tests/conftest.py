"""Shared test fixtures.

Integration fixtures mirror a small blog: categories and authors are
parents, posts reference one author and many categories.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any

import mongomock
import pytest
from bson import ObjectId

from reverse_populate.adapters.mongo import MongoModel
from reverse_populate.mapping.document import Document


def rando() -> str:
    """Random lowercase string for names and titles."""
    return secrets.token_hex(8)


class Category(Document):
    name: str


class Author(Document):
    first_name: str
    last_name: str


class Post(Document):
    title: str | None = None


@dataclass
class Blog:
    """Seeded collections and their raw documents."""

    categories: MongoModel
    authors: MongoModel
    posts: MongoModel
    category_docs: list[dict[str, Any]]
    author_docs: list[dict[str, Any]]
    post_docs: list[dict[str, Any]]


@pytest.fixture
def database() -> Any:
    """In-process pymongo-compatible database."""
    return mongomock.MongoClient().db


@pytest.fixture
def blog(database: Any) -> Blog:
    """2 categories, 1 author and 5 posts in both categories by that author."""
    category_docs = [{"_id": ObjectId(), "name": rando()} for _ in range(2)]
    author_docs = [{"_id": ObjectId(), "first_name": rando(), "last_name": rando()}]
    post_docs = [
        {
            "_id": ObjectId(),
            "title": rando(),
            "categories": [c["_id"] for c in category_docs],
            "author": author_docs[0]["_id"],
            "content": rando(),
        }
        for _ in range(5)
    ]

    database.categories.insert_many([dict(d) for d in category_docs])
    database.authors.insert_many([dict(d) for d in author_docs])
    database.posts.insert_many([dict(d) for d in post_docs])

    categories = MongoModel(database.categories, document_class=Category)
    authors = MongoModel(database.authors, document_class=Author)
    posts = MongoModel(
        database.posts,
        document_class=Post,
        references={"categories": categories, "author": authors},
    )
    return Blog(categories, authors, posts, category_docs, author_docs, post_docs)
