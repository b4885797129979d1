"""
Example 01: Reverse Populate

This example attaches posts onto the categories and authors they reference.
Requires a MongoDB server on localhost.
"""

from bson import ObjectId
from pymongo import MongoClient

from reverse_populate import Document, MongoModel, reverse_populate


class Category(Document):
    name: str


class Author(Document):
    name: str


class Post(Document):
    title: str


def main():
    client = MongoClient("mongodb://localhost:27017")
    db = client["reverse_populate_example"]

    # Seed: 2 categories, 1 author, 3 posts in both categories
    categories_ids = [ObjectId(), ObjectId()]
    author_id = ObjectId()
    db.categories.insert_many([
        {"_id": categories_ids[0], "name": "python"},
        {"_id": categories_ids[1], "name": "mongodb"},
    ])
    db.authors.insert_one({"_id": author_id, "name": "Alice"})
    db.posts.insert_many([
        {"title": f"Post {i}", "categories": categories_ids, "author": author_id, "content": "..."}
        for i in range(3)
    ])

    categories = MongoModel(db.categories, document_class=Category)
    authors = MongoModel(db.authors, document_class=Author)
    posts = MongoModel(
        db.posts,
        document_class=Post,
        references={"categories": categories, "author": authors},
    )

    print("=== Reverse Populate ===\n")

    # Many-to-many: posts hold an array of category ids
    print("1. Categories with their posts:")
    result = reverse_populate(
        model_array=categories.find({}).exec(),
        store_where="posts",
        array_pop=True,
        related_model=posts,
        id_field="categories",
        sort="title",
    )
    for category in result:
        print(f"   {category.name}: {[post.title for post in category.posts]}")
    print()

    # One-to-many with select, filters and nested populate
    print("2. Authors with their posts (filtered, nested categories):")
    result = reverse_populate(
        model_array=authors.find({}).exec(),
        store_where="posts",
        array_pop=True,
        related_model=posts,
        id_field="author",
        select="title categories",
        filters={"title": {"$ne": "Post 0"}},
        populate="categories",
    )
    for author in result:
        print(f"   {author.name}:")
        for post in author.posts:
            print(f"     - {post.title} in {[c.name for c in post.categories]}")
    print()

    # Lean mode returns plain dict copies
    print("3. Lean mode:")
    result = reverse_populate(
        {
            "modelArray": authors.find({}).lean().exec(),
            "storeWhere": "posts",
            "arrayPop": True,
            "mongooseModel": posts,
            "idField": "author",
            "select": "title",
            "lean": True,
        }
    )
    print(f"   {result}\n")

    # Clean up
    client.drop_database("reverse_populate_example")
    client.close()


if __name__ == "__main__":
    main()
