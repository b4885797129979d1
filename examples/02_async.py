"""
Example 02: Async Support

This example reverse populates a one-to-one relationship with
reverse_populate_async over pymongo's AsyncMongoClient.
Requires a MongoDB server on localhost.
"""

import asyncio
from datetime import datetime

from pymongo import AsyncMongoClient

from reverse_populate import AsyncMongoModel, Document, reverse_populate_async


class Person(Document):
    name: str


class Passport(Document):
    number: str
    expiry: datetime


async def main():
    client = AsyncMongoClient("mongodb://localhost:27017")
    db = client["reverse_populate_async_example"]

    people = await db.people.insert_many([{"name": "Alice"}, {"name": "Bob"}])
    await db.passports.insert_many([
        {"number": f"P-{i}", "expiry": datetime(2030, 1, 1), "owner": person_id}
        for i, person_id in enumerate(people.inserted_ids)
    ])

    persons = AsyncMongoModel(db.people, document_class=Person)
    passports = AsyncMongoModel(db.passports, document_class=Passport)

    print("=== Async Reverse Populate ===\n")

    result = await reverse_populate_async(
        model_array=await persons.find({}).exec(),
        store_where="passport",
        array_pop=False,
        related_model=passports,
        id_field="owner",
    )
    for person in result:
        print(f"   {person.name}: {person.passport.number if person.passport else None}")
    print()

    # Clean up
    await client.drop_database("reverse_populate_async_example")
    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
