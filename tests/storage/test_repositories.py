"""
Tests for the MongoDB repositories against mocked collections.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, NetworkTimeout, ServerSelectionTimeoutError

from catalog.errors import CatalogError, ErrorKind, ReferentialIntegrityError, UniqueConstraintError
from catalog.models import ListingQuery, ResourceKind, SortDirection
from storage.database import AUTHORS, BOOKS, USERS, MongoDBManager
from storage.repositories import (
    MongoAuthorRepository,
    MongoBookRepository,
    MongoFavoriteRepository,
    MongoUserRepository,
    as_object_id,
    build_mongo_filter,
    build_mongo_sort,
    document_to_record,
    to_document_fields,
)

USER_ID = ObjectId()
AUTHOR_ID = ObjectId()
BOOK_ID = ObjectId()
NOW = datetime(2024, 1, 1)


def make_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.count_documents = AsyncMock(return_value=0)
    collection.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.update_many = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    return collection


@pytest.fixture
def collections():
    return {USERS: make_collection(), AUTHORS: make_collection(), BOOKS: make_collection()}


@pytest.fixture
def database(collections):
    db = MagicMock()
    db.__getitem__.side_effect = collections.__getitem__
    return db


def author_document(**overrides):
    document = {
        "_id": AUTHOR_ID,
        "name": "George Orwell",
        "bio": None,
        "created_by_id": USER_ID,
        "favorited_by_ids": [],
        "created_at": NOW,
        "updated_at": NOW,
    }
    document.update(overrides)
    return document


class TestQueryTranslation:
    """Test ListingQuery to MongoDB filter and sort translation."""

    def test_scope_and_contains_use_object_ids(self):
        query = ListingQuery(
            scope={"created_by_id": str(USER_ID)},
            contains={"author_ids": str(AUTHOR_ID)},
        )
        assert build_mongo_filter(query) == {"created_by_id": USER_ID, "author_ids": AUTHOR_ID}

    def test_ids_in_skips_invalid_ids(self):
        query = ListingQuery(ids_in=(str(BOOK_ID), "not-an-id"))
        assert build_mongo_filter(query) == {"_id": {"$in": [BOOK_ID]}}

    def test_search_is_escaped_and_case_insensitive(self):
        query = ListingQuery(search="a.b*", search_fields=("title", "isbn"))
        assert build_mongo_filter(query)["$or"] == [
            {"title": {"$regex": r"a\.b\*", "$options": "i"}},
            {"isbn": {"$regex": r"a\.b\*", "$options": "i"}},
        ]

    def test_empty_query(self):
        assert build_mongo_filter(ListingQuery()) == {}

    def test_sort_maps_id(self):
        query = ListingQuery(sort=(("name", SortDirection.ASC), ("id", SortDirection.ASC)))
        assert build_mongo_sort(query) == [("name", ASCENDING), ("_id", ASCENDING)]

        query = ListingQuery(sort=(("created_at", SortDirection.DESC), ("id", SortDirection.DESC)))
        assert build_mongo_sort(query) == [("created_at", DESCENDING), ("_id", DESCENDING)]


class TestDocumentConversion:

    def test_document_to_record(self):
        record = document_to_record(author_document(favorited_by_ids=[USER_ID]))
        assert record["id"] == str(AUTHOR_ID)
        assert "_id" not in record
        assert record["created_by_id"] == str(USER_ID)
        assert record["favorited_by_ids"] == [str(USER_ID)]

    def test_to_document_fields(self):
        fields = to_document_fields({"title": "1984", "author_ids": [str(AUTHOR_ID)]})
        assert fields == {"title": "1984", "author_ids": [AUTHOR_ID]}

    @pytest.mark.parametrize("value,expected", [
        (str(USER_ID), USER_ID),
        (USER_ID, USER_ID),
        ("xyz", None),
        (None, None),
    ])
    def test_as_object_id(self, value, expected):
        assert as_object_id(value) == expected


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_create_lowercases_email(self, database, collections):
        user = await MongoUserRepository(database).create("A@X.com", "digest", name="Alice")
        inserted = collections[USERS].insert_one.call_args[0][0]
        assert inserted["email"] == "a@x.com"
        assert inserted["favorite_author_ids"] == []
        assert user.email == "a@x.com"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, database, collections):
        collections[USERS].insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(UniqueConstraintError) as exc_info:
            await MongoUserRepository(database).create("a@x.com", "digest")
        assert exc_info.value.constraint == "email"

    @pytest.mark.asyncio
    async def test_find_by_invalid_id_skips_query(self, database, collections):
        assert await MongoUserRepository(database).find_by_id("nope") is None
        collections[USERS].find_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_is_storage_error(self, database, collections):
        collections[USERS].find_one.side_effect = NetworkTimeout("timed out")
        with pytest.raises(CatalogError) as exc_info:
            await MongoUserRepository(database).find_by_email("a@x.com")
        assert exc_info.value.kind is ErrorKind.STORAGE_ERROR


class TestAuthorRepository:

    @pytest.mark.asyncio
    async def test_find_many(self, database, collections):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=[author_document()])
        collections[AUTHORS].find.return_value = cursor

        query = ListingQuery(
            scope={"created_by_id": str(USER_ID)},
            sort=(("created_at", SortDirection.DESC), ("id", SortDirection.DESC)),
            skip=10,
            limit=5,
        )
        authors = await MongoAuthorRepository(database).find_many(query)

        collections[AUTHORS].find.assert_called_once_with({"created_by_id": USER_ID})
        cursor.sort.assert_called_once_with([("created_at", DESCENDING), ("_id", DESCENDING)])
        cursor.skip.assert_called_once_with(10)
        cursor.limit.assert_called_once_with(5)
        assert [author.id for author in authors] == [str(AUTHOR_ID)]

    @pytest.mark.asyncio
    async def test_create_stamps_owner(self, database, collections):
        collections[AUTHORS].insert_one.return_value = MagicMock(inserted_id=AUTHOR_ID)
        author = await MongoAuthorRepository(database).create({"name": "George Orwell"}, str(USER_ID))
        inserted = collections[AUTHORS].insert_one.call_args[0][0]
        assert inserted["created_by_id"] == USER_ID
        assert author.id == str(AUTHOR_ID)
        assert author.created_by_id == str(USER_ID)

    @pytest.mark.asyncio
    async def test_update_sets_timestamp(self, database, collections):
        collections[AUTHORS].find_one_and_update.return_value = author_document(name="Orwell")
        author = await MongoAuthorRepository(database).update(str(AUTHOR_ID), {"name": "Orwell"})
        changes = collections[AUTHORS].find_one_and_update.call_args[0][1]["$set"]
        assert changes["name"] == "Orwell"
        assert "updated_at" in changes
        assert author.name == "Orwell"

    @pytest.mark.asyncio
    async def test_delete_referenced(self, database, collections):
        collections[BOOKS].count_documents.return_value = 1
        with pytest.raises(ReferentialIntegrityError):
            await MongoAuthorRepository(database).delete(str(AUTHOR_ID))
        collections[AUTHORS].delete_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_unlinks_favorites(self, database, collections):
        await MongoAuthorRepository(database).delete(str(AUTHOR_ID))
        collections[AUTHORS].delete_one.assert_awaited_once_with({"_id": AUTHOR_ID})
        collections[USERS].update_many.assert_awaited_once_with(
            {"favorite_author_ids": AUTHOR_ID},
            {"$pull": {"favorite_author_ids": AUTHOR_ID}},
        )


class TestBookRepository:

    @pytest.mark.asyncio
    async def test_duplicate_isbn_on_create(self, database, collections):
        collections[BOOKS].insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(UniqueConstraintError) as exc_info:
            await MongoBookRepository(database).create(
                {"title": "1984", "isbn": "9780451524935", "author_ids": [str(AUTHOR_ID)]}, str(USER_ID)
            )
        assert exc_info.value.constraint == "isbn"

    @pytest.mark.asyncio
    async def test_duplicate_isbn_on_update(self, database, collections):
        collections[BOOKS].find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(UniqueConstraintError):
            await MongoBookRepository(database).update(str(BOOK_ID), {"isbn": "9780451524935"})


class TestFavoriteRepository:

    @pytest.mark.asyncio
    async def test_add_is_conditional(self, database, collections):
        added = await MongoFavoriteRepository(database).add(str(USER_ID), ResourceKind.BOOK, str(BOOK_ID))
        assert added is True

        guard, change = collections[USERS].update_one.call_args[0]
        assert guard == {"_id": USER_ID, "favorite_book_ids": {"$ne": BOOK_ID}}
        assert change["$addToSet"] == {"favorite_book_ids": BOOK_ID}
        collections[BOOKS].update_one.assert_awaited_once_with(
            {"_id": BOOK_ID}, {"$addToSet": {"favorited_by_ids": USER_ID}}
        )

    @pytest.mark.asyncio
    async def test_add_when_present(self, database, collections):
        collections[USERS].update_one.return_value = MagicMock(modified_count=0)
        added = await MongoFavoriteRepository(database).add(str(USER_ID), ResourceKind.AUTHOR, str(AUTHOR_ID))
        assert added is False
        collections[AUTHORS].update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_remove(self, database, collections):
        removed = await MongoFavoriteRepository(database).remove(str(USER_ID), ResourceKind.AUTHOR, str(AUTHOR_ID))
        assert removed is True
        guard, change = collections[USERS].update_one.call_args[0]
        assert guard == {"_id": USER_ID, "favorite_author_ids": AUTHOR_ID}
        assert change["$pull"] == {"favorite_author_ids": AUTHOR_ID}

    @pytest.mark.asyncio
    async def test_favorite_ids(self, database, collections):
        collections[USERS].find_one.return_value = {"_id": USER_ID, "favorite_book_ids": [BOOK_ID]}
        ids = await MongoFavoriteRepository(database).favorite_ids(str(USER_ID), ResourceKind.BOOK)
        assert ids == [str(BOOK_ID)]

    @pytest.mark.asyncio
    async def test_favorite_ids_for_missing_user(self, database):
        assert await MongoFavoriteRepository(database).favorite_ids(str(USER_ID), ResourceKind.BOOK) is None

    @pytest.mark.asyncio
    async def test_exists(self, database, collections):
        collections[USERS].count_documents.return_value = 1
        assert await MongoFavoriteRepository(database).exists(str(USER_ID), ResourceKind.AUTHOR, str(AUTHOR_ID))
        collections[USERS].count_documents.assert_awaited_once_with(
            {"_id": USER_ID, "favorite_author_ids": AUTHOR_ID}, limit=1
        )


class TestMongoDBManager:

    @pytest.mark.asyncio
    async def test_health_check_not_connected(self):
        manager = MongoDBManager("mongodb://localhost:27017", "bookshelf")
        assert (await manager.health_check())["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_health_check(self):
        manager = MongoDBManager("mongodb://localhost:27017", "bookshelf")
        manager.database = MagicMock()
        manager.database.command = AsyncMock(return_value={"ok": 1})
        assert (await manager.health_check())["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        manager = MongoDBManager("mongodb://localhost:27017", "bookshelf")
        manager.database = MagicMock()
        manager.database.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
        assert (await manager.health_check())["status"] == "unhealthy"
