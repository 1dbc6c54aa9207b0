"""
MongoDB repositories for users, authors, books and favorites.

Documents keep references as ObjectIds; records handed to the catalog core
carry them as hex strings.
"""

import re
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog.errors import (
    CatalogError,
    ErrorMessages,
    ReferentialIntegrityError,
    UniqueConstraintError,
)
from catalog.models import Author, Book, ListingQuery, ResourceKind, SortDirection, User, utcnow
from storage.database import AUTHORS, BOOKS, USERS

logger = structlog.get_logger(__name__)

# Fields holding references to other documents
REFERENCE_FIELDS = frozenset({
    "created_by_id",
    "author_ids",
    "favorited_by_ids",
    "favorite_author_ids",
    "favorite_book_ids",
})


def as_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a hex id, returning None for anything that is not one."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _reference_value(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [as_object_id(item) or item for item in value]
    return as_object_id(value) or value


def to_document_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert reference fields of a write payload to ObjectIds."""
    return {
        key: _reference_value(value) if key in REFERENCE_FIELDS else value
        for key, value in data.items()
    }


def document_to_record(document: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a stored document into plain fields with string ids."""
    record = dict(document)
    record["id"] = str(record.pop("_id"))
    for key, value in record.items():
        if isinstance(value, ObjectId):
            record[key] = str(value)
        elif isinstance(value, list):
            record[key] = [str(item) if isinstance(item, ObjectId) else item for item in value]
    return record


def _storage_field(name: str) -> str:
    return "_id" if name == "id" else name


def build_mongo_filter(query: ListingQuery) -> Dict[str, Any]:
    """
    Translate a ListingQuery into a MongoDB filter document.

    Scope and containment filters are equality matches (equality on an array
    field matches membership). Search terms are matched literally and
    case-insensitively against each searchable field.
    """
    mongo_filter: Dict[str, Any] = {}

    for name, value in list(query.scope.items()) + list(query.contains.items()):
        field_name = _storage_field(name)
        if field_name == "_id" or name in REFERENCE_FIELDS:
            value = _reference_value(value)
        mongo_filter[field_name] = value

    if query.ids_in is not None:
        object_ids = [oid for oid in (as_object_id(item) for item in query.ids_in) if oid is not None]
        mongo_filter["_id"] = {"$in": object_ids}

    if query.search and query.search_fields:
        pattern = re.escape(query.search)
        mongo_filter["$or"] = [
            {field_name: {"$regex": pattern, "$options": "i"}} for field_name in query.search_fields
        ]

    return mongo_filter


def build_mongo_sort(query: ListingQuery) -> List[Tuple[str, int]]:
    return [
        (_storage_field(name), ASCENDING if direction is SortDirection.ASC else DESCENDING)
        for name, direction in query.sort
    ]


@contextmanager
def storage_errors(operation: str, **context):
    """
    Convert driver failures into STORAGE_ERROR.

    Duplicate key errors pass through untouched so callers can map them to
    the constraint they violate.
    """
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as e:
        logger.error("Storage operation failed", operation=operation, error=str(e), **context)
        raise CatalogError.storage() from e


class MongoRepository:
    """Shared lookup, listing and counting for one collection."""

    collection_name: str = ""
    record_type: type = dict

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.collection = database[self.collection_name]

    def _to_record(self, document: Optional[Dict[str, Any]]):
        if document is None:
            return None
        return self.record_type(**document_to_record(document))

    async def find_by_id(self, record_id: str):
        object_id = as_object_id(record_id)
        if object_id is None:
            return None
        with storage_errors("find_by_id", collection=self.collection_name, record_id=record_id):
            document = await self.collection.find_one({"_id": object_id})
        return self._to_record(document)

    async def find_by_ids(self, record_ids: Iterable[str]) -> list:
        object_ids = [oid for oid in (as_object_id(item) for item in record_ids) if oid is not None]
        if not object_ids:
            return []
        with storage_errors("find_by_ids", collection=self.collection_name):
            documents = await self.collection.find({"_id": {"$in": object_ids}}).to_list(length=None)
        return [self._to_record(document) for document in documents]

    async def find_many(self, query: ListingQuery) -> list:
        with storage_errors("find_many", collection=self.collection_name):
            cursor = (
                self.collection.find(build_mongo_filter(query))
                .sort(build_mongo_sort(query))
                .skip(query.skip)
                .limit(query.limit)
            )
            documents = await cursor.to_list(length=query.limit or None)
        return [self._to_record(document) for document in documents]

    async def count(self, query: ListingQuery) -> int:
        with storage_errors("count", collection=self.collection_name):
            return await self.collection.count_documents(build_mongo_filter(query))

    async def _insert(self, document: Dict[str, Any]):
        with storage_errors("insert", collection=self.collection_name):
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return self._to_record(document)

    async def _update(self, record_id: str, data: Dict[str, Any], not_found_message: str):
        changes = to_document_fields(data)
        changes["updated_at"] = utcnow()
        with storage_errors("update", collection=self.collection_name, record_id=record_id):
            document = await self.collection.find_one_and_update(
                {"_id": as_object_id(record_id)},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if document is None:
            raise CatalogError.not_found(not_found_message)
        return self._to_record(document)

    async def _unlink_favorites(self, user_field: str, object_id: ObjectId) -> None:
        with storage_errors("unlink_favorites", collection=USERS, field=user_field):
            await self.database[USERS].update_many(
                {user_field: object_id},
                {"$pull": {user_field: object_id}},
            )


class MongoUserRepository(MongoRepository):
    collection_name = USERS
    record_type = User

    async def create(self, email: str, password_hash: str, name: Optional[str] = None) -> User:
        now = utcnow()
        document = {
            "email": email.lower(),
            "password_hash": password_hash,
            "name": name,
            "favorite_author_ids": [],
            "favorite_book_ids": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            return await self._insert(document)
        except DuplicateKeyError as e:
            raise UniqueConstraintError("email", ErrorMessages.EMAIL_ALREADY_EXISTS) from e

    async def find_by_email(self, email: str) -> Optional[User]:
        with storage_errors("find_by_email", collection=self.collection_name):
            document = await self.collection.find_one({"email": email.lower()})
        return self._to_record(document)


class MongoAuthorRepository(MongoRepository):
    collection_name = AUTHORS
    record_type = Author

    async def create(self, data: Dict[str, Any], created_by_id: str) -> Author:
        now = utcnow()
        document = to_document_fields(data)
        document.update({
            "created_by_id": as_object_id(created_by_id),
            "favorited_by_ids": [],
            "created_at": now,
            "updated_at": now,
        })
        return await self._insert(document)

    async def update(self, author_id: str, data: Dict[str, Any]) -> Author:
        return await self._update(author_id, data, ErrorMessages.AUTHOR_NOT_FOUND)

    async def delete(self, author_id: str) -> None:
        """
        Delete an author and drop it from every user's favorites.

        Raises:
            ReferentialIntegrityError: While any book references the author
        """
        object_id = as_object_id(author_id)
        with storage_errors("delete", collection=self.collection_name, record_id=author_id):
            referencing = await self.database[BOOKS].count_documents({"author_ids": object_id}, limit=1)
            if referencing:
                raise ReferentialIntegrityError("books.author_ids", ErrorMessages.CANNOT_DELETE_AUTHOR_WITH_BOOKS)
            await self.collection.delete_one({"_id": object_id})
        await self._unlink_favorites("favorite_author_ids", object_id)


class MongoBookRepository(MongoRepository):
    collection_name = BOOKS
    record_type = Book

    async def create(self, data: Dict[str, Any], created_by_id: str) -> Book:
        now = utcnow()
        document = to_document_fields(data)
        document.update({
            "created_by_id": as_object_id(created_by_id),
            "favorited_by_ids": [],
            "created_at": now,
            "updated_at": now,
        })
        try:
            return await self._insert(document)
        except DuplicateKeyError as e:
            raise UniqueConstraintError("isbn", ErrorMessages.ISBN_ALREADY_EXISTS) from e

    async def find_by_isbn(self, isbn: str) -> Optional[Book]:
        with storage_errors("find_by_isbn", collection=self.collection_name):
            document = await self.collection.find_one({"isbn": isbn})
        return self._to_record(document)

    async def update(self, book_id: str, data: Dict[str, Any]) -> Book:
        try:
            return await self._update(book_id, data, ErrorMessages.BOOK_NOT_FOUND)
        except DuplicateKeyError as e:
            raise UniqueConstraintError("isbn", ErrorMessages.ISBN_ALREADY_EXISTS) from e

    async def delete(self, book_id: str) -> None:
        object_id = as_object_id(book_id)
        with storage_errors("delete", collection=self.collection_name, record_id=book_id):
            await self.collection.delete_one({"_id": object_id})
        await self._unlink_favorites("favorite_book_ids", object_id)


USER_FAVORITE_FIELDS = {
    ResourceKind.AUTHOR: "favorite_author_ids",
    ResourceKind.BOOK: "favorite_book_ids",
}
RESOURCE_COLLECTIONS = {
    ResourceKind.AUTHOR: AUTHORS,
    ResourceKind.BOOK: BOOKS,
}


class MongoFavoriteRepository:
    """
    Favorite edges stored on both ends.

    The user document is the source of truth; each transition is a single
    conditional update on it, so concurrent adds or removes of the same edge
    resolve to exactly one winner. The resource's favorited_by_ids is kept
    in step afterwards.
    """

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.users = database[USERS]

    async def _transition(self, user_id: str, kind: ResourceKind, resource_id: str, adding: bool) -> bool:
        user_oid, resource_oid = as_object_id(user_id), as_object_id(resource_id)
        if user_oid is None or resource_oid is None:
            return False

        field_name = USER_FAVORITE_FIELDS[kind]
        if adding:
            guard = {"_id": user_oid, field_name: {"$ne": resource_oid}}
            user_change = {"$addToSet": {field_name: resource_oid}, "$set": {"updated_at": utcnow()}}
            resource_change = {"$addToSet": {"favorited_by_ids": user_oid}}
        else:
            guard = {"_id": user_oid, field_name: resource_oid}
            user_change = {"$pull": {field_name: resource_oid}, "$set": {"updated_at": utcnow()}}
            resource_change = {"$pull": {"favorited_by_ids": user_oid}}

        with storage_errors("favorite_transition", kind=kind.value, adding=adding):
            result = await self.users.update_one(guard, user_change)
            if result.modified_count == 0:
                return False
            await self.database[RESOURCE_COLLECTIONS[kind]].update_one({"_id": resource_oid}, resource_change)
        return True

    async def add(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        return await self._transition(user_id, kind, resource_id, adding=True)

    async def remove(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        return await self._transition(user_id, kind, resource_id, adding=False)

    async def exists(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        user_oid, resource_oid = as_object_id(user_id), as_object_id(resource_id)
        if user_oid is None or resource_oid is None:
            return False
        with storage_errors("favorite_exists", kind=kind.value):
            found = await self.users.count_documents(
                {"_id": user_oid, USER_FAVORITE_FIELDS[kind]: resource_oid}, limit=1
            )
        return found > 0

    async def favorite_ids(self, user_id: str, kind: ResourceKind) -> Optional[List[str]]:
        user_oid = as_object_id(user_id)
        if user_oid is None:
            return None
        field_name = USER_FAVORITE_FIELDS[kind]
        with storage_errors("favorite_ids", kind=kind.value):
            document = await self.users.find_one({"_id": user_oid}, {field_name: 1})
        if document is None:
            return None
        return [str(item) for item in document.get(field_name, [])]
