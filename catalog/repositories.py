"""
Repository protocols consumed by the catalog core.

The core depends on these structural interfaces only; storage/ provides the
MongoDB implementation and the test suite provides in-memory doubles.
"""

from typing import Any, Dict, List, Optional, Protocol

from catalog.models import Author, Book, ListingQuery, ResourceKind, User


class UserRepository(Protocol):

    async def create(self, email: str, password_hash: str, name: Optional[str] = None) -> User: ...

    async def find_by_id(self, user_id: str) -> Optional[User]: ...

    async def find_by_email(self, email: str) -> Optional[User]: ...


class AuthorRepository(Protocol):

    async def create(self, data: Dict[str, Any], created_by_id: str) -> Author: ...

    async def find_by_id(self, author_id: str) -> Optional[Author]: ...

    async def find_by_ids(self, author_ids: List[str]) -> List[Author]: ...

    async def find_many(self, query: ListingQuery) -> List[Author]: ...

    async def count(self, query: ListingQuery) -> int: ...

    async def update(self, author_id: str, data: Dict[str, Any]) -> Author: ...

    async def delete(self, author_id: str) -> None:
        """Raises ReferentialIntegrityError while any book references the author."""
        ...


class BookRepository(Protocol):

    async def create(self, data: Dict[str, Any], created_by_id: str) -> Book:
        """Raises UniqueConstraintError on a duplicate ISBN."""
        ...

    async def find_by_id(self, book_id: str) -> Optional[Book]: ...

    async def find_by_isbn(self, isbn: str) -> Optional[Book]: ...

    async def find_many(self, query: ListingQuery) -> List[Book]: ...

    async def count(self, query: ListingQuery) -> int: ...

    async def update(self, book_id: str, data: Dict[str, Any]) -> Book: ...

    async def delete(self, book_id: str) -> None: ...


class FavoriteRepository(Protocol):
    """Favorite edges between users and resources."""

    async def add(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        """Atomically add the edge; False when it was already present."""
        ...

    async def remove(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        """Atomically drop the edge; False when it was absent."""
        ...

    async def exists(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool: ...

    async def favorite_ids(self, user_id: str, kind: ResourceKind) -> Optional[List[str]]:
        """The user's favorite id set, or None if the user does not exist."""
        ...
