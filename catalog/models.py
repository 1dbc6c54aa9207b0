"""
Domain records and value objects shared by the catalog core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.utcnow()


class ResourceKind(str, Enum):
    """Resource types subject to ownership rules."""
    AUTHOR = "author"
    BOOK = "book"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class User(BaseModel):
    """Registered account."""
    id: str
    email: str
    password_hash: str
    name: Optional[str] = None
    favorite_author_ids: List[str] = Field(default_factory=list)
    favorite_book_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def favorite_ids(self, kind: ResourceKind) -> List[str]:
        if kind is ResourceKind.AUTHOR:
            return self.favorite_author_ids
        return self.favorite_book_ids


class Author(BaseModel):
    """Author owned by the user who created it."""
    id: str
    name: str
    bio: Optional[str] = None
    created_by_id: str
    favorited_by_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Book(BaseModel):
    """Book owned by the user who created it."""
    id: str
    title: str
    isbn: Optional[str] = None
    published_date: Optional[datetime] = None
    created_by_id: str
    author_ids: List[str] = Field(default_factory=list)
    favorited_by_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by a bearer token."""
    subject_id: str
    email: str


@dataclass(frozen=True)
class AuthContext:
    """Resolved identity of the caller, passed explicitly to every operation."""
    user_id: str
    email: str
    user: User = field(compare=False, repr=False)

    @classmethod
    def for_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, email=user.email, user=user)


@dataclass(frozen=True)
class ListingQuery:
    """
    Storage-neutral description of a list query.

    Repositories translate it into their own query language; the listing
    engine is the only producer.
    """
    scope: Dict[str, Any] = field(default_factory=dict)
    ids_in: Optional[Tuple[str, ...]] = None
    contains: Dict[str, Any] = field(default_factory=dict)
    search: Optional[str] = None
    search_fields: Tuple[str, ...] = ()
    sort: Tuple[Tuple[str, SortDirection], ...] = ()
    skip: int = 0
    limit: int = 0


T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for output models rendered with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PageMeta(CamelModel):
    """Pagination metadata returned with every list."""
    total_items: int = Field(..., description="Number of records matching the filter")
    item_count: int = Field(..., description="Number of records on this page")
    items_per_page: int = Field(..., description="Requested page size")
    total_pages: int = Field(..., description="Total number of pages")
    current_page: int = Field(..., description="Current page number")


class Page(BaseModel, Generic[T]):
    """One page of results plus metadata."""
    items: List[T]
    meta: PageMeta


class UserOut(CamelModel):
    """Public view of an account; never carries the password hash."""
    id: str
    email: str
    name: str = ""
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name or "",
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserProfileOut(UserOut):
    favorite_author_ids: List[str] = Field(default_factory=list)
    favorite_book_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user: User) -> "UserProfileOut":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name or "",
            created_at=user.created_at,
            updated_at=user.updated_at,
            favorite_author_ids=list(user.favorite_author_ids),
            favorite_book_ids=list(user.favorite_book_ids),
        )


class AuthResult(CamelModel):
    user: UserOut
    token: str


class AuthorOut(CamelModel):
    """Author as returned to its owner."""
    id: str
    name: str
    bio: Optional[str] = None
    created_by_id: str
    created_at: datetime
    updated_at: datetime
    is_favorite: Optional[bool] = None

    @classmethod
    def from_author(cls, author: Author, is_favorite: Optional[bool] = None) -> "AuthorOut":
        return cls(
            id=author.id,
            name=author.name,
            bio=author.bio,
            created_by_id=author.created_by_id,
            created_at=author.created_at,
            updated_at=author.updated_at,
            is_favorite=is_favorite,
        )


class BookAuthorOut(CamelModel):
    id: str
    name: str


class BookOut(CamelModel):
    """Book as returned to its owner, with its authors' names resolved."""
    id: str
    title: str
    isbn: Optional[str] = None
    published_date: Optional[datetime] = None
    created_by_id: str
    created_at: datetime
    updated_at: datetime
    authors: List[BookAuthorOut] = Field(default_factory=list)
    is_favorite: Optional[bool] = None

    @classmethod
    def from_book(
        cls,
        book: Book,
        authors: List[BookAuthorOut],
        is_favorite: Optional[bool] = None,
    ) -> "BookOut":
        return cls(
            id=book.id,
            title=book.title,
            isbn=book.isbn,
            published_date=book.published_date,
            created_by_id=book.created_by_id,
            created_at=book.created_at,
            updated_at=book.updated_at,
            authors=authors,
            is_favorite=is_favorite,
        )
