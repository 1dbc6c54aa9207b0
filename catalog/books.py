"""
Book operations under the ownership policy.

Books reference one or more authors and carry a globally unique ISBN. Both
are checked before anything is written.
"""

from typing import Iterable, List, Optional, Set

import structlog

from catalog.errors import CatalogError, ErrorMessages, UniqueConstraintError
from catalog.listing import ListingEngine
from catalog.models import AuthContext, Book, BookAuthorOut, BookOut, Page, ResourceKind
from catalog.ownership import OwnershipPolicy
from catalog.repositories import AuthorRepository, BookRepository, FavoriteRepository
from catalog.schemas import BookListQuery, CreateBookBody, UpdateBookBody

logger = structlog.get_logger(__name__)


async def shape_books(
    authors: AuthorRepository,
    books: List[Book],
    favorite_ids: Optional[Set[str]] = None,
) -> List[BookOut]:
    """Resolve author names for a batch of books with a single lookup."""
    wanted = list(dict.fromkeys(author_id for book in books for author_id in book.author_ids))
    names = {author.id: author.name for author in await authors.find_by_ids(wanted)} if wanted else {}

    shaped = []
    for book in books:
        book_authors = [
            BookAuthorOut(id=author_id, name=names[author_id])
            for author_id in book.author_ids
            if author_id in names
        ]
        is_favorite = None if favorite_ids is None else book.id in favorite_ids
        shaped.append(BookOut.from_book(book, authors=book_authors, is_favorite=is_favorite))
    return shaped


class BookService:
    """Create, read, list, update and delete books owned by the caller."""

    def __init__(
        self,
        books: BookRepository,
        authors: AuthorRepository,
        favorites: FavoriteRepository,
        listing: ListingEngine,
        ownership: OwnershipPolicy,
    ):
        self.books = books
        self.authors = authors
        self.favorites = favorites
        self.listing = listing
        self.ownership = ownership

    async def _load_owned(self, ctx: AuthContext, book_id: str) -> Book:
        return await self.ownership.load_owned(
            self.books.find_by_id, book_id, ctx, not_found_message=ErrorMessages.BOOK_NOT_FOUND
        )

    async def _require_authors(self, author_ids: Iterable[str]) -> None:
        for author_id in author_ids:
            if await self.authors.find_by_id(author_id) is None:
                raise CatalogError.not_found(ErrorMessages.author_id_not_found(author_id), author_id=author_id)

    async def _require_free_isbn(self, isbn: Optional[str], book_id: Optional[str] = None) -> None:
        if not isbn:
            return
        existing = await self.books.find_by_isbn(isbn)
        if existing is not None and existing.id != book_id:
            raise CatalogError.conflict(ErrorMessages.ISBN_ALREADY_EXISTS, isbn=isbn)

    async def _shape_one(self, book: Book, is_favorite: Optional[bool] = None) -> BookOut:
        shaped = (await shape_books(self.authors, [book]))[0]
        shaped.is_favorite = is_favorite
        return shaped

    async def create(self, ctx: AuthContext, body: CreateBookBody) -> BookOut:
        """
        Create a book owned by the caller.

        Raises:
            CatalogError: NOT_FOUND naming the first unknown author id,
            CONFLICT if the ISBN is taken by any book
        """
        data = self.ownership.strip_owner(body.provided())
        data["author_ids"] = list(dict.fromkeys(body.author_ids))

        await self._require_authors(data["author_ids"])
        await self._require_free_isbn(body.isbn)

        try:
            book = await self.books.create(data, ctx.user_id)
        except UniqueConstraintError:
            raise CatalogError.conflict(ErrorMessages.ISBN_ALREADY_EXISTS, isbn=body.isbn)

        logger.info("Book created", book_id=book.id, user_id=ctx.user_id)
        return await self._shape_one(book, is_favorite=False)

    async def get(self, ctx: AuthContext, book_id: str) -> BookOut:
        book = await self._load_owned(ctx, book_id)
        is_favorite = await self.favorites.exists(ctx.user_id, ResourceKind.BOOK, book_id)
        return await self._shape_one(book, is_favorite=is_favorite)

    async def list(self, ctx: AuthContext, query: BookListQuery) -> Page:
        contains = {"author_ids": query.author_id} if query.author_id else None
        page = await self.listing.list(
            self.books,
            ResourceKind.BOOK,
            query.page,
            query.limit,
            sort_by=query.sort_by,
            search=query.search,
            scope=self.ownership.list_scope(ctx),
            contains=contains,
        )
        favorite_ids = set(await self.favorites.favorite_ids(ctx.user_id, ResourceKind.BOOK) or [])
        items = await shape_books(self.authors, page.items, favorite_ids)
        return Page(items=items, meta=page.meta)

    async def update(self, ctx: AuthContext, book_id: str, body: UpdateBookBody) -> BookOut:
        book = await self._load_owned(ctx, book_id)
        data = self.ownership.strip_owner(body.provided())

        if body.author_ids is not None:
            data["author_ids"] = list(dict.fromkeys(body.author_ids))
            await self._require_authors(data["author_ids"])
        if body.isbn and body.isbn != book.isbn:
            await self._require_free_isbn(body.isbn, book_id=book_id)

        try:
            updated = await self.books.update(book_id, data)
        except UniqueConstraintError:
            raise CatalogError.conflict(ErrorMessages.ISBN_ALREADY_EXISTS, isbn=body.isbn)

        logger.info("Book updated", book_id=book_id, fields=sorted(body.model_fields_set))
        is_favorite = await self.favorites.exists(ctx.user_id, ResourceKind.BOOK, book_id)
        return await self._shape_one(updated, is_favorite=is_favorite)

    async def delete(self, ctx: AuthContext, book_id: str) -> None:
        await self._load_owned(ctx, book_id)
        await self.books.delete(book_id)
        logger.info("Book deleted", book_id=book_id, user_id=ctx.user_id)
