"""
Tests for book operations.
"""

from datetime import datetime

import pytest
import pytest_asyncio

from catalog.books import shape_books
from catalog.errors import CatalogError, ErrorKind, ErrorMessages
from catalog.models import ResourceKind
from catalog.schemas import BookListQuery, CreateBookBody, UpdateBookBody

MISSING_ID = "ffffffffffffffffffffffff"


@pytest.fixture
def book_service(services):
    return services.books


@pytest_asyncio.fixture
async def orwell(authors, owner):
    return await authors.create({"name": "George Orwell"}, owner.user_id)


@pytest_asyncio.fixture
async def huxley(authors, owner):
    return await authors.create({"name": "Aldous Huxley"}, owner.user_id)


def book_body(author_ids, title="Nineteen Eighty-Four", **fields):
    return CreateBookBody(title=title, author_ids=author_ids, **fields)


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_resolves_authors(self, book_service, owner, orwell):
        book = await book_service.create(
            owner, book_body([orwell.id], isbn="9780451524935", published_date=datetime(1949, 6, 8))
        )
        assert book.created_by_id == owner.user_id
        assert book.isbn == "9780451524935"
        assert [(a.id, a.name) for a in book.authors] == [(orwell.id, "George Orwell")]
        assert book.is_favorite is False

    @pytest.mark.asyncio
    async def test_unknown_author_aborts_before_write(self, book_service, store, owner, orwell):
        with pytest.raises(CatalogError) as exc_info:
            await book_service.create(owner, book_body([orwell.id, MISSING_ID]))
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == ErrorMessages.author_id_not_found(MISSING_ID)
        assert store.books == {}

    @pytest.mark.asyncio
    async def test_duplicate_isbn_across_users(self, book_service, authors, owner, stranger, orwell):
        await book_service.create(owner, book_body([orwell.id], isbn="9780451524935"))
        their_author = await authors.create({"name": "Someone"}, stranger.user_id)

        with pytest.raises(CatalogError) as exc_info:
            await book_service.create(stranger, book_body([their_author.id], isbn="9780451524935"))
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.message == ErrorMessages.ISBN_ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_books_without_isbn_do_not_collide(self, book_service, owner, orwell):
        await book_service.create(owner, book_body([orwell.id], title="Animal Farm"))
        second = await book_service.create(owner, book_body([orwell.id], title="Burmese Days"))
        assert second.isbn is None

    @pytest.mark.asyncio
    async def test_duplicate_author_ids_collapse(self, book_service, owner, orwell):
        book = await book_service.create(owner, book_body([orwell.id, orwell.id]))
        assert [a.id for a in book.authors] == [orwell.id]


class TestGetAndList:

    @pytest.mark.asyncio
    async def test_get_as_stranger(self, book_service, owner, stranger, orwell):
        book = await book_service.create(owner, book_body([orwell.id]))
        with pytest.raises(CatalogError) as exc_info:
            await book_service.get(stranger, book.id)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    @pytest.mark.asyncio
    async def test_get_missing(self, book_service, owner):
        with pytest.raises(CatalogError) as exc_info:
            await book_service.get(owner, MISSING_ID)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == ErrorMessages.BOOK_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_filters_by_author(self, book_service, owner, orwell, huxley):
        await book_service.create(owner, book_body([orwell.id], title="Animal Farm"))
        await book_service.create(owner, book_body([huxley.id], title="Brave New World"))
        await book_service.create(owner, book_body([orwell.id, huxley.id], title="Anthology"))

        page = await book_service.list(owner, BookListQuery(page=1, limit=10, author_id=orwell.id, sort_by="title:asc"))
        assert [book.title for book in page.items] == ["Animal Farm", "Anthology"]
        assert page.meta.total_items == 2

    @pytest.mark.asyncio
    async def test_list_search_matches_isbn(self, book_service, owner, orwell):
        await book_service.create(owner, book_body([orwell.id], title="Animal Farm", isbn="9780451526342"))
        await book_service.create(owner, book_body([orwell.id], title="Burmese Days"))

        page = await book_service.list(owner, BookListQuery(page=1, limit=10, search="0451526"))
        assert [book.title for book in page.items] == ["Animal Farm"]

    @pytest.mark.asyncio
    async def test_list_marks_favorites(self, book_service, favorites, owner, orwell):
        liked = await book_service.create(owner, book_body([orwell.id], title="Animal Farm"))
        await book_service.create(owner, book_body([orwell.id], title="Burmese Days"))
        await favorites.add(owner.user_id, ResourceKind.BOOK, liked.id)

        page = await book_service.list(owner, BookListQuery(page=1, limit=10, sort_by="title:asc"))
        assert [book.is_favorite for book in page.items] == [True, False]


class TestUpdateAndDelete:

    @pytest.mark.asyncio
    async def test_update_isbn_to_own_value(self, book_service, owner, orwell):
        book = await book_service.create(owner, book_body([orwell.id], isbn="9780451524935"))
        updated = await book_service.update(owner, book.id, UpdateBookBody(isbn="9780451524935", title="1984"))
        assert updated.title == "1984"

    @pytest.mark.asyncio
    async def test_update_isbn_taken(self, book_service, owner, orwell):
        await book_service.create(owner, book_body([orwell.id], title="Animal Farm", isbn="9780451526342"))
        book = await book_service.create(owner, book_body([orwell.id], isbn="9780451524935"))
        with pytest.raises(CatalogError) as exc_info:
            await book_service.update(owner, book.id, UpdateBookBody(isbn="9780451526342"))
        assert exc_info.value.kind is ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_update_replaces_authors(self, book_service, owner, orwell, huxley):
        book = await book_service.create(owner, book_body([orwell.id]))
        updated = await book_service.update(owner, book.id, UpdateBookBody(author_ids=[huxley.id]))
        assert [a.name for a in updated.authors] == ["Aldous Huxley"]

    @pytest.mark.asyncio
    async def test_update_unknown_author(self, book_service, owner, orwell):
        book = await book_service.create(owner, book_body([orwell.id]))
        with pytest.raises(CatalogError) as exc_info:
            await book_service.update(owner, book.id, UpdateBookBody(author_ids=[MISSING_ID]))
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_frees_author(self, book_service, services, owner, orwell):
        book = await book_service.create(owner, book_body([orwell.id]))
        await book_service.delete(owner, book.id)
        await services.authors.delete(owner, orwell.id)

    @pytest.mark.asyncio
    async def test_delete_as_stranger(self, book_service, owner, stranger, orwell):
        book = await book_service.create(owner, book_body([orwell.id]))
        with pytest.raises(CatalogError) as exc_info:
            await book_service.delete(stranger, book.id)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN


class TestShapeBooks:

    @pytest.mark.asyncio
    async def test_single_author_lookup_for_batch(self, authors, books, owner, orwell, huxley):
        first = await books.create({"title": "A", "author_ids": [orwell.id]}, owner.user_id)
        second = await books.create({"title": "B", "author_ids": [huxley.id, orwell.id]}, owner.user_id)

        shaped = await shape_books(authors, [first, second], {second.id})
        assert authors.find_by_ids_calls == 1
        assert [a.name for a in shaped[1].authors] == ["Aldous Huxley", "George Orwell"]
        assert [book.is_favorite for book in shaped] == [False, True]

    @pytest.mark.asyncio
    async def test_empty_batch(self, authors):
        assert await shape_books(authors, []) == []
        assert authors.find_by_ids_calls == 0
