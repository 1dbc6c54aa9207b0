"""
Favorites ledger: the user ⇄ resource "favorited" relation.

Membership per (user, resource) pair is a two-state machine, Absent and
Present. Add moves Absent to Present and Remove moves it back; Add on Present
and Remove on Absent are errors rather than no-ops.
"""

from typing import List

import structlog

from catalog.books import shape_books
from catalog.errors import CatalogError, ErrorKind, ErrorMessages
from catalog.listing import ListingEngine, empty_page
from catalog.models import AuthContext, AuthorOut, Page, ResourceKind
from catalog.ownership import OwnershipPolicy
from catalog.repositories import AuthorRepository, BookRepository, FavoriteRepository
from catalog.schemas import PaginationQuery

logger = structlog.get_logger(__name__)

_NOT_FOUND_MESSAGES = {
    ResourceKind.AUTHOR: ErrorMessages.AUTHOR_NOT_FOUND,
    ResourceKind.BOOK: ErrorMessages.BOOK_NOT_FOUND,
}


class FavoritesLedger:
    """Adds, removes and lists favorites with owner-only access."""

    def __init__(
        self,
        favorites: FavoriteRepository,
        authors: AuthorRepository,
        books: BookRepository,
        listing: ListingEngine,
        ownership: OwnershipPolicy,
    ):
        self.favorites = favorites
        self.authors = authors
        self.books = books
        self.listing = listing
        self.ownership = ownership

    def _repository(self, kind: ResourceKind):
        return self.authors if kind is ResourceKind.AUTHOR else self.books

    async def _favorite_ids_or_raise(self, user_id: str, kind: ResourceKind) -> List[str]:
        ids = await self.favorites.favorite_ids(user_id, kind)
        if ids is None:
            raise CatalogError.not_found(ErrorMessages.USER_NOT_FOUND, user_id=user_id)
        return ids

    async def _check_transition(self, ctx: AuthContext, kind: ResourceKind, resource_id: str) -> List[str]:
        """Existence then ownership checks shared by add and remove."""
        ids = await self._favorite_ids_or_raise(ctx.user_id, kind)
        await self.ownership.load_owned(
            self._repository(kind).find_by_id,
            resource_id,
            ctx,
            not_found_message=_NOT_FOUND_MESSAGES[kind],
        )
        return ids

    async def add(self, ctx: AuthContext, kind: ResourceKind, resource_id: str) -> None:
        """
        Mark a resource the caller owns as a favorite.

        Raises:
            CatalogError: NOT_FOUND, FORBIDDEN or ALREADY_FAVORITED
        """
        ids = await self._check_transition(ctx, kind, resource_id)
        already = CatalogError(ErrorKind.ALREADY_FAVORITED, ErrorMessages.already_in_favorites(kind.label))
        if resource_id in ids:
            raise already

        if not await self.favorites.add(ctx.user_id, kind, resource_id):
            # Lost a race with a concurrent add
            raise already
        logger.info("Favorite added", user_id=ctx.user_id, kind=kind.value, resource_id=resource_id)

    async def remove(self, ctx: AuthContext, kind: ResourceKind, resource_id: str) -> None:
        """
        Remove a resource from the caller's favorites.

        Raises:
            CatalogError: NOT_FOUND, FORBIDDEN or NOT_IN_FAVORITES
        """
        ids = await self._check_transition(ctx, kind, resource_id)
        absent = CatalogError(ErrorKind.NOT_IN_FAVORITES, ErrorMessages.not_in_favorites(kind.label))
        if resource_id not in ids:
            raise absent

        if not await self.favorites.remove(ctx.user_id, kind, resource_id):
            raise absent
        logger.info("Favorite removed", user_id=ctx.user_id, kind=kind.value, resource_id=resource_id)

    async def is_favorite(self, user_id: str, kind: ResourceKind, resource_id: str) -> bool:
        return await self.favorites.exists(user_id, kind, resource_id)

    async def list_favorites(self, ctx: AuthContext, kind: ResourceKind, query: PaginationQuery) -> Page:
        """
        List the caller's favorites of one resource type.

        An empty favorite set returns an empty page without touching the
        resource store.
        """
        ids = await self._favorite_ids_or_raise(ctx.user_id, kind)
        if not ids:
            return empty_page(query.page, query.limit)

        page = await self.listing.list(
            self._repository(kind),
            kind,
            query.page,
            query.limit,
            sort_by=query.sort_by,
            search=query.search,
            scope=self.ownership.list_scope(ctx),
            ids_in=ids,
        )

        if kind is ResourceKind.AUTHOR:
            items = [AuthorOut.from_author(author, is_favorite=True) for author in page.items]
        else:
            items = await shape_books(self.authors, page.items, set(ids))
        return Page(items=items, meta=page.meta)
