"""
Author operations under the ownership policy.
"""

import structlog

from catalog.errors import CatalogError, ErrorMessages, ReferentialIntegrityError
from catalog.listing import ListingEngine
from catalog.models import AuthContext, AuthorOut, Page, ResourceKind
from catalog.ownership import OwnershipPolicy
from catalog.repositories import AuthorRepository, FavoriteRepository
from catalog.schemas import CreateAuthorBody, PaginationQuery, UpdateAuthorBody

logger = structlog.get_logger(__name__)


class AuthorService:
    """Create, read, list, update and delete authors owned by the caller."""

    def __init__(
        self,
        authors: AuthorRepository,
        favorites: FavoriteRepository,
        listing: ListingEngine,
        ownership: OwnershipPolicy,
    ):
        self.authors = authors
        self.favorites = favorites
        self.listing = listing
        self.ownership = ownership

    async def _load_owned(self, ctx: AuthContext, author_id: str):
        return await self.ownership.load_owned(
            self.authors.find_by_id, author_id, ctx, not_found_message=ErrorMessages.AUTHOR_NOT_FOUND
        )

    async def create(self, ctx: AuthContext, body: CreateAuthorBody) -> AuthorOut:
        author = await self.authors.create(self.ownership.strip_owner(body.provided()), ctx.user_id)
        logger.info("Author created", author_id=author.id, user_id=ctx.user_id)
        return AuthorOut.from_author(author, is_favorite=False)

    async def get(self, ctx: AuthContext, author_id: str) -> AuthorOut:
        """
        Fetch one author.

        Raises:
            CatalogError: NOT_FOUND if no such author, FORBIDDEN if the caller
            did not create it
        """
        author = await self._load_owned(ctx, author_id)
        is_favorite = await self.favorites.exists(ctx.user_id, ResourceKind.AUTHOR, author_id)
        return AuthorOut.from_author(author, is_favorite=is_favorite)

    async def list(self, ctx: AuthContext, query: PaginationQuery) -> Page:
        page = await self.listing.list(
            self.authors,
            ResourceKind.AUTHOR,
            query.page,
            query.limit,
            sort_by=query.sort_by,
            search=query.search,
            scope=self.ownership.list_scope(ctx),
        )
        favorite_ids = set(await self.favorites.favorite_ids(ctx.user_id, ResourceKind.AUTHOR) or [])
        items = [AuthorOut.from_author(author, is_favorite=author.id in favorite_ids) for author in page.items]
        return Page(items=items, meta=page.meta)

    async def update(self, ctx: AuthContext, author_id: str, body: UpdateAuthorBody) -> AuthorOut:
        await self._load_owned(ctx, author_id)
        author = await self.authors.update(author_id, self.ownership.strip_owner(body.provided()))
        logger.info("Author updated", author_id=author_id, fields=sorted(body.model_fields_set))
        is_favorite = await self.favorites.exists(ctx.user_id, ResourceKind.AUTHOR, author_id)
        return AuthorOut.from_author(author, is_favorite=is_favorite)

    async def delete(self, ctx: AuthContext, author_id: str) -> None:
        """
        Delete an author the caller owns.

        Raises:
            CatalogError: NOT_FOUND, FORBIDDEN, or CONFLICT while any book
            still references the author
        """
        await self._load_owned(ctx, author_id)
        try:
            await self.authors.delete(author_id)
        except ReferentialIntegrityError:
            logger.info("Author delete blocked by books", author_id=author_id)
            raise CatalogError.conflict(ErrorMessages.CANNOT_DELETE_AUTHOR_WITH_BOOKS, author_id=author_id)
        logger.info("Author deleted", author_id=author_id, user_id=ctx.user_id)
