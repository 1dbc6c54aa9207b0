"""
Ownership policy for Authors and Books.

Single-resource access looks the record up without scoping it to the caller,
then checks ownership, so "does not exist" (NOT_FOUND) and "exists but is not
yours" (FORBIDDEN) stay distinguishable. Lists are scoped in the query
instead and never report FORBIDDEN.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import structlog

from catalog.errors import CatalogError, ErrorMessages
from catalog.models import AuthContext

logger = structlog.get_logger(__name__)

OWNER_FIELD = "created_by_id"

R = TypeVar("R")


class OwnershipPolicy:
    """Decides who may read, mutate or delete a resource instance."""

    async def load_owned(
        self,
        finder: Callable[[str], Awaitable[Optional[R]]],
        resource_id: str,
        ctx: AuthContext,
        not_found_message: str = ErrorMessages.resource_not_found(),
    ) -> R:
        """
        Fetch a resource and require that the caller created it.

        Raises:
            CatalogError: NOT_FOUND if absent, FORBIDDEN if owned by someone else
        """
        resource = await finder(resource_id)
        if resource is None:
            raise CatalogError.not_found(not_found_message, resource_id=resource_id)
        self.ensure_owner(resource, ctx)
        return resource

    def ensure_owner(self, resource: Any, ctx: AuthContext) -> None:
        if not self.is_owner(resource, ctx):
            logger.info(
                "Ownership check denied",
                resource_id=getattr(resource, "id", None),
                user_id=ctx.user_id,
            )
            raise CatalogError.forbidden(ErrorMessages.UNAUTHORIZED_ACTION)

    def is_owner(self, resource: Any, ctx: AuthContext) -> bool:
        return getattr(resource, OWNER_FIELD) == ctx.user_id

    def strip_owner(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Drop any client-supplied owner; creation always records the caller."""
        return {key: value for key, value in data.items() if key not in (OWNER_FIELD, "createdById")}

    def list_scope(self, ctx: AuthContext) -> Dict[str, Any]:
        """Hard filter applied to every list query."""
        return {OWNER_FIELD: ctx.user_id}
