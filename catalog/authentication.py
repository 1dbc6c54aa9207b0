"""
Authentication gate: resolves a bearer token to a live user identity.
"""

from typing import Optional

import structlog

from catalog.credentials import CredentialCodec
from catalog.errors import CatalogError, ErrorKind, ErrorMessages
from catalog.models import AuthContext
from catalog.repositories import UserRepository
from utilities.logger import mask_secret

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a ``Bearer <token>`` header, or None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthenticationGate:
    """Stateless bearer token verification."""

    def __init__(self, codec: CredentialCodec, users: UserRepository):
        self.codec = codec
        self.users = users

    async def authenticate(self, authorization: Optional[str]) -> AuthContext:
        """
        Resolve the Authorization header to the calling user.

        Args:
            authorization: Raw Authorization header value

        Returns:
            AuthContext for the caller

        Raises:
            CatalogError: UNAUTHENTICATED, TOKEN_INVALID or STALE_TOKEN
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise CatalogError(ErrorKind.UNAUTHENTICATED, ErrorMessages.UNAUTHENTICATED)

        payload = self.codec.verify_token(token)
        if payload is None:
            raise CatalogError(ErrorKind.TOKEN_INVALID, ErrorMessages.TOKEN_INVALID)

        user = await self.users.find_by_id(payload.subject_id)
        if user is None:
            logger.warning(
                "Token subject no longer exists",
                subject_id=payload.subject_id,
                token=mask_secret(token),
            )
            raise CatalogError(ErrorKind.STALE_TOKEN, ErrorMessages.USER_FOR_TOKEN_NOT_FOUND)

        return AuthContext.for_user(user)
