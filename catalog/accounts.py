"""
Account registration, login and profile lookup.
"""

import asyncio

import structlog

from catalog.credentials import CredentialCodec
from catalog.errors import CatalogError, ErrorKind, ErrorMessages, UniqueConstraintError
from catalog.models import AuthContext, AuthResult, TokenPayload, User, UserOut, UserProfileOut
from catalog.repositories import UserRepository
from catalog.schemas import LoginUserBody, RegisterUserBody

logger = structlog.get_logger(__name__)


class AccountService:
    """Registers users and exchanges credentials for bearer tokens."""

    def __init__(self, users: UserRepository, codec: CredentialCodec):
        self.users = users
        self.codec = codec

    def _issue(self, user: User) -> AuthResult:
        token = self.codec.sign_token(TokenPayload(subject_id=user.id, email=user.email))
        return AuthResult(user=UserOut.from_user(user), token=token)

    async def register(self, body: RegisterUserBody) -> AuthResult:
        """
        Create an account and sign a token for it.

        Raises:
            CatalogError: CONFIGURATION_ERROR if tokens cannot be signed,
                CONFLICT if the email is already registered
        """
        if not self.codec.can_sign:
            logger.critical("Registration refused; JWT secret missing")
            raise CatalogError(ErrorKind.CONFIGURATION_ERROR, ErrorMessages.SIGNING_SECRET_MISSING)

        email = body.email.lower()
        if await self.users.find_by_email(email) is not None:
            raise CatalogError.conflict(ErrorMessages.EMAIL_ALREADY_EXISTS)

        # bcrypt runs off the event loop
        password_hash = await asyncio.to_thread(self.codec.hash_password, body.password)
        try:
            user = await self.users.create(email, password_hash, name=body.name)
        except UniqueConstraintError:
            raise CatalogError.conflict(ErrorMessages.EMAIL_ALREADY_EXISTS)

        logger.info("User registered", user_id=user.id)
        return self._issue(user)

    async def login(self, body: LoginUserBody) -> AuthResult:
        """
        Verify credentials and sign a token.

        Raises:
            CatalogError: UNAUTHENTICATED for an unknown email or wrong password
        """
        user = await self.users.find_by_email(body.email.lower())
        if user is None:
            raise CatalogError(ErrorKind.UNAUTHENTICATED, ErrorMessages.INVALID_CREDENTIALS)

        matches = await asyncio.to_thread(self.codec.verify_password, body.password, user.password_hash)
        if not matches:
            logger.info("Login rejected", user_id=user.id)
            raise CatalogError(ErrorKind.UNAUTHENTICATED, ErrorMessages.INVALID_CREDENTIALS)

        return self._issue(user)

    async def me(self, ctx: AuthContext) -> UserProfileOut:
        user = await self.users.find_by_id(ctx.user_id)
        if user is None:
            raise CatalogError.not_found(ErrorMessages.USER_FOR_TOKEN_NOT_FOUND)
        return UserProfileOut.from_user(user)
