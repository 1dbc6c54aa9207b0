"""
Password hashing and bearer token signing.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

import bcrypt
import jwt
import structlog

from catalog.errors import CatalogError, ErrorKind, ErrorMessages, FieldViolation
from catalog.models import TokenPayload
from utilities.config import AppConfig

logger = structlog.get_logger(__name__)

TOKEN_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class CredentialCodec:
    """Hashes and verifies passwords; signs and verifies bearer tokens."""

    def __init__(
        self,
        secret: Optional[str],
        token_lifetime: timedelta = timedelta(days=1),
        salt_rounds: int = 10,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._secret = secret
        self.token_lifetime = token_lifetime
        self.salt_rounds = salt_rounds
        self._clock = clock

    @property
    def can_sign(self) -> bool:
        """Whether a signing secret is configured."""
        return bool(self._secret)

    @classmethod
    def from_config(cls, settings: AppConfig) -> "CredentialCodec":
        return cls(
            secret=settings.jwt_secret,
            token_lifetime=settings.token_lifetime,
            salt_rounds=settings.bcrypt_salt_rounds,
        )

    def hash_password(self, plaintext: str) -> str:
        """
        Hash a password with a per-call salt.

        Args:
            plaintext: Password to hash

        Returns:
            bcrypt digest

        Raises:
            CatalogError: INVALID_INPUT if the password is empty
        """
        if not plaintext:
            raise CatalogError.invalid_input(
                [FieldViolation(field="body.password", message=ErrorMessages.EMPTY_PASSWORD, code="too_small")],
                message=ErrorMessages.EMPTY_PASSWORD,
            )
        digest = bcrypt.hashpw(_password_bytes(plaintext), bcrypt.gensalt(rounds=self.salt_rounds))
        return digest.decode("utf-8")

    def verify_password(self, plaintext: str, digest: str) -> bool:
        """Check a password against a digest; never raises."""
        if not plaintext or not digest:
            return False
        try:
            return bcrypt.checkpw(_password_bytes(plaintext), digest.encode("utf-8"))
        except ValueError:
            logger.warning("Malformed password digest")
            return False

    def sign_token(self, payload: TokenPayload) -> str:
        """
        Sign a time-limited bearer token.

        Raises:
            CatalogError: CONFIGURATION_ERROR if no signing secret is configured
        """
        if not self.can_sign:
            logger.critical("JWT secret missing; cannot sign token")
            raise CatalogError(ErrorKind.CONFIGURATION_ERROR, ErrorMessages.SIGNING_SECRET_MISSING)

        issued_at = self._clock()
        claims = {
            "sub": payload.subject_id,
            "email": payload.email,
            "iat": issued_at,
            "exp": issued_at + self.token_lifetime,
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify_token(self, token: Optional[str]) -> Optional[TokenPayload]:
        """
        Verify a bearer token.

        Returns:
            The token payload, or None if the token cannot be trusted for any
            reason (missing secret, empty, malformed, wrong signature, expired)
        """
        if not self._secret:
            logger.error("JWT secret missing; cannot verify token")
            return None
        if not token:
            return None

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired", error=str(e))
            return None
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token", error=str(e))
            return None

        subject_id = claims.get("sub")
        email = claims.get("email")
        if not isinstance(subject_id, str) or not isinstance(email, str):
            logger.warning("Token claims incomplete", claims=sorted(claims))
            return None
        return TokenPayload(subject_id=subject_id, email=email)
