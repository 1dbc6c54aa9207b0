"""
Tests for password hashing and token signing.
"""

from datetime import datetime, timedelta

import jwt
import pytest

from catalog.credentials import TOKEN_ALGORITHM, CredentialCodec
from catalog.errors import CatalogError, ErrorKind
from catalog.models import TokenPayload


@pytest.fixture
def payload():
    return TokenPayload(subject_id="0123456789abcdef01234567", email="a@x.com")


class TestPasswordHashing:
    """Test bcrypt hashing and verification."""

    def test_hash_and_verify(self, codec):
        digest = codec.hash_password("Passw0rd!")
        assert digest != "Passw0rd!"
        assert digest.startswith("$2")
        assert codec.verify_password("Passw0rd!", digest) is True
        assert codec.verify_password("wrong", digest) is False

    def test_hash_is_salted(self, codec):
        assert codec.hash_password("Passw0rd!") != codec.hash_password("Passw0rd!")

    def test_empty_password_rejected(self, codec):
        with pytest.raises(CatalogError) as exc_info:
            codec.hash_password("")
        assert exc_info.value.kind is ErrorKind.INVALID_INPUT
        assert exc_info.value.violations[0].field == "body.password"

    def test_work_factor_from_config(self, codec):
        digest = codec.hash_password("Passw0rd!")
        assert digest.split("$")[2] == "04"

    @pytest.mark.parametrize("plaintext,digest", [
        ("", "$2b$04$abcdefghijklmnopqrstuu"),
        ("Passw0rd!", ""),
        ("Passw0rd!", "not-a-bcrypt-digest"),
    ])
    def test_verify_never_raises(self, codec, plaintext, digest):
        assert codec.verify_password(plaintext, digest) is False


class TestTokens:
    """Test bearer token signing and verification."""

    def test_round_trip(self, codec, payload):
        token = codec.sign_token(payload)
        assert codec.verify_token(token) == payload

    def test_claims(self, codec, payload, settings):
        claims = jwt.decode(codec.sign_token(payload), settings.jwt_secret, algorithms=[TOKEN_ALGORITHM])
        assert claims["sub"] == payload.subject_id
        assert claims["email"] == payload.email
        assert claims["exp"] - claims["iat"] == int(timedelta(days=1).total_seconds())

    def test_sign_without_secret(self, payload):
        codec = CredentialCodec(secret=None)
        with pytest.raises(CatalogError) as exc_info:
            codec.sign_token(payload)
        assert exc_info.value.kind is ErrorKind.CONFIGURATION_ERROR

    def test_can_sign(self, codec):
        assert codec.can_sign is True
        assert CredentialCodec(secret=None).can_sign is False
        assert CredentialCodec(secret="").can_sign is False

    def test_verify_without_secret(self, codec, payload):
        token = codec.sign_token(payload)
        assert CredentialCodec(secret=None).verify_token(token) is None

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_verify_garbage(self, codec, token):
        assert codec.verify_token(token) is None

    def test_verify_expired(self, settings, payload):
        issued_long_ago = CredentialCodec(
            secret=settings.jwt_secret,
            token_lifetime=timedelta(hours=1),
            clock=lambda: datetime.utcnow() - timedelta(days=2),
        )
        token = issued_long_ago.sign_token(payload)
        assert CredentialCodec.from_config(settings).verify_token(token) is None

    def test_verify_wrong_signature(self, codec, payload):
        forged = CredentialCodec(secret="some-other-secret").sign_token(payload)
        assert codec.verify_token(forged) is None

    def test_verify_missing_subject(self, codec, settings):
        token = jwt.encode(
            {"email": "a@x.com", "exp": datetime.utcnow() + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=TOKEN_ALGORITHM,
        )
        assert codec.verify_token(token) is None
