"""Unit tests for password hashing and session tokens."""

import uuid
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from src.config import settings
from src.domains.users.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from src.shared.errors import AuthenticationError


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Str0ng!Pass")

        assert hashed != "Str0ng!Pass"
        assert verify_password("Str0ng!Pass", hashed)
        assert not verify_password("wrong", hashed)


class TestTokens:
    def test_round_trip(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id)) == user_id

    def test_claims(self):
        user_id = uuid.uuid4()
        issued = datetime.now(UTC).replace(microsecond=0)
        token = create_access_token(user_id, now=issued)

        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert payload["userId"] == str(user_id)
        assert payload["exp"] - payload["iat"] == 24 * 3600

    def test_expired(self):
        token = create_access_token(uuid.uuid4(), now=datetime.now(UTC) - timedelta(hours=25))
        with pytest.raises(AuthenticationError, match="expired"):
            decode_access_token(token)

    def test_bad_signature(self):
        token = jwt.encode(
            {"userId": str(uuid.uuid4())}, "another-secret-with-32-plus-bytes!!", algorithm="HS256"
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_missing_user_claim(self):
        token = jwt.encode({"sub": "x"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token")
