"""
Unit tests for password hashing and access-token helpers.
"""
import uuid

import jwt
import pytest

from articles_api.config import settings
from articles_api.exceptions import UnauthorizedError
from articles_api.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_hash_and_verify_password():
    password_hash = hash_password("correct horse")
    assert password_hash != "correct horse"
    assert verify_password("correct horse", password_hash)
    assert not verify_password("wrong horse", password_hash)


def test_same_password_hashes_differently():
    assert hash_password("repeat") != hash_password("repeat")


def test_verify_against_malformed_hash_is_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_token_round_trip():
    user_id = uuid.uuid4()
    payload = decode_access_token(create_access_token(user_id, "t@example.com"))
    assert payload["sub"] == str(user_id)
    assert payload["email"] == "t@example.com"
    assert payload["exp"] - payload["iat"] == settings.JWT_EXPIRES_IN


def test_tampered_token_is_invalid():
    token = create_access_token(uuid.uuid4(), "t@example.com")
    head, body, signature = token.split(".")
    tampered = ".".join([head, body, signature[::-1]])
    with pytest.raises(UnauthorizedError) as exc_info:
        decode_access_token(tampered)
    assert exc_info.value.message == "Invalid token"


def test_token_without_exp_is_invalid():
    token = jwt.encode({"sub": str(uuid.uuid4())}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(UnauthorizedError):
        decode_access_token(token)
