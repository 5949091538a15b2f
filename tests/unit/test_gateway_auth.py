"""Unit tests for JWT handling and password hashing."""

from unittest.mock import patch

import pytest
from jose import jwt

from config.settings import settings
from src.iv_common.errors import InvalidCredentialsError, InvalidRefreshTokenError
from src.iv_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.iv_gateway.auth.password import hash_password, verify_password


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("user-123")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"
    assert payload["exp"] > payload["iat"]


def test_decode_valid_refresh_token() -> None:
    token = create_refresh_token("user-abc")
    payload = decode_token(token, expected_type="refresh")
    assert payload["sub"] == "user-abc"


def test_access_token_used_as_refresh_raises_error() -> None:
    token = create_access_token("user-abc")
    with pytest.raises(InvalidRefreshTokenError):
        decode_token(token, expected_type="refresh")


def test_refresh_token_used_as_access_raises_error() -> None:
    token = create_refresh_token("user-abc")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_expired_access_token_raises_credentials_error() -> None:
    with patch.object(settings, "JWT_EXPIRE_MINUTES", -1):
        token = create_access_token("user-abc")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_token_signed_with_other_secret_is_rejected() -> None:
    forged = jwt.encode({"sub": "user-abc", "type": "access"}, "not-the-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(forged, expected_type="access")


def test_password_round_trip() -> None:
    hashed = hash_password("MySecret1")
    assert hashed != "MySecret1"
    assert verify_password("MySecret1", hashed) is True
    assert verify_password("WrongPass9", hashed) is False


def test_same_plain_produces_different_hashes() -> None:
    assert hash_password("MySecret1") != hash_password("MySecret1")
