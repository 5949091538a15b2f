"""JWT access/refresh tokens (HS256, shared JWT_SECRET).

Tokens carry {"sub": user_id, "type": "access"|"refresh", "iat", "exp"}.
There is no server-side revocation list: logout is client-side, and a
leaked refresh token stays valid until it expires.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.iv_common.errors import AppError, InvalidCredentialsError, InvalidRefreshTokenError


def _issue(user_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM))


def create_access_token(user_id: str) -> str:
    return _issue(user_id, "access", timedelta(minutes=settings.JWT_EXPIRE_MINUTES))


def create_refresh_token(user_id: str) -> str:
    return _issue(user_id, "refresh", timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a token of the expected type.

    Raises:
        InvalidCredentialsError: bad/expired token when expecting "access".
        InvalidRefreshTokenError: bad/expired token when expecting "refresh".
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],  # explicit list blocks alg confusion
        )
    except JWTError:
        raise _auth_error(expected_type) from None

    if payload.get("type") != expected_type:
        raise _auth_error(expected_type)
    return payload


def _auth_error(expected_type: str) -> AppError:
    if expected_type == "access":
        return InvalidCredentialsError()
    return InvalidRefreshTokenError()
