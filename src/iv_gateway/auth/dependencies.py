"""FastAPI dependencies: get_current_user and require_admin.

Every core operation receives the caller's id explicitly from these; no
handler reads identity from anywhere else.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.enums import UserRole
from src.iv_common.errors import AccountDisabledError, AdminRequiredError, InvalidCredentialsError
from src.iv_gateway.auth.jwt_handler import decode_token
from src.iv_gateway.user.db_models import ProfileModel, UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def resolve_user(token: str, db: AsyncSession) -> UserModel | None:
    """Map an access token to an active user; None for any bad token."""
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    return result.scalar_one_or_none()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Validate the Bearer token and return the UserModel (401 otherwise)."""
    user = await resolve_user(token, db)
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    if not user.is_active:
        raise AccountDisabledError()
    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    result = await db.execute(
        select(ProfileModel.role).where(ProfileModel.user_id == current_user.id)
    )
    role = result.scalar_one_or_none()
    if role != UserRole.ADMIN.value:
        raise AdminRequiredError()
    return current_user
