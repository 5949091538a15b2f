"""User service: register, login, refresh, logout, current user, ensure profile.

Register writes users + profiles in the caller's transaction
(`async with db.begin()` in the router). ensure_profile commits itself.
"""

import logging

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.enums import UserRole
from src.iv_common.errors import (
    AccountDisabledError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.iv_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.iv_gateway.auth.password import hash_password, verify_password
from src.iv_gateway.user.db_models import ProfileModel, UserModel
from src.iv_gateway.user.schemas import CurrentUserResponse

logger = logging.getLogger(__name__)

_ENSURE_PROFILE_SQL = text("""
    INSERT INTO profiles (user_id, display_name, role)
    VALUES (:user_id, :display_name, :role)
    ON CONFLICT (user_id) DO NOTHING
""")


def to_current_user(user: UserModel, profile: ProfileModel | None) -> CurrentUserResponse:
    return CurrentUserResponse(
        id=str(user.id),
        username=user.username,
        display_name=profile.display_name if profile else user.username,
        role=profile.role if profile else UserRole.PLAYER.value,
    )


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def register(
        self,
        username: str,
        password: str,
        display_name: str | None,
        db: AsyncSession,
    ) -> tuple[UserModel, ProfileModel]:
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        user = UserModel(
            username=username,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # user.id without committing

        profile = ProfileModel(
            user_id=user.id,
            display_name=display_name or username,
            role=UserRole.PLAYER.value,
        )
        db.add(profile)
        await db.flush()
        logger.info("Registered user %s (%s)", username, user.id)
        return user, profile

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, ProfileModel | None, str, str]:
        """Return (user, profile, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        profile = await self.get_profile(user, db)
        return (
            user,
            profile,
            create_access_token(str(user.id)),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))

    async def logout(self, user: UserModel, refresh_token: str | None) -> None:
        """Tokens are stateless; validate the refresh token if one was sent."""
        if refresh_token is not None:
            decode_token(refresh_token, expected_type="refresh")
        logger.info("User %s signed out", user.id)

    async def get_profile(self, user: UserModel, db: AsyncSession) -> ProfileModel | None:
        result = await db.execute(select(ProfileModel).where(ProfileModel.user_id == user.id))
        return result.scalar_one_or_none()

    async def current_user(self, user: UserModel, db: AsyncSession) -> CurrentUserResponse:
        return to_current_user(user, await self.get_profile(user, db))

    async def ensure_profile(
        self, user: UserModel, display_name: str | None, db: AsyncSession
    ) -> CurrentUserResponse:
        """Create-or-fetch; an existing profile is returned unchanged."""
        try:
            await db.execute(
                _ENSURE_PROFILE_SQL,
                {
                    "user_id": str(user.id),
                    "display_name": display_name or user.username,
                    "role": UserRole.PLAYER.value,
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return await self.current_user(user, db)
