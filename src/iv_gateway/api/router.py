"""Auth API router: register, login, refresh, logout, me, profile.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.iv_common.database import get_db_session
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    ProfileRequest,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
)
from src.iv_gateway.user.service import UserService, to_current_user

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="User registration")
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        user, profile = await _service.register(
            body.username, body.password, body.display_name, db
        )

    data = RegisterResponse(
        user_id=str(user.id),
        username=user.username,
        display_name=profile.display_name,
        created_at=user.created_at.isoformat(),
    )
    resp = success_response(data, request)
    resp.message = "User registered successfully"
    return resp


@router.post("/login", summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, profile, access_token, refresh_token = await _service.login(
        body.username, body.password, db
    )
    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=to_current_user(user, profile),
    )
    resp = success_response(data, request)
    resp.message = "Login successful"
    return resp


@router.post("/refresh", summary="Refresh access token")
async def refresh_token(request: Request, body: RefreshRequest) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token)
    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = success_response(data, request)
    resp.message = "Token refreshed"
    return resp


@router.post("/logout", summary="Sign out")
async def logout(
    request: Request,
    body: LogoutRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> ApiResponse:
    await _service.logout(current_user, body.refresh_token)
    resp = success_response(None, request)
    resp.message = "Signed out"
    return resp


@router.get("/me", summary="Current user")
async def me(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.current_user(current_user, db)
    return success_response(data, request)


@router.post("/profile", summary="Create-or-fetch the caller's profile")
async def ensure_profile(
    request: Request,
    body: ProfileRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.ensure_profile(current_user, body.display_name, db)
    return success_response(data, request)
