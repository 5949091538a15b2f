"""Price read endpoints: latest per scenario and history per instrument."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_pricing.application.service import get_price_service

router = APIRouter(tags=["prices"])


@router.get("/scenarios/{scenario_id}/prices")
async def latest_prices(
    scenario_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await get_price_service().latest_prices(db, scenario_id)
    return success_response(data, request)


@router.get("/instruments/{instrument_id}/prices")
async def price_history(
    instrument_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(100, ge=1, le=1000, description="Newest ticks to return"),
) -> ApiResponse:
    data = await get_price_service().history(db, instrument_id, limit)
    return success_response(data, request)
