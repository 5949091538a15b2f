"""Portfolio endpoints: valuation snapshot and live per-position view."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_portfolio.application.service import PortfolioService

router = APIRouter(prefix="/scenarios", tags=["portfolio"])

_service = PortfolioService()


@router.get("/{scenario_id}/portfolio")
async def get_portfolio(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.valuate(db, scenario_id, str(current_user.id))
    return success_response(data, request)


@router.get("/{scenario_id}/portfolio/positions")
async def get_live_positions(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.live_positions(db, scenario_id, str(current_user.id))
    return success_response(data, request)
