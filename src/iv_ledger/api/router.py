"""Per-player ledger endpoints. The caller only ever sees their own rows."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/scenarios", tags=["ledger"])

_service = LedgerApplicationService()


@router.get("/{scenario_id}/player-state")
async def get_player_state(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.get_player_state(db, scenario_id, str(current_user.id))
    return success_response(data, request)


@router.get("/{scenario_id}/positions")
async def list_positions(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.list_positions(db, scenario_id, str(current_user.id))
    return success_response(data, request)


@router.get("/{scenario_id}/ledger")
async def list_ledger(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(
        db, scenario_id, str(current_user.id), cursor, limit, entry_type
    )
    return success_response(data, request)


@router.get("/{scenario_id}/instruments/{instrument_id}/limits")
async def trading_limits(
    scenario_id: str,
    instrument_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.trading_limits(db, scenario_id, str(current_user.id), instrument_id)
    return success_response(data, request)
