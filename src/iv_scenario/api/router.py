"""Scenario endpoints for players.

GET  /scenarios                       list, newest first, cursor paginated
GET  /scenarios/{scenario_id}         detail with instruments
POST /scenarios/{scenario_id}/join    idempotent player initialization
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.enums import ScenarioStatus
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_scenario.application.service import ScenarioApplicationService
from src.iv_scenario.application.session import ScenarioSession

router = APIRouter(prefix="/scenarios", tags=["scenarios"])

_service = ScenarioApplicationService()
_session = ScenarioSession()


@router.get("")
async def list_scenarios(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: ScenarioStatus | None = Query(None, description="Filter by status"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Id of the last scenario seen"),
) -> ApiResponse:
    data = await _service.list_scenarios(
        db, status.value if status else None, cursor, limit
    )
    return success_response(data, request)


@router.get("/{scenario_id}")
async def get_scenario(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.get_scenario(db, scenario_id)
    return success_response(data, request)


@router.post("/{scenario_id}/join")
async def join_scenario(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _session.join(db, scenario_id, str(current_user.id))
    return success_response(data, request)
