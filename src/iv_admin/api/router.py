# src/iv_admin/api/router.py
"""Admin REST API. Every route requires the ADMIN role."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_admin.application.service import AdminService
from src.iv_common.database import get_db_session
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import require_admin
from src.iv_gateway.user.db_models import UserModel
from src.iv_scenario.application.schemas import (
    AddInstrumentRequest,
    CreateScenarioRequest,
    ExtendScenarioRequest,
    UpdateScenarioRequest,
)
from src.iv_scenario.domain.lifecycle import ScenarioAction

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()

Admin = Annotated[UserModel, Depends(require_admin)]
Db = Annotated[AsyncSession, Depends(get_db_session)]


@router.post("/scenarios", status_code=status.HTTP_201_CREATED)
async def create_scenario(
    request: Request, body: CreateScenarioRequest, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.create_scenario(body, str(admin.id), db)
    return success_response(data, request)


@router.post("/scenarios/test", status_code=status.HTTP_201_CREATED)
async def create_test_scenario(request: Request, admin: Admin, db: Db) -> ApiResponse:
    data = await _service.create_test_scenario(str(admin.id), db)
    return success_response(data, request)


@router.patch("/scenarios/{scenario_id}")
async def update_scenario(
    scenario_id: str, request: Request, body: UpdateScenarioRequest, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.update_scenario(scenario_id, body, db)
    return success_response(data, request)


@router.post("/scenarios/{scenario_id}/instruments", status_code=status.HTTP_201_CREATED)
async def add_instrument(
    scenario_id: str, request: Request, body: AddInstrumentRequest, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.add_instrument(scenario_id, body, db)
    return success_response(data, request)


@router.delete("/instruments/{instrument_id}")
async def remove_instrument(
    instrument_id: str, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.remove_instrument(instrument_id, db)
    return success_response(data, request)


@router.post("/scenarios/{scenario_id}/extend")
async def extend_scenario(
    scenario_id: str, request: Request, body: ExtendScenarioRequest, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.extend_scenario(scenario_id, body.end_at, db)
    return success_response(data, request)


@router.post("/scenarios/{scenario_id}/{action}")
async def transition_scenario(
    scenario_id: str, action: ScenarioAction, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    """schedule | start | close | archive"""
    data = await _service.transition(scenario_id, action, db)
    return success_response(data, request)


@router.get("/scenarios/{scenario_id}/stats")
async def scenario_stats(scenario_id: str, request: Request, admin: Admin, db: Db) -> ApiResponse:
    data = await _service.get_scenario_stats(scenario_id, db)
    return success_response(data, request)


@router.post("/instruments/{instrument_id}/tick")
async def simulate_tick(
    instrument_id: str, request: Request, admin: Admin, db: Db
) -> ApiResponse:
    data = await _service.simulate_tick(instrument_id, db)
    return success_response(data, request)
