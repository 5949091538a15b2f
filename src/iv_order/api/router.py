"""Order endpoints.

POST /scenarios/{scenario_id}/orders    place; rejections come back with
                                        accepted=false and a reject_reason
GET  /scenarios/{scenario_id}/orders    caller's orders, newest first
GET  /scenarios/{scenario_id}/trades    caller's trades, newest first
POST /orders/{order_id}/cancel          cancel a resting order
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.iv_common.database import get_db_session
from src.iv_common.enums import OrderStatus
from src.iv_common.response import ApiResponse, success_response
from src.iv_gateway.auth.dependencies import get_current_user
from src.iv_gateway.user.db_models import UserModel
from src.iv_order.application.schemas import PlaceOrderRequest
from src.iv_order.application.service import OrderApplicationService

router = APIRouter(tags=["orders"])

_service = OrderApplicationService()


@router.post("/scenarios/{scenario_id}/orders")
async def place_order(
    scenario_id: str,
    body: PlaceOrderRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.place_order(db, scenario_id, str(current_user.id), body)
    resp = success_response(data, request)
    if not data.accepted:
        resp.message = "rejected"
    return resp


@router.get("/scenarios/{scenario_id}/orders")
async def list_orders(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: OrderStatus | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> ApiResponse:
    data = await _service.list_orders(
        db, scenario_id, str(current_user.id), status.value if status else None, limit, cursor
    )
    return success_response(data, request)


@router.get("/scenarios/{scenario_id}/trades")
async def list_trades(
    scenario_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(None, description="Pagination cursor (trade ID)"),
) -> ApiResponse:
    data = await _service.list_trades(db, scenario_id, str(current_user.id), limit, cursor)
    return success_response(data, request)


@router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.cancel_order(db, order_id, str(current_user.id))
    return success_response(data, request)
