"""WebSocket change feed for one scenario.

    ws://.../api/v1/ws/scenarios/{scenario_id}?token=<access token>

Streams the scenario's price ticks and the caller's own trades as JSON.
Subscriptions are cancelled as soon as the socket goes away. A slow client
loses the oldest queued events rather than growing the queue without
bound.
"""

import asyncio
import logging
from collections.abc import Callable

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from config.settings import settings
from src.iv_common.database import async_session_factory
from src.iv_gateway.auth.dependencies import resolve_user
from src.iv_realtime.bus import get_event_bus
from src.iv_realtime.events import Event, Topic
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

_scenario_repo = ScenarioRepository()


def bounded_enqueue(queue: "asyncio.Queue[Event]") -> Callable[[Event], None]:
    """Callback that drops the oldest event when the queue is full."""

    def _enqueue(event: Event) -> None:
        if queue.full():
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        queue.put_nowait(event)

    return _enqueue


async def _send_events(websocket: WebSocket, queue: "asyncio.Queue[Event]") -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event.to_payload())


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()  # clients do not send anything meaningful
    except WebSocketDisconnect:
        return


@router.websocket("/ws/scenarios/{scenario_id}")
async def scenario_stream(
    websocket: WebSocket,
    scenario_id: str,
    token: str = Query(..., description="Access token"),
) -> None:
    async with async_session_factory() as db:
        user = await resolve_user(token, db)
        scenario = await _scenario_repo.get_scenario(db, scenario_id) if user else None

    if user is None or not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if scenario is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="unknown scenario")
        return

    await websocket.accept()
    user_id = str(user.id)
    queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=settings.REALTIME_QUEUE_SIZE)
    enqueue = bounded_enqueue(queue)
    bus = get_event_bus()
    subscriptions = [
        bus.subscribe(Topic.scenario_prices(scenario_id), enqueue),
        bus.subscribe(Topic.user_trades(scenario_id, user_id), enqueue),
    ]
    logger.info("Stream opened: scenario=%s user=%s", scenario_id, user_id)

    sender = asyncio.create_task(_send_events(websocket, queue))
    watcher = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        done, pending = await asyncio.wait({sender, watcher}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.info("Stream for %s ended: %r", user_id, task.exception())
    finally:
        for sub in subscriptions:
            sub.cancel()
        sender.cancel()
        watcher.cancel()
        logger.info("Stream closed: scenario=%s user=%s", scenario_id, user_id)
