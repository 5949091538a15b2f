"""Background ticker: advances every instrument of every LIVE scenario.

Started from the app lifespan when PRICE_TICK_INTERVAL_SECONDS > 0. Each
round opens its own session; one instrument failing is logged and does not
stop the round or the loop. after_tick runs once per committed tick (the
order engine uses it to re-check pending limit orders).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.iv_pricing.application.service import PriceService, get_price_service
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)

AfterTick = Callable[[AsyncSession, str], Awaitable[object]]


class PriceTicker:
    def __init__(
        self,
        interval_seconds: float,
        session_factory: async_sessionmaker[AsyncSession],
        service: PriceService | None = None,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
        after_tick: AfterTick | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._interval = interval_seconds
        self._session_factory = session_factory
        self._service = service or get_price_service()
        self._scenario_repo = scenario_repo or ScenarioRepository()
        self._after_tick = after_tick
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="price-ticker")
        logger.info("Price ticker started (every %.2fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Price ticker stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.tick_all()
            except Exception:
                logger.exception("Price ticker round failed")
            await asyncio.sleep(self._interval)

    async def tick_all(self) -> int:
        """Run one round; returns the number of instruments ticked."""
        ticked = 0
        async with self._session_factory() as db:
            instruments = await self._scenario_repo.list_live_instruments(db)
            for instrument in instruments:
                try:
                    await self._service.simulate_tick(db, instrument.id)
                    ticked += 1
                    if self._after_tick is not None:
                        await self._after_tick(db, instrument.id)
                except Exception:
                    logger.exception("Tick failed for instrument %s", instrument.id)
        return ticked
