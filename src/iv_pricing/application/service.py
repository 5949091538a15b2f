"""PriceService: the single writer of price ticks.

simulate_tick() holds a per-instrument asyncio.Lock from reading the previous
tick until the new one is committed, so two concurrent ticks for the same
instrument can never compute from the same predecessor. Different
instruments tick in parallel.

Events are published after commit. A failure to publish is logged and the
committed tick is still returned.
"""

import asyncio
import logging
from datetime import datetime
from weakref import WeakValueDictionary

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.iv_common.datetime_utils import utc_now
from src.iv_common.errors import InstrumentNotFoundError, ScenarioNotFoundError
from src.iv_common.id_generator import generate_id
from src.iv_pricing.application.schemas import (
    LatestPriceItem,
    LatestPricesResponse,
    PriceHistoryResponse,
    PriceTickResponse,
)
from src.iv_pricing.domain.generator import RandomWalkGenerator
from src.iv_pricing.domain.models import PriceTick
from src.iv_pricing.domain.repository import PriceRepositoryProtocol
from src.iv_pricing.infrastructure.persistence import PriceRepository
from src.iv_realtime.bus import EventBus, get_event_bus
from src.iv_realtime.events import PriceTickEvent, Topic
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)


class PriceService:
    def __init__(
        self,
        repo: PriceRepositoryProtocol | None = None,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
        generator: RandomWalkGenerator | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._repo: PriceRepositoryProtocol = repo or PriceRepository()
        self._scenario_repo: ScenarioRepositoryProtocol = scenario_repo or ScenarioRepository()
        self._generator = generator or RandomWalkGenerator(
            settings.PRICE_MAX_STEP_PCT, settings.PRICE_FLOOR
        )
        self._bus = bus or get_event_bus()
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, instrument_id: str) -> asyncio.Lock:
        lock = self._locks.get(instrument_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[instrument_id] = lock
        return lock

    async def simulate_tick(
        self, db: AsyncSession, instrument_id: str, now: datetime | None = None
    ) -> PriceTick:
        instrument = await self._scenario_repo.get_instrument(db, instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)

        async with self._lock_for(instrument_id):
            try:
                previous = await self._repo.get_latest_tick(db, instrument_id)
                price = self._generator.next_price(
                    previous.price if previous else None, instrument.starting_price
                )
                ts = self._generator.next_timestamp(
                    previous.ts if previous else None, now or utc_now()
                )
                tick = await self._repo.append_tick(
                    db, PriceTick(id=generate_id(), instrument_id=instrument_id, ts=ts, price=price)
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.debug("Tick %s %s @ %s", instrument.symbol, tick.price, tick.ts.isoformat())
        await self._publish(instrument.scenario_id, tick)
        return tick

    async def _publish(self, scenario_id: str, tick: PriceTick) -> None:
        event = PriceTickEvent(
            instrument_id=tick.instrument_id,
            scenario_id=scenario_id,
            price=tick.price,
            timestamp=tick.ts,
        )
        for topic in (Topic.instrument_prices(tick.instrument_id), Topic.scenario_prices(scenario_id)):
            try:
                await self._bus.publish(topic, event)
            except Exception:
                logger.exception("Failed to publish price tick on %s", topic.name)

    async def latest_prices(self, db: AsyncSession, scenario_id: str) -> LatestPricesResponse:
        scenario = await self._scenario_repo.get_scenario(db, scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        rows = await self._repo.list_latest_for_scenario(db, scenario_id)
        return LatestPricesResponse(
            scenario_id=scenario_id,
            prices=[LatestPriceItem.from_domain(r) for r in rows],
        )

    async def history(
        self, db: AsyncSession, instrument_id: str, limit: int
    ) -> PriceHistoryResponse:
        instrument = await self._scenario_repo.get_instrument(db, instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)
        ticks = await self._repo.list_history(db, instrument_id, limit)
        return PriceHistoryResponse(
            instrument_id=instrument_id,
            ticks=[PriceTickResponse.from_domain(t) for t in ticks],
        )


_service: PriceService | None = None


def get_price_service() -> PriceService:
    global _service  # noqa: PLW0603
    if _service is None:
        _service = PriceService()
    return _service
