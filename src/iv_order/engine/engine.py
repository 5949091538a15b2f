"""OrderEngine: validates orders and applies their effects to the ledger.

Every operation that touches a player's cash or positions runs under that
player's (scenario_id, user_id) asyncio.Lock and inside a savepoint that
reads the player_scenario_state row FOR UPDATE. Two orders from one player
are therefore strictly serialized; different players never share a lock.

The player-state write is versioned. A version mismatch (another process
wrote first) or a DB serialization failure rolls back the savepoint and the
whole attempt, validation included, is re-run up to max_retries times.

Validation failures are not faults: place_order converts them into a
PlaceOrderResult carrying a RejectReason and persists nothing.

There is no order book. A LIMIT order fills immediately at its limit price
when it is marketable against the latest tick; otherwise it rests as
PENDING until reevaluate_pending() (run after each tick) finds it
marketable, or it is cancelled.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar
from weakref import WeakValueDictionary

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.iv_common.datetime_utils import utc_now
from src.iv_common.enums import (
    CancelReason,
    LedgerEntryType,
    OrderSide,
    OrderStatus,
    OrderType,
    RejectReason,
)
from src.iv_common.errors import (
    AppError,
    InstrumentNotFoundError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidPriceError,
    InvalidQuantityError,
    LedgerConflictError,
    NoPriceError,
    OrderNotCancellableError,
    OrderNotFoundError,
    PlayerNotInitializedError,
    ScenarioNotFoundError,
    ScenarioNotTradableError,
)
from src.iv_common.id_generator import generate_id
from src.iv_common.money import ZERO, notional
from src.iv_ledger.domain import accounting
from src.iv_ledger.domain.models import PlayerState, Position
from src.iv_ledger.domain.repository import LedgerRepositoryProtocol
from src.iv_ledger.infrastructure.persistence import LedgerRepository
from src.iv_order.domain.models import Order, PlaceOrderResult, Trade
from src.iv_order.domain.repository import OrderRepositoryProtocol
from src.iv_order.infrastructure.persistence import OrderRepository
from src.iv_pricing.domain.repository import PriceRepositoryProtocol
from src.iv_pricing.infrastructure.persistence import PriceRepository
from src.iv_realtime.bus import EventBus, get_event_bus
from src.iv_realtime.events import Topic, TradeEvent
from src.iv_risk.rules.balance_check import check_buying_power
from src.iv_risk.rules.order_limit import check_order_quantity
from src.iv_risk.rules.position_check import check_sell_quantity
from src.iv_risk.rules.price_range import check_limit_price
from src.iv_risk.rules.scenario_status import check_scenario_tradable
from src.iv_scenario.domain.lifecycle import is_tradable
from src.iv_scenario.domain.models import Scenario
from src.iv_scenario.domain.repository import ScenarioRepositoryProtocol
from src.iv_scenario.infrastructure.persistence import ScenarioRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

_REJECTIONS: dict[type[AppError], RejectReason] = {
    ScenarioNotTradableError: RejectReason.SCENARIO_NOT_TRADABLE,
    InvalidQuantityError: RejectReason.INVALID_QUANTITY,
    InvalidPriceError: RejectReason.INVALID_PRICE,
    NoPriceError: RejectReason.NO_PRICE,
    InsufficientFundsError: RejectReason.INSUFFICIENT_FUNDS,
    InsufficientSharesError: RejectReason.INSUFFICIENT_SHARES,
}
_REJECTION_TYPES = tuple(_REJECTIONS)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, LedgerConflictError):
        return True
    if isinstance(exc, DBAPIError):
        code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
        return code in _RETRYABLE_SQLSTATES
    return False


def is_marketable(side: str, limit_price: Decimal, current: Decimal | None) -> bool:
    """A BUY limit at or above the current price (SELL at or below) can fill now."""
    if current is None:
        return False
    if side == OrderSide.BUY.value:
        return limit_price >= current
    return limit_price <= current


@dataclass(frozen=True)
class ReevaluationSummary:
    instrument_id: str
    price: Decimal | None
    filled: int = 0
    canceled: int = 0
    failed: int = 0


class OrderEngine:
    def __init__(
        self,
        order_repo: OrderRepositoryProtocol | None = None,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        scenario_repo: ScenarioRepositoryProtocol | None = None,
        price_repo: PriceRepositoryProtocol | None = None,
        bus: EventBus | None = None,
        max_retries: int | None = None,
        max_quantity: Decimal | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._orders: OrderRepositoryProtocol = order_repo or OrderRepository()
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._scenarios: ScenarioRepositoryProtocol = scenario_repo or ScenarioRepository()
        self._prices: PriceRepositoryProtocol = price_repo or PriceRepository()
        self._bus = bus or get_event_bus()
        self._max_retries = max_retries if max_retries is not None else settings.ORDER_MAX_RETRIES
        self._max_quantity = (
            max_quantity if max_quantity is not None else settings.MAX_ORDER_QUANTITY
        )
        self._clock = clock
        # an entry lives only while some coroutine holds or awaits the lock
        self._player_locks: WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            WeakValueDictionary()
        )

    def _lock_for(self, scenario_id: str, user_id: str) -> asyncio.Lock:
        key = (scenario_id, user_id)
        lock = self._player_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._player_locks[key] = lock
        return lock

    async def _with_retries(
        self, db: AsyncSession, label: str, attempt_fn: Callable[[], Awaitable[T]]
    ) -> T:
        """Run attempt_fn in a savepoint and commit; retry on write conflicts.

        The caller must hold the player's lock. Any non-retryable error
        rolls back the session and propagates.
        """
        attempt = 1
        while True:
            try:
                async with db.begin_nested():
                    result = await attempt_fn()
                await db.commit()
                return result
            except Exception as exc:
                await db.rollback()
                if not _is_retryable(exc):
                    raise
                if attempt >= self._max_retries:
                    logger.warning("%s: giving up after %d attempts", label, attempt)
                    raise LedgerConflictError(
                        f"{label} failed after {attempt} attempts due to concurrent updates"
                    ) from exc
                logger.warning("%s: write conflict on attempt %d, retrying", label, attempt)
                attempt += 1

    # ------------------------------------------------------------------
    # place_order
    # ------------------------------------------------------------------

    async def place_order(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        instrument_id: str,
        side: str,
        order_type: str,
        quantity: Decimal,
        limit_price: Decimal | None = None,
    ) -> PlaceOrderResult:
        label = f"place_order {scenario_id}/{user_id}"
        async with self._lock_for(scenario_id, user_id):
            try:
                result = await self._with_retries(
                    db,
                    label,
                    lambda: self._place_attempt(
                        db, scenario_id, user_id, instrument_id, side, order_type,
                        quantity, limit_price,
                    ),
                )
            except _REJECTION_TYPES as exc:
                reason = _REJECTIONS[type(exc)]
                logger.info(
                    "Order rejected: %s %s %s x%s user=%s (%s)",
                    side, order_type, instrument_id, quantity, user_id, exc.message,
                )
                return PlaceOrderResult.rejected(reason, exc.message)

        order = result.order
        if order is not None:
            logger.info(
                "Order %s %s: %s %s %s x%s @ %s user=%s",
                order.id, order.status, order.side, order.order_type, order.instrument_id,
                order.quantity, order.avg_fill_price or order.limit_price, user_id,
            )
        if result.trade is not None:
            await self._publish_trade(result.trade)
        return result

    async def _place_attempt(
        self,
        db: AsyncSession,
        scenario_id: str,
        user_id: str,
        instrument_id: str,
        side: str,
        order_type: str,
        quantity: Decimal,
        limit_price: Decimal | None,
    ) -> PlaceOrderResult:
        scenario = await self._scenarios.get_scenario(db, scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(scenario_id)
        if not any(i.id == instrument_id for i in scenario.instruments):
            raise InstrumentNotFoundError(instrument_id)

        # 1-3: tradable window, quantity, price shape
        check_scenario_tradable(scenario, self._clock())
        check_order_quantity(quantity, self._max_quantity)
        check_limit_price(order_type, limit_price)

        state = await self._ledger.get_player_state(db, scenario_id, user_id, for_update=True)
        if state is None:
            raise PlayerNotInitializedError(scenario_id, user_id)

        # 4: execution price
        latest = await self._prices.get_latest_tick(db, instrument_id)
        current = latest.price if latest else None
        # buying power is checked at the fill price, or at the limit for a resting order
        exec_price: Decimal | None
        if order_type == OrderType.MARKET.value:
            if current is None:
                raise NoPriceError(instrument_id)
            exec_price = check_price = current
        else:
            if limit_price is None:
                raise InvalidPriceError("limit orders require a limit_price")
            check_price = limit_price
            exec_price = limit_price if is_marketable(side, limit_price, current) else None

        position = await self._ledger.get_position(
            db, scenario_id, user_id, instrument_id
        ) or Position(scenario_id=scenario_id, user_id=user_id, instrument_id=instrument_id)

        # 5: funds / shares
        if side == OrderSide.BUY.value:
            check_buying_power(state, notional(quantity, check_price))
        else:
            check_sell_quantity(position.quantity, quantity, scenario.allow_short)

        order = Order(
            id=generate_id(),
            scenario_id=scenario_id,
            user_id=user_id,
            instrument_id=instrument_id,
            side=side,
            order_type=order_type,
            quantity=quantity,
            limit_price=limit_price,
            status=OrderStatus.PENDING.value,
            created_at=self._clock(),
        )

        if exec_price is None:
            # Rest: a BUY parks its worst-case cost in cash_locked.
            if side == OrderSide.BUY.value and limit_price is not None:
                order.locked_amount = notional(quantity, limit_price)
                reserved = accounting.reserve(state, order.locked_amount)
                await self._ledger.save_player_state(db, reserved)
                await self._ledger.append_entry(
                    db, reserved, LedgerEntryType.ORDER_RESERVE.value,
                    -order.locked_amount, "ORDER", order.id,
                    f"Reserve for limit buy {quantity} @ {limit_price}",
                )
            await self._orders.save(order, db)
            return PlaceOrderResult(order=order)

        await self._orders.save(order, db)
        trade = await self._fill(db, order, state, position, exec_price)
        return PlaceOrderResult(order=order, trade=trade)

    async def _fill(
        self,
        db: AsyncSession,
        order: Order,
        state: PlayerState,
        position: Position,
        price: Decimal,
    ) -> Trade:
        """Apply one complete fill: position, cash, journal, trade, order row."""
        amount = notional(order.quantity, price)
        updated_position, realized = accounting.apply_trade(
            position, OrderSide(order.side), order.quantity, price
        )

        journal: list[tuple[PlayerState, str, Decimal, str]] = []
        if order.side == OrderSide.BUY.value:
            if order.locked_amount > 0:
                state = accounting.release(state, order.locked_amount)
                journal.append(
                    (state, LedgerEntryType.ORDER_RELEASE.value, order.locked_amount,
                     "Release reserve on fill")
                )
            state = accounting.debit_cash(state, amount)
            journal.append(
                (state, LedgerEntryType.TRADE_DEBIT.value, -amount,
                 f"Buy {order.quantity} @ {price}")
            )
        else:
            state = accounting.credit_cash(state, amount)
            journal.append(
                (state, LedgerEntryType.TRADE_CREDIT.value, amount,
                 f"Sell {order.quantity} @ {price}")
            )

        await self._ledger.save_player_state(db, state)
        for snapshot, entry_type, delta, description in journal:
            await self._ledger.append_entry(
                db, snapshot, entry_type, delta, "ORDER", order.id, description
            )
        await self._ledger.save_position(db, updated_position)

        trade = Trade(
            id=generate_id(),
            order_id=order.id,
            scenario_id=order.scenario_id,
            user_id=order.user_id,
            instrument_id=order.instrument_id,
            side=order.side,
            qty=order.quantity,
            price=price,
            ts=self._clock(),
        )
        await self._orders.save_trade(trade, db)

        order.status = OrderStatus.FILLED.value
        order.filled_qty = order.quantity
        order.avg_fill_price = price
        order.locked_amount = ZERO
        await self._orders.update(order, db)

        if realized:
            logger.debug("Order %s realized %s", order.id, realized)
        return trade

    async def _publish_trade(self, trade: Trade) -> None:
        event = TradeEvent(
            scenario_id=trade.scenario_id,
            user_id=trade.user_id,
            order_id=trade.order_id,
            trade_id=trade.id,
            instrument_id=trade.instrument_id,
            side=trade.side,
            qty=trade.qty,
            price=trade.price,
            timestamp=trade.ts,
        )
        for topic in (
            Topic.scenario_trades(trade.scenario_id),
            Topic.user_trades(trade.scenario_id, trade.user_id),
        ):
            try:
                await self._bus.publish(topic, event)
            except Exception:
                logger.exception("Failed to publish trade %s on %s", trade.id, topic.name)

    # ------------------------------------------------------------------
    # cancellation
    # ------------------------------------------------------------------

    async def _cancel_attempt(self, db: AsyncSession, order_id: str, reason: CancelReason) -> Order:
        order = await self._orders.get_by_id(order_id, db, for_update=True)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not order.is_cancellable:
            raise OrderNotCancellableError(order.id, order.status)

        if order.locked_amount > 0:
            state = await self._ledger.get_player_state(
                db, order.scenario_id, order.user_id, for_update=True
            )
            if state is None:
                raise PlayerNotInitializedError(order.scenario_id, order.user_id)
            released = accounting.release(state, order.locked_amount)
            await self._ledger.save_player_state(db, released)
            await self._ledger.append_entry(
                db, released, LedgerEntryType.ORDER_RELEASE.value, order.locked_amount,
                "ORDER", order.id, f"Release on cancel ({reason.value})",
            )

        order.status = OrderStatus.CANCELED.value
        order.cancel_reason = reason.value
        order.locked_amount = ZERO
        await self._orders.update(order, db)
        return order

    async def cancel_order(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        """Cancel the caller's resting order and release its reserved cash.

        Another user's order is reported as not found.
        """
        existing = await self._orders.get_by_id(order_id, db)
        if existing is None or existing.user_id != user_id:
            raise OrderNotFoundError(order_id)

        async with self._lock_for(existing.scenario_id, user_id):
            order = await self._with_retries(
                db,
                f"cancel_order {order_id}",
                lambda: self._cancel_attempt(db, order_id, CancelReason.USER_REQUEST),
            )
        logger.info("Order %s canceled by %s", order_id, user_id)
        return order

    async def cancel_pending_for_scenario(
        self, db: AsyncSession, scenario_id: str, reason: CancelReason = CancelReason.SCENARIO_CLOSED
    ) -> int:
        """Cancel every resting order of a scenario; returns how many were cancelled."""
        pending = await self._orders.list_pending_by_scenario(scenario_id, db)
        canceled = 0
        for order in pending:
            async with self._lock_for(order.scenario_id, order.user_id):
                try:
                    await self._with_retries(
                        db,
                        f"cancel_order {order.id}",
                        lambda oid=order.id: self._cancel_attempt(db, oid, reason),
                    )
                    canceled += 1
                except OrderNotCancellableError:
                    continue  # filled or cancelled since the listing
        if pending:
            logger.info("Scenario %s: canceled %d pending orders (%s)", scenario_id, canceled, reason.value)
        return canceled

    # ------------------------------------------------------------------
    # pending limit orders
    # ------------------------------------------------------------------

    async def _trigger_attempt(
        self, db: AsyncSession, order_id: str, scenario: Scenario, price: Decimal
    ) -> tuple[str, Trade | None]:
        """Fill one resting order at its limit price, or cancel a SELL whose shares are gone."""
        order = await self._orders.get_by_id(order_id, db, for_update=True)
        if order is None or not order.is_cancellable or order.limit_price is None:
            return "skipped", None
        if not is_marketable(order.side, order.limit_price, price):
            return "skipped", None

        state = await self._ledger.get_player_state(
            db, order.scenario_id, order.user_id, for_update=True
        )
        if state is None:
            raise PlayerNotInitializedError(order.scenario_id, order.user_id)
        position = await self._ledger.get_position(
            db, order.scenario_id, order.user_id, order.instrument_id
        ) or Position(
            scenario_id=order.scenario_id, user_id=order.user_id, instrument_id=order.instrument_id
        )

        if order.side == OrderSide.SELL.value:
            try:
                check_sell_quantity(position.quantity, order.quantity, scenario.allow_short)
            except InsufficientSharesError:
                await self._cancel_attempt(db, order.id, CancelReason.INSUFFICIENT_SHARES)
                return "canceled", None

        trade = await self._fill(db, order, state, position, order.limit_price)
        return "filled", trade

    async def reevaluate_pending(
        self, db: AsyncSession, instrument_id: str
    ) -> ReevaluationSummary:
        """Fill resting limit orders of an instrument that the latest tick made marketable."""
        latest = await self._prices.get_latest_tick(db, instrument_id)
        if latest is None:
            return ReevaluationSummary(instrument_id=instrument_id, price=None)

        candidates = [
            o
            for o in await self._orders.list_pending_by_instrument(instrument_id, db)
            if o.limit_price is not None and is_marketable(o.side, o.limit_price, latest.price)
        ]
        filled = canceled = failed = 0
        scenarios: dict[str, Scenario | None] = {}
        for order in candidates:
            if order.scenario_id not in scenarios:
                scenarios[order.scenario_id] = await self._scenarios.get_scenario(
                    db, order.scenario_id
                )
            scenario = scenarios[order.scenario_id]
            if scenario is None or not is_tradable(scenario, self._clock()):
                continue

            async with self._lock_for(order.scenario_id, order.user_id):
                try:
                    outcome, trade = await self._with_retries(
                        db,
                        f"trigger {order.id}",
                        lambda oid=order.id, sc=scenario: self._trigger_attempt(
                            db, oid, sc, latest.price
                        ),
                    )
                except AppError:
                    logger.exception("Pending order %s could not be re-evaluated", order.id)
                    failed += 1
                    continue

            if outcome == "filled":
                filled += 1
                logger.info("Pending order %s filled @ %s", order.id, order.limit_price)
                if trade is not None:
                    await self._publish_trade(trade)
            elif outcome == "canceled":
                canceled += 1
                logger.info("Pending order %s canceled: shares no longer held", order.id)

        return ReevaluationSummary(
            instrument_id=instrument_id,
            price=latest.price,
            filled=filled,
            canceled=canceled,
            failed=failed,
        )


_engine: OrderEngine | None = None


def get_order_engine() -> OrderEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = OrderEngine()
    return _engine
