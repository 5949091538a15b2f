"""In-memory repositories and a fake AsyncSession for engine/service tests.

FakeSession.begin_nested() snapshots every store and restores it when the
block raises, which is what a real savepoint rollback does to the rows.
"""

import copy
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from src.iv_common.errors import LedgerConflictError
from src.iv_ledger.domain.models import LedgerEntry, PlayerState, Position
from src.iv_order.domain.models import Order, Trade
from src.iv_pricing.domain.models import LatestPrice, PriceTick
from src.iv_realtime.bus import EventBus
from src.iv_scenario.domain.models import Instrument, Scenario

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# positions column scales (alembic 004 + 007); NUMERIC rounds half away from zero
POSITION_SCALES = {
    "quantity": Decimal("0.0001"),
    "avg_cost": Decimal("0.000001"),
    "cost_basis": Decimal("0.000001"),
    "realized_pnl": Decimal("0.000001"),
}


def as_stored(position: Position) -> Position:
    """The position as it reads back from the positions table."""
    return replace(
        position,
        **{
            field: getattr(position, field).quantize(exp, rounding=ROUND_HALF_UP)
            for field, exp in POSITION_SCALES.items()
        },
    )


class _Store:
    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.__dict__)

    def restore(self, snap: dict[str, Any]) -> None:
        self.__dict__.clear()
        self.__dict__.update(snap)


class FakeScenarioRepo(_Store):
    def __init__(self) -> None:
        self.scenarios: dict[str, Scenario] = {}

    def add(self, scenario: Scenario) -> Scenario:
        self.scenarios[scenario.id] = scenario
        return scenario

    async def list_scenarios(self, db, status, cursor_id, limit):
        items = sorted(self.scenarios.values(), key=lambda s: s.id, reverse=True)
        if status is not None:
            items = [s for s in items if s.status == status]
        if cursor_id is not None:
            items = [s for s in items if s.id < cursor_id]
        return [copy.deepcopy(s) for s in items[:limit]]

    async def get_scenario(self, db, scenario_id, for_update=False):
        s = self.scenarios.get(scenario_id)
        return copy.deepcopy(s) if s else None

    async def create_scenario(self, db, scenario):
        self.scenarios[scenario.id] = copy.deepcopy(scenario)
        return copy.deepcopy(scenario)

    async def update_status(self, db, scenario_id, status):
        self.scenarios[scenario_id].status = status
        return copy.deepcopy(self.scenarios[scenario_id])

    async def update_end_at(self, db, scenario_id, end_at):
        self.scenarios[scenario_id].end_at = end_at
        return copy.deepcopy(self.scenarios[scenario_id])

    async def update_details(self, db, scenario):
        stored = self.scenarios[scenario.id]
        updated = replace(scenario, instruments=stored.instruments)
        self.scenarios[scenario.id] = updated
        return copy.deepcopy(updated)

    async def list_instruments(self, db, scenario_id):
        return copy.deepcopy(self.scenarios[scenario_id].instruments)

    async def get_instrument(self, db, instrument_id):
        for s in self.scenarios.values():
            for i in s.instruments:
                if i.id == instrument_id:
                    return copy.deepcopy(i)
        return None

    async def add_instrument(self, db, instrument):
        self.scenarios[instrument.scenario_id].instruments.append(copy.deepcopy(instrument))
        return instrument

    async def delete_instrument(self, db, instrument_id):
        for s in self.scenarios.values():
            for i in list(s.instruments):
                if i.id == instrument_id:
                    s.instruments.remove(i)
                    return True
        return False

    async def list_live_instruments(self, db):
        return [
            copy.deepcopy(i)
            for s in self.scenarios.values()
            if s.status == "LIVE"
            for i in s.instruments
        ]


class FakeLedgerRepo(_Store):
    def __init__(self) -> None:
        self.states: dict[tuple[str, str], PlayerState] = {}
        self.positions: dict[tuple[str, str, str], Position] = {}
        self.entries: list[LedgerEntry] = []
        self.conflicts_to_raise = 0

    def restore(self, snap: dict[str, Any]) -> None:
        pending = self.conflicts_to_raise
        super().restore(snap)
        self.conflicts_to_raise = pending

    def seed(self, scenario_id: str, user_id: str, cash: Decimal) -> PlayerState:
        state = PlayerState(scenario_id, user_id, cash, Decimal("0"), version=0)
        self.states[(scenario_id, user_id)] = state
        return state

    async def get_player_state(self, db, scenario_id, user_id, for_update=False):
        s = self.states.get((scenario_id, user_id))
        return replace(s) if s else None

    async def create_player_state(self, db, scenario_id, user_id, initial_cash):
        if (scenario_id, user_id) in self.states:
            return None
        return replace(self.seed(scenario_id, user_id, initial_cash))

    async def save_player_state(self, db, state):
        if self.conflicts_to_raise > 0:
            self.conflicts_to_raise -= 1
            raise LedgerConflictError()
        current = self.states[(state.scenario_id, state.user_id)]
        if current.version != state.version:
            raise LedgerConflictError()
        saved = replace(state, version=state.version + 1)
        self.states[(state.scenario_id, state.user_id)] = saved
        return replace(saved)

    async def get_position(self, db, scenario_id, user_id, instrument_id):
        p = self.positions.get((scenario_id, user_id, instrument_id))
        return replace(p) if p else None

    async def list_positions(self, db, scenario_id, user_id):
        return [
            replace(p)
            for (sid, uid, _), p in self.positions.items()
            if sid == scenario_id and uid == user_id
        ]

    async def save_position(self, db, position):
        stored = as_stored(position)
        self.positions[(position.scenario_id, position.user_id, position.instrument_id)] = stored
        return replace(stored)

    async def append_entry(
        self, db, state, entry_type, amount, reference_type, reference_id, description=None
    ):
        entry = LedgerEntry(
            id=len(self.entries) + 1,
            scenario_id=state.scenario_id,
            user_id=state.user_id,
            entry_type=entry_type,
            amount=amount,
            cash_available_after=state.cash_available,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        self.entries.append(entry)
        return entry

    async def list_entries(self, db, scenario_id, user_id, cursor_id, limit, entry_type):
        items = [
            e for e in reversed(self.entries)
            if e.scenario_id == scenario_id and e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type == entry_type)
        ]
        return items[:limit]


class FakeOrderRepo(_Store):
    def __init__(self) -> None:
        self.orders: dict[str, Order] = {}
        self.trades: list[Trade] = []

    async def save(self, order, db):
        self.orders[order.id] = replace(order)

    async def update(self, order, db):
        self.orders[order.id] = replace(order)

    async def get_by_id(self, order_id, db, for_update=False):
        o = self.orders.get(order_id)
        return replace(o) if o else None

    async def list_by_user(self, scenario_id, user_id, statuses, limit, cursor_id, db):
        items = sorted(
            (o for o in self.orders.values()
             if o.scenario_id == scenario_id and o.user_id == user_id
             and (statuses is None or o.status in statuses)
             and (cursor_id is None or o.id < cursor_id)),
            key=lambda o: o.id,
            reverse=True,
        )
        return [replace(o) for o in items[:limit]]

    async def list_pending_by_instrument(self, instrument_id, db):
        return [
            replace(o) for o in self.orders.values()
            if o.instrument_id == instrument_id and o.is_cancellable
        ]

    async def list_pending_by_scenario(self, scenario_id, db):
        return [
            replace(o) for o in self.orders.values()
            if o.scenario_id == scenario_id and o.is_cancellable
        ]

    async def save_trade(self, trade, db):
        self.trades.append(trade)

    async def list_trades(self, scenario_id, user_id, limit, cursor_id, db):
        items = [
            t for t in reversed(self.trades)
            if t.scenario_id == scenario_id and t.user_id == user_id
            and (cursor_id is None or t.id < cursor_id)
        ]
        return items[:limit]


class FakePriceRepo(_Store):
    def __init__(self) -> None:
        self.ticks: dict[str, list[PriceTick]] = {}
        self.symbols: dict[str, tuple[str, str]] = {}

    def set_price(self, instrument_id: str, price: str, ts: datetime = NOW) -> PriceTick:
        ticks = self.ticks.setdefault(instrument_id, [])
        if ticks and ts <= ticks[-1].ts:
            ts = ticks[-1].ts + timedelta(seconds=1)
        tick = PriceTick(
            id=f"tick-{instrument_id}-{len(ticks)}",
            instrument_id=instrument_id,
            ts=ts,
            price=Decimal(price),
        )
        ticks.append(tick)
        return tick

    async def get_latest_tick(self, db, instrument_id):
        ticks = self.ticks.get(instrument_id)
        return ticks[-1] if ticks else None

    async def append_tick(self, db, tick):
        self.ticks.setdefault(tick.instrument_id, []).append(tick)
        return tick

    async def get_latest_prices(self, db, instrument_ids):
        return {
            iid: self.ticks[iid][-1].price for iid in instrument_ids if self.ticks.get(iid)
        }

    async def list_latest_for_scenario(self, db, scenario_id):
        out = []
        for iid, ticks in self.ticks.items():
            if ticks and iid in self.symbols:
                symbol, name = self.symbols[iid]
                out.append(LatestPrice(iid, symbol, name, ticks[-1].price, ticks[-1].ts))
        return out

    async def list_history(self, db, instrument_id, limit):
        return list(reversed(self.ticks.get(instrument_id, [])))[:limit]


class _Savepoint:
    def __init__(self, session: "FakeSession") -> None:
        self._session = session
        self._snaps: list[dict[str, Any]] = []

    async def __aenter__(self) -> "_Savepoint":
        self._snaps = [s.snapshot() for s in self._session.stores]
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            for store, snap in zip(self._session.stores, self._snaps):
                store.restore(snap)
        return False


class FakeSession:
    def __init__(self, *stores: _Store) -> None:
        self.stores = stores
        self.commits = 0
        self.rollbacks = 0

    def begin_nested(self) -> _Savepoint:
        return _Savepoint(self)

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def make_scenario(
    scenario_id: str = "sc-1",
    status: str = "LIVE",
    allow_short: bool = False,
    initial_cash: str = "10000",
    instruments: tuple[str, ...] = ("ins-1",),
) -> Scenario:
    return Scenario(
        id=scenario_id,
        title="Dot-com 1999",
        prompt=None,
        initial_cash=Decimal(initial_cash),
        start_at=NOW - timedelta(hours=1),
        end_at=NOW + timedelta(hours=1),
        allow_short=allow_short,
        status=status,
        instruments=[
            Instrument(
                id=iid,
                scenario_id=scenario_id,
                symbol=f"SYM{n}",
                display_name=f"Company {n}",
                starting_price=Decimal("100"),
            )
            for n, iid in enumerate(instruments)
        ],
    )


class World:
    """Everything an engine test touches, wired together."""

    def __init__(self) -> None:
        self.scenarios = FakeScenarioRepo()
        self.ledger = FakeLedgerRepo()
        self.orders = FakeOrderRepo()
        self.prices = FakePriceRepo()
        self.bus = EventBus()
        self.db = FakeSession(self.scenarios, self.ledger, self.orders, self.prices)


