"""Unit tests for scenario authoring and player join, on in-memory repos."""
from datetime import timedelta
from decimal import Decimal

import pytest

from src.iv_common.errors import (
    DuplicateSymbolError,
    InstrumentNotFoundError,
    InvalidScenarioTransitionError,
    InvalidScenarioWindowError,
    ScenarioLockedError,
    ScenarioNotFoundError,
)
from src.iv_scenario.application.schemas import (
    AddInstrumentRequest,
    CreateScenarioRequest,
    UpdateScenarioRequest,
)
from src.iv_scenario.application.service import ScenarioApplicationService
from src.iv_scenario.application.session import ScenarioSession
from src.iv_scenario.domain.lifecycle import ScenarioAction
from tests.unit.fakes import NOW, World, make_scenario


def _instrument(symbol: str = "acme") -> AddInstrumentRequest:
    return AddInstrumentRequest(
        symbol=symbol, display_name="Acme Corp", starting_price=Decimal("12.5")
    )


class TestScenarioSession:
    async def test_join_seeds_cash_once(self, world: World) -> None:
        world.scenarios.add(make_scenario(initial_cash="2500"))
        session = ScenarioSession(world.scenarios, world.ledger)

        first = await session.initialize_player(world.db, "sc-1", "user-1")
        second = await session.initialize_player(world.db, "sc-1", "user-1")

        assert first.cash_available == Decimal("2500")
        assert second.cash_available == Decimal("2500")
        seeds = [e for e in world.ledger.entries if e.entry_type == "SEED"]
        assert len(seeds) == 1
        assert seeds[0].amount == Decimal("2500")
        assert seeds[0].reference_id == "sc-1"

    async def test_rejoin_returns_current_state(self, world: World) -> None:
        world.scenarios.add(make_scenario())
        world.ledger.seed("sc-1", "user-1", Decimal("42"))
        state = await ScenarioSession(world.scenarios, world.ledger).initialize_player(
            world.db, "sc-1", "user-1"
        )
        assert state.cash_available == Decimal("42")
        assert world.ledger.entries == []

    async def test_scheduled_scenario_is_joinable(self, world: World) -> None:
        world.scenarios.add(make_scenario(status="SCHEDULED"))
        state = await ScenarioSession(world.scenarios, world.ledger).initialize_player(
            world.db, "sc-1", "user-1"
        )
        assert state.cash_available == Decimal("10000")

    @pytest.mark.parametrize("status", ["DRAFT", "CLOSED", "ARCHIVED"])
    async def test_not_joinable(self, world: World, status: str) -> None:
        world.scenarios.add(make_scenario(status=status))
        with pytest.raises(ScenarioLockedError):
            await ScenarioSession(world.scenarios, world.ledger).initialize_player(
                world.db, "sc-1", "user-1"
            )

    async def test_missing_scenario(self, world: World) -> None:
        with pytest.raises(ScenarioNotFoundError):
            await ScenarioSession(world.scenarios, world.ledger).initialize_player(
                world.db, "ghost", "user-1"
            )


class TestScenarioApplicationService:
    @pytest.fixture
    def svc(self, world: World) -> ScenarioApplicationService:
        return ScenarioApplicationService(world.scenarios)

    async def test_create_starts_as_draft(self, svc, world: World) -> None:
        req = CreateScenarioRequest(
            title="Oil shock",
            initial_cash=Decimal("5000.5"),
            start_at=NOW,
            end_at=NOW + timedelta(days=1),
        )
        created = await svc.create_scenario(world.db, req, "admin-1")

        assert created.status == "DRAFT"
        assert created.initial_cash == Decimal("5000.5")
        assert world.scenarios.scenarios[created.id].created_by == "admin-1"
        assert world.db.commits == 1

    async def test_add_instrument_normalizes_symbol(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT", instruments=()))
        added = await svc.add_instrument(world.db, "sc-1", _instrument(" acme "))
        assert added.symbol == "ACME"
        assert added.price_mode == "SIMULATED"
        assert len(world.scenarios.scenarios["sc-1"].instruments) == 1

    async def test_duplicate_symbol(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT", instruments=("ins-1",)))
        with pytest.raises(DuplicateSymbolError):
            await svc.add_instrument(world.db, "sc-1", _instrument("SYM0"))
        assert world.db.rollbacks == 1

    async def test_instruments_frozen_once_live(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="LIVE"))
        with pytest.raises(ScenarioLockedError):
            await svc.add_instrument(world.db, "sc-1", _instrument())

    async def test_full_lifecycle(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT"))
        for action, expected in [
            (ScenarioAction.SCHEDULE, "SCHEDULED"),
            (ScenarioAction.START, "LIVE"),
            (ScenarioAction.CLOSE, "CLOSED"),
            (ScenarioAction.ARCHIVE, "ARCHIVED"),
        ]:
            resp = await svc.transition(world.db, "sc-1", action)
            assert resp.status == expected
        assert len(resp.instruments) == 1

    async def test_illegal_transition_leaves_status(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT"))
        with pytest.raises(InvalidScenarioTransitionError):
            await svc.transition(world.db, "sc-1", ScenarioAction.CLOSE)
        assert world.scenarios.scenarios["sc-1"].status == "DRAFT"

    async def test_extend_moves_end_later(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="SCHEDULED"))
        new_end = NOW + timedelta(days=3)
        resp = await svc.extend(world.db, "sc-1", new_end)
        assert resp.end_at == new_end

    async def test_extend_never_shortens(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="SCHEDULED"))
        with pytest.raises(InvalidScenarioWindowError):
            await svc.extend(world.db, "sc-1", NOW)

    async def test_extend_closed_scenario(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="CLOSED"))
        with pytest.raises(ScenarioLockedError):
            await svc.extend(world.db, "sc-1", NOW + timedelta(days=3))

    async def test_update_details_partial(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT"))
        resp = await svc.update_details(
            world.db, "sc-1", UpdateScenarioRequest(title="Renamed", allow_short=True)
        )
        assert resp.title == "Renamed"
        assert resp.allow_short is True
        assert resp.initial_cash == Decimal("10000")
        assert len(resp.instruments) == 1

    async def test_update_details_rejects_inverted_window(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT"))
        with pytest.raises(InvalidScenarioWindowError):
            await svc.update_details(
                world.db, "sc-1", UpdateScenarioRequest(end_at=NOW - timedelta(days=1))
            )

    async def test_update_details_locked_when_live(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="LIVE"))
        with pytest.raises(ScenarioLockedError):
            await svc.update_details(world.db, "sc-1", UpdateScenarioRequest(title="x"))

    async def test_remove_instrument(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="DRAFT", instruments=("a", "b")))
        await svc.remove_instrument(world.db, "a")
        assert [i.id for i in world.scenarios.scenarios["sc-1"].instruments] == ["b"]

    async def test_remove_unknown_instrument(self, svc, world: World) -> None:
        with pytest.raises(InstrumentNotFoundError):
            await svc.remove_instrument(world.db, "ghost")

    async def test_remove_instrument_locked_when_live(self, svc, world: World) -> None:
        world.scenarios.add(make_scenario(status="LIVE"))
        with pytest.raises(ScenarioLockedError):
            await svc.remove_instrument(world.db, "ins-1")

    async def test_create_test_scenario(self, svc, world: World) -> None:
        resp = await svc.create_test_scenario(world.db, "admin-1")
        assert resp.status == "DRAFT"
        assert resp.title.startswith("Test Scenario ")
        assert sorted(i.symbol for i in resp.instruments) == ["AAPL", "GOOGL", "TSLA"]

    async def test_list_pages_by_cursor(self, svc, world: World) -> None:
        for sid in ("sc-1", "sc-2", "sc-3"):
            world.scenarios.add(make_scenario(sid))
        page = await svc.list_scenarios(world.db, None, None, 2)
        assert [s.id for s in page.items] == ["sc-3", "sc-2"]
        assert page.has_more is True
        rest = await svc.list_scenarios(world.db, None, page.next_cursor, 2)
        assert [s.id for s in rest.items] == ["sc-1"]
        assert rest.has_more is False
