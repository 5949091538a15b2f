"""Unit-test fixtures built on the in-memory fakes."""

from decimal import Decimal

import pytest

from tests.unit.fakes import World, make_scenario


@pytest.fixture
def world() -> World:
    return World()


@pytest.fixture
def live_world(world: World) -> World:
    """A LIVE scenario with one instrument at 100 and a player holding 10,000 cash."""
    world.scenarios.add(make_scenario())
    world.prices.set_price("ins-1", "100")
    world.ledger.seed("sc-1", "user-1", Decimal("10000"))
    return world
