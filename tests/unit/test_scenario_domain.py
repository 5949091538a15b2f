"""Unit tests for the scenario state machine and trading window."""
from datetime import timedelta

import pytest

from src.iv_common.enums import ScenarioStatus
from src.iv_common.errors import InvalidScenarioTransitionError
from src.iv_scenario.domain.lifecycle import ScenarioAction, is_tradable, next_status
from tests.unit.fakes import NOW, make_scenario


class TestTransitions:
    @pytest.mark.parametrize(
        "current,action,target",
        [
            ("DRAFT", ScenarioAction.SCHEDULE, ScenarioStatus.SCHEDULED),
            ("SCHEDULED", ScenarioAction.START, ScenarioStatus.LIVE),
            ("LIVE", ScenarioAction.CLOSE, ScenarioStatus.CLOSED),
            ("CLOSED", ScenarioAction.ARCHIVE, ScenarioStatus.ARCHIVED),
        ],
    )
    def test_forward_path(self, current: str, action: ScenarioAction, target: ScenarioStatus) -> None:
        assert next_status(current, action) == target

    @pytest.mark.parametrize(
        "current,action",
        [
            ("DRAFT", ScenarioAction.START),
            ("LIVE", ScenarioAction.SCHEDULE),
            ("CLOSED", ScenarioAction.START),
            ("ARCHIVED", ScenarioAction.CLOSE),
        ],
    )
    def test_illegal_moves(self, current: str, action: ScenarioAction) -> None:
        with pytest.raises(InvalidScenarioTransitionError) as exc_info:
            next_status(current, action)
        assert exc_info.value.http_status == 409


class TestTradingWindow:
    def test_live_inside_window(self) -> None:
        assert is_tradable(make_scenario(), NOW) is True

    def test_start_is_inclusive_end_is_exclusive(self) -> None:
        scenario = make_scenario()
        assert is_tradable(scenario, scenario.start_at) is True
        assert is_tradable(scenario, scenario.end_at) is False
        assert is_tradable(scenario, scenario.start_at - timedelta(microseconds=1)) is False

    def test_not_live(self) -> None:
        assert is_tradable(make_scenario(status="SCHEDULED"), NOW) is False

    def test_naive_now_treated_as_utc(self) -> None:
        assert is_tradable(make_scenario(), NOW.replace(tzinfo=None)) is True
