from datetime import datetime

from src.iv_common.enums import ScenarioStatus
from src.iv_common.errors import ScenarioNotTradableError
from src.iv_scenario.domain.lifecycle import is_tradable
from src.iv_scenario.domain.models import Scenario


def check_scenario_tradable(scenario: Scenario, now: datetime) -> None:
    """Raise ScenarioNotTradableError unless the scenario is LIVE and now is in [start_at, end_at)."""
    if scenario.status != ScenarioStatus.LIVE.value:
        raise ScenarioNotTradableError(scenario.id, f"status {scenario.status}")
    if not is_tradable(scenario, now):
        raise ScenarioNotTradableError(scenario.id, "outside trading window")
