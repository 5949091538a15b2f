"""Scenario state machine and trading-window rules.

    DRAFT --schedule--> SCHEDULED --start--> LIVE --close--> CLOSED --archive--> ARCHIVED

Transitions are admin-triggered and unconditional; nothing here looks at the
clock except is_tradable().
"""

from datetime import datetime
from enum import Enum

from src.iv_common.datetime_utils import ensure_utc
from src.iv_common.enums import ScenarioStatus
from src.iv_common.errors import InvalidScenarioTransitionError
from src.iv_scenario.domain.models import Scenario


class ScenarioAction(str, Enum):
    SCHEDULE = "schedule"
    START = "start"
    CLOSE = "close"
    ARCHIVE = "archive"


_TRANSITIONS: dict[ScenarioAction, tuple[ScenarioStatus, ScenarioStatus]] = {
    ScenarioAction.SCHEDULE: (ScenarioStatus.DRAFT, ScenarioStatus.SCHEDULED),
    ScenarioAction.START: (ScenarioStatus.SCHEDULED, ScenarioStatus.LIVE),
    ScenarioAction.CLOSE: (ScenarioStatus.LIVE, ScenarioStatus.CLOSED),
    ScenarioAction.ARCHIVE: (ScenarioStatus.CLOSED, ScenarioStatus.ARCHIVED),
}

# Instruments may only be added while the scenario is still being prepared.
EDITABLE_STATUSES: frozenset[str] = frozenset(
    {ScenarioStatus.DRAFT.value, ScenarioStatus.SCHEDULED.value}
)


def next_status(current: str, action: ScenarioAction) -> ScenarioStatus:
    """Return the status reached by applying action, or raise."""
    source, target = _TRANSITIONS[action]
    if current != source.value:
        raise InvalidScenarioTransitionError(current, target.value)
    return target


def is_tradable(scenario: Scenario, now: datetime) -> bool:
    if scenario.status != ScenarioStatus.LIVE.value:
        return False
    now = ensure_utc(now)
    return ensure_utc(scenario.start_at) <= now < ensure_utc(scenario.end_at)
