"""
Flow State Machine — жизненный цикл ресурсного потока

Состояния: ACTIVE, PAUSED, COMPLETED (терминальное), CANCELLED (терминальное)

Переходы:
- ACTIVE → PAUSED (pause)
- PAUSED → ACTIVE (resume; next_run_at пересчитывается от now, без backfill)
- ACTIVE → COMPLETED (только ONE_TIME, автоматически после исполнения)
- ACTIVE / PAUSED → CANCELLED (cancel; next_run_at очищается)
- ACTIVE → ACTIVE (исполнение recurring потока, продвигает next_run_at)

Переходы из COMPLETED / CANCELLED не определены: попытка даёт
InvalidTransitionError, поток не меняется.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

from empire_engine.core.domain.enums import FlowStatus
from empire_engine.core.domain.resource_flow import ResourceFlow, next_run_after
from empire_engine.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class FlowAction(str, Enum):
    """Явные действия над потоком."""

    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"


# (action, from_status) → to_status
ALLOWED_TRANSITIONS: Final[dict[tuple[FlowAction, FlowStatus], FlowStatus]] = {
    (FlowAction.PAUSE, FlowStatus.ACTIVE): FlowStatus.PAUSED,
    (FlowAction.RESUME, FlowStatus.PAUSED): FlowStatus.ACTIVE,
    (FlowAction.CANCEL, FlowStatus.ACTIVE): FlowStatus.CANCELLED,
    (FlowAction.CANCEL, FlowStatus.PAUSED): FlowStatus.CANCELLED,
}


@dataclass(frozen=True)
class FlowTransitionResult:
    """Результат перехода статуса потока."""

    flow_id: str
    action: FlowAction
    previous_status: FlowStatus
    new_status: FlowStatus
    next_run_at: datetime | None

    transition_reason: str
    details: str


class FlowStateMachine:
    """Применение явных действий pause / resume / cancel."""

    def can_apply(self, flow: ResourceFlow, action: FlowAction) -> bool:
        return (action, flow.status) in ALLOWED_TRANSITIONS

    def apply(self, flow: ResourceFlow, action: FlowAction, now: datetime) -> FlowTransitionResult:
        """
        Применение действия к потоку (на месте).

        Raises:
            InvalidTransitionError: переход не определён; поток не изменён
        """
        target = ALLOWED_TRANSITIONS.get((action, flow.status))
        if target is None:
            raise InvalidTransitionError(flow.flow_id, flow.status.value, action.value)

        previous = flow.status

        if action == FlowAction.PAUSE:
            flow.status = target
            details = "Paused; scheduler skips paused flows"
        elif action == FlowAction.RESUME:
            # next_run от now: пропущенные за время паузы периоды не догоняются
            flow.next_run_at = next_run_after(flow.frequency, now)
            flow.status = target
            details = f"Resumed, next_run_at={flow.next_run_at}"
        else:
            flow.next_run_at = None
            flow.status = target
            details = "Cancelled; no further runs"

        logger.info(
            "Flow transition: flow=%s %s → %s (%s)",
            flow.flow_id,
            previous.value,
            target.value,
            action.value,
        )

        return FlowTransitionResult(
            flow_id=flow.flow_id,
            action=action,
            previous_status=previous,
            new_status=flow.status,
            next_run_at=flow.next_run_at,
            transition_reason=f"{action.value}_{previous.value}_to_{target.value}",
            details=details,
        )

    def pause(self, flow: ResourceFlow, now: datetime) -> FlowTransitionResult:
        return self.apply(flow, FlowAction.PAUSE, now)

    def resume(self, flow: ResourceFlow, now: datetime) -> FlowTransitionResult:
        return self.apply(flow, FlowAction.RESUME, now)

    def cancel(self, flow: ResourceFlow, now: datetime) -> FlowTransitionResult:
        return self.apply(flow, FlowAction.CANCEL, now)
