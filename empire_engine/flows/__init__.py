"""Flows — жизненный цикл ресурсных потоков и планировщик."""

from .scheduler import (
    FlowLeaseManager,
    FlowRunOutcome,
    FlowRunStatus,
    FlowScheduler,
    SchedulerConfig,
    SchedulerPassReport,
)
from .state_machine import ALLOWED_TRANSITIONS, FlowAction, FlowStateMachine, FlowTransitionResult

__all__ = [
    "FlowAction",
    "FlowStateMachine",
    "FlowTransitionResult",
    "ALLOWED_TRANSITIONS",
    "FlowScheduler",
    "SchedulerConfig",
    "SchedulerPassReport",
    "FlowRunOutcome",
    "FlowRunStatus",
    "FlowLeaseManager",
]
