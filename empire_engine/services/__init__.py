"""Services — операции над Empire и ResourceFlow для вызывающего кода (API layer)."""

from .empire_service import EmpireService, EmpireServiceConfig, EmpireUpdate
from .flow_service import FlowActionResult, FlowSavingsReport, FlowService

__all__ = [
    "EmpireService",
    "EmpireServiceConfig",
    "EmpireUpdate",
    "FlowService",
    "FlowActionResult",
    "FlowSavingsReport",
]
