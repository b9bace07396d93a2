"""
Domain models and value objects.

Contains Empire aggregate, synergy definitions, level table, ResourceFlow.
"""

from empire_engine.core.domain.enums import (
    EmpireIndustry,
    FlowFrequency,
    FlowStatus,
    ResourceKind,
    SynergyBonusTarget,
    SynergyBonusType,
    SynergyTier,
)
from empire_engine.core.domain.levels import (
    DEFAULT_LEVEL_TABLE,
    DEFAULT_XP_REWARDS,
    LevelDefinition,
    LevelTable,
    XpRewards,
)
from empire_engine.core.domain.synergy import SynergyBonus, SynergyDefinition
from empire_engine.core.domain.empire import (
    ActiveSynergy,
    CalculatedBonus,
    Empire,
    EmpireCompany,
    EmpireStats,
)
from empire_engine.core.domain.resource_flow import (
    FlowEndpoint,
    ResourceFlow,
    TransferResult,
    next_run_after,
)

__all__ = [
    # Enums
    "EmpireIndustry",
    "SynergyTier",
    "SynergyBonusType",
    "SynergyBonusTarget",
    "ResourceKind",
    "FlowFrequency",
    "FlowStatus",
    # Levels
    "LevelDefinition",
    "LevelTable",
    "DEFAULT_LEVEL_TABLE",
    "XpRewards",
    "DEFAULT_XP_REWARDS",
    # Synergy catalog entries
    "SynergyBonus",
    "SynergyDefinition",
    # Empire aggregate
    "Empire",
    "EmpireCompany",
    "ActiveSynergy",
    "CalculatedBonus",
    "EmpireStats",
    # Resource flow
    "ResourceFlow",
    "FlowEndpoint",
    "TransferResult",
    "next_run_after",
]
