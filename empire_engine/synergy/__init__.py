"""Synergy — каталог синергий и пересчёт активных синергий империи."""

from .catalog import DEFAULT_CATALOG_PATH, SynergyCatalog, load_default_catalog
from .recalculator import (
    EmpireBonusSummary,
    PotentialSynergy,
    SynergyRecalcResult,
    SynergyRecalculator,
    TargetBonus,
)

__all__ = [
    "SynergyCatalog",
    "load_default_catalog",
    "DEFAULT_CATALOG_PATH",
    "SynergyRecalculator",
    "SynergyRecalcResult",
    "PotentialSynergy",
    "TargetBonus",
    "EmpireBonusSummary",
]
