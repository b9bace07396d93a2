"""Leveling — пороговая прогрессия уровня империи."""

from .engine import LevelGateCheck, LevelingEngine, LevelUpResult
from .table import level_table_from_document, level_table_from_path, level_table_to_document

__all__ = [
    "LevelingEngine",
    "LevelUpResult",
    "LevelGateCheck",
    "level_table_from_document",
    "level_table_from_path",
    "level_table_to_document",
]
