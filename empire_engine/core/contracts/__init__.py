"""
Contract Validation Module

Валидация конфигурационных JSON документов (каталог синергий, таблица уровней).
"""

from .validators import (
    LEVEL_TABLE,
    SYNERGY_CATALOG,
    ContractValidator,
    LevelTableValidator,
    SchemaLoader,
    SynergyCatalogValidator,
    validate_level_table,
    validate_synergy_catalog,
)

__all__ = [
    # Schema names
    "SYNERGY_CATALOG",
    "LEVEL_TABLE",
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SynergyCatalogValidator",
    "LevelTableValidator",
    # Functions
    "validate_synergy_catalog",
    "validate_level_table",
]
