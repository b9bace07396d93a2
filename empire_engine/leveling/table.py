"""
Загрузка таблицы уровней из JSON документа.

Документ проверяется JSON Schema контрактом level_table, затем LevelTable
проверяет порядок (уровни 1..N, строго возрастающие XP и multiplier).
"""

import json
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from empire_engine.core.contracts import LevelTableValidator
from empire_engine.core.domain.levels import LevelTable
from empire_engine.core.errors import InvalidArgumentError


def level_table_from_document(document: Dict[str, Any]) -> LevelTable:
    """
    Raises:
        InvalidArgumentError: документ не соответствует схеме или нарушен порядок
    """
    violations = LevelTableValidator().describe_errors(document)
    if violations:
        raise InvalidArgumentError("Invalid level table: " + "; ".join(violations))

    try:
        return LevelTable.from_rows(document["levels"])
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid level table: {e}") from e


def level_table_from_path(path: Path) -> LevelTable:
    with open(path, "r", encoding="utf-8") as f:
        return level_table_from_document(json.load(f))


def level_table_to_document(table: LevelTable) -> Dict[str, Any]:
    """Обратное преобразование (для экспорта конфигурации)."""
    return {
        "schema_version": "1",
        "levels": [definition.model_dump() for definition in table.levels],
    }
