"""
JSON Schema контракты конфигурационных документов

Документы:
- synergy_catalog: каталог синергий (package data или пользовательский файл)
- level_table: таблица уровней империи

Документ проверяется схемой (Draft 2020-12) до построения pydantic моделей,
чтобы ошибки конфигурации указывали на место в документе, а не на поле модели.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List

from jsonschema import Draft202012Validator, SchemaError, ValidationError

SCHEMA_DIR = Path(__file__).parent / "schema"

SYNERGY_CATALOG = "synergy_catalog"
LEVEL_TABLE = "level_table"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Чтение схем из каталога schema/ с meta-проверкой и кэшем по имени.
    """

    def __init__(self, schema_dir: Path | None = None):
        self.schema_dir = Path(schema_dir) if schema_dir is not None else SCHEMA_DIR
        if not self.schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self.schema_dir}")
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, name: str) -> Dict[str, Any]:
        """
        Args:
            name: Имя схемы без .json (SYNERGY_CATALOG / LEVEL_TABLE)

        Raises:
            FileNotFoundError: файла схемы нет
            ValueError: файл не является валидной Draft 2020-12 схемой
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        path = self.schema_dir / f"{name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            raise ValueError(f"{path.name} is not a valid Draft 2020-12 schema: {e.message}") from e

        self._cache[name] = schema
        return schema


@lru_cache(maxsize=None)
def _compiled(name: str) -> Draft202012Validator:
    """Скомпилированный validator для bundled схемы (один на процесс)."""
    return Draft202012Validator(SchemaLoader().load_schema(name))


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка документа одной bundled схемой."""

    schema_name: str = ""

    def __init__(self, schema_name: str | None = None):
        if schema_name is not None:
            self.schema_name = schema_name
        self.validator = _compiled(self.schema_name)

    @property
    def schema(self) -> Dict[str, Any]:
        return self.validator.schema

    def validate(self, document: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: первое (наиболее релевантное) нарушение схемы
        """
        self.validator.validate(document)

    def is_valid(self, document: Dict[str, Any]) -> bool:
        return self.validator.is_valid(document)

    def iter_errors(self, document: Dict[str, Any]) -> Iterator[ValidationError]:
        return self.validator.iter_errors(document)

    def describe_errors(self, document: Dict[str, Any]) -> List[str]:
        """Все нарушения в виде "путь: сообщение", упорядоченные по пути."""
        errors = sorted(self.iter_errors(document), key=lambda e: list(map(str, e.absolute_path)))
        return [f"{error.json_path}: {error.message}" for error in errors]


class SynergyCatalogValidator(ContractValidator):
    schema_name = SYNERGY_CATALOG


class LevelTableValidator(ContractValidator):
    schema_name = LEVEL_TABLE


def validate_synergy_catalog(document: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: документ каталога не соответствует схеме
    """
    SynergyCatalogValidator().validate(document)


def validate_level_table(document: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: документ таблицы уровней не соответствует схеме
    """
    LevelTableValidator().validate(document)
