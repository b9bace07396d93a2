"""
Synergy Catalog — read-only таблица определений синергий

Источник: JSON документ (по умолчанию data/synergy_catalog.json), проверенный
JSON Schema контрактом synergy_catalog до построения pydantic моделей.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator

from empire_engine.core.contracts import SynergyCatalogValidator
from empire_engine.core.domain.enums import EmpireIndustry
from empire_engine.core.domain.synergy import SynergyDefinition
from empire_engine.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "synergy_catalog.json"


class SynergyCatalog:
    """
    Неизменяемый набор определений синергий.

    Порядок — по sort_order, затем по порядку в документе.
    Неактивные (is_active=False) определения хранятся, но не участвуют в пересчёте.
    """

    def __init__(self, definitions: Iterable[SynergyDefinition]):
        ordered = sorted(enumerate(definitions), key=lambda pair: (pair[1].sort_order, pair[0]))
        self._definitions: tuple[SynergyDefinition, ...] = tuple(d for _, d in ordered)

        self._by_id: Dict[str, SynergyDefinition] = {}
        for definition in self._definitions:
            if definition.synergy_id in self._by_id:
                raise InvalidArgumentError(
                    f"Duplicate synergy_id in catalog: {definition.synergy_id}"
                )
            self._by_id[definition.synergy_id] = definition

    def __iter__(self) -> Iterator[SynergyDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, synergy_id: str) -> SynergyDefinition | None:
        return self._by_id.get(synergy_id)

    def active_definitions(self) -> list[SynergyDefinition]:
        return [definition for definition in self._definitions if definition.is_active]

    def industry_coverage(self) -> dict[EmpireIndustry, list[str]]:
        """Имена синергий, в которых участвует каждая индустрия."""
        coverage: dict[EmpireIndustry, list[str]] = {industry: [] for industry in EmpireIndustry}
        for definition in self._definitions:
            for industry in definition.required_industries:
                coverage[industry].append(definition.name)
        return coverage

    # -------------------------------------------------------------------------
    # Загрузка
    # -------------------------------------------------------------------------

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SynergyCatalog":
        """
        Построение каталога из JSON документа.

        Raises:
            InvalidArgumentError: документ не соответствует схеме
        """
        violations = SynergyCatalogValidator().describe_errors(document)
        if violations:
            raise InvalidArgumentError("Invalid synergy catalog: " + "; ".join(violations))

        catalog = cls(SynergyDefinition(**entry) for entry in document["synergies"])
        logger.debug("Loaded synergy catalog with %d definitions", len(catalog))
        return catalog

    @classmethod
    def from_path(cls, path: Path) -> "SynergyCatalog":
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        return cls.from_document(document)


@lru_cache(maxsize=1)
def load_default_catalog() -> SynergyCatalog:
    """Каталог по умолчанию из package data (кэшируется)."""
    return SynergyCatalog.from_path(DEFAULT_CATALOG_PATH)
