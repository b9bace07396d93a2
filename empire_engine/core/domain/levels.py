"""
Levels — таблица уровней империи и награды XP

Таблица уровней — конфигурация, не поведение: 12 упорядоченных записей
(level, name, xp_required, min_companies, min_industries, multiplier).
XP пороги и multiplier строго возрастают. Таблица может быть заменена
без изменения алгоритма Leveling Engine.
"""

from typing import Any, Final, Iterable

from pydantic import BaseModel, Field, model_validator

from .enums import SynergyTier


# =============================================================================
# LEVEL DEFINITION
# =============================================================================


class LevelDefinition(BaseModel):
    """Требования и множитель одного уровня"""

    level: int = Field(..., ge=1, description="Номер уровня (1..N)")
    name: str = Field(..., min_length=1, description="Название уровня")
    xp_required: int = Field(..., ge=0, description="Минимальный накопленный XP")
    min_companies: int = Field(..., ge=0, description="Минимум компаний в империи")
    min_industries: int = Field(..., ge=0, description="Минимум различных индустрий")
    multiplier: float = Field(..., ge=1.0, description="Synergy multiplier уровня")

    model_config = {"frozen": True}

    def is_met_by(self, xp: int, company_count: int, industry_count: int) -> bool:
        """Выполнены ли все три порога одновременно."""
        return (
            xp >= self.xp_required
            and company_count >= self.min_companies
            and industry_count >= self.min_industries
        )


# =============================================================================
# LEVEL TABLE
# =============================================================================


class LevelTable(BaseModel):
    """
    Упорядоченная таблица уровней.

    Инварианты:
    - уровни идут подряд начиная с 1
    - xp_required строго возрастает
    - multiplier строго возрастает
    """

    levels: tuple[LevelDefinition, ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_ordering(self) -> "LevelTable":
        for expected, definition in enumerate(self.levels, start=1):
            if definition.level != expected:
                raise ValueError(
                    f"levels must be consecutive from 1, got {definition.level} at position {expected}"
                )
        for prev, curr in zip(self.levels, self.levels[1:]):
            if curr.xp_required <= prev.xp_required:
                raise ValueError(
                    f"xp_required must be strictly increasing: level {curr.level} "
                    f"({curr.xp_required}) <= level {prev.level} ({prev.xp_required})"
                )
            if curr.multiplier <= prev.multiplier:
                raise ValueError(
                    f"multiplier must be strictly increasing: level {curr.level} "
                    f"({curr.multiplier}) <= level {prev.level} ({prev.multiplier})"
                )
        return self

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> "LevelTable":
        return cls(levels=tuple(LevelDefinition(**row) for row in rows))

    @property
    def max_level(self) -> int:
        return len(self.levels)

    def get(self, level: int) -> LevelDefinition | None:
        if 1 <= level <= len(self.levels):
            return self.levels[level - 1]
        return None

    def require(self, level: int) -> LevelDefinition:
        definition = self.get(level)
        if definition is None:
            raise ValueError(f"level {level} is outside table 1..{self.max_level}")
        return definition

    def multiplier_for(self, level: int) -> float:
        """Множитель уровня; 1.0 для уровня вне таблицы."""
        definition = self.get(level)
        return definition.multiplier if definition is not None else 1.0


_DEFAULT_LEVEL_ROWS: Final[tuple[tuple[int, str, int, int, int, float], ...]] = (
    (1, "Startup Founder", 0, 1, 1, 1.0),
    (2, "Serial Entrepreneur", 5_000, 2, 2, 1.05),
    (3, "Business Mogul", 15_000, 3, 2, 1.1),
    (4, "Industry Leader", 40_000, 4, 3, 1.15),
    (5, "Vertical Integrator", 100_000, 5, 3, 1.2),
    (6, "Horizontal Expander", 200_000, 6, 4, 1.25),
    (7, "Market Dominator", 400_000, 8, 5, 1.3),
    (8, "Conglomerate Builder", 800_000, 10, 6, 1.4),
    (9, "Empire Titan", 1_500_000, 12, 7, 1.5),
    (10, "Economic Overlord", 3_000_000, 15, 8, 1.6),
    (11, "Global Monopolist", 6_000_000, 20, 9, 1.75),
    (12, "World Controller", 10_000_000, 25, 10, 2.0),
)

DEFAULT_LEVEL_TABLE: Final[LevelTable] = LevelTable(
    levels=tuple(
        LevelDefinition(
            level=level,
            name=name,
            xp_required=xp,
            min_companies=companies,
            min_industries=industries,
            multiplier=multiplier,
        )
        for level, name, xp, companies, industries, multiplier in _DEFAULT_LEVEL_ROWS
    )
)


# =============================================================================
# XP REWARDS
# =============================================================================


class XpRewards(BaseModel):
    """Гранты XP за действия игрока"""

    company_acquired: int = Field(1_000, ge=0)
    new_industry: int = Field(2_500, ge=0)
    synergy_basic: int = Field(1_500, ge=0)
    synergy_advanced: int = Field(3_000, ge=0)
    synergy_elite: int = Field(5_000, ge=0)
    synergy_ultimate: int = Field(10_000, ge=0)
    resource_flow_established: int = Field(500, ge=0)

    model_config = {"frozen": True}

    def for_synergy_tier(self, tier: SynergyTier) -> int:
        if tier == SynergyTier.BASIC:
            return self.synergy_basic
        elif tier == SynergyTier.ADVANCED:
            return self.synergy_advanced
        elif tier == SynergyTier.ELITE:
            return self.synergy_elite
        else:
            return self.synergy_ultimate


DEFAULT_XP_REWARDS: Final[XpRewards] = XpRewards()
