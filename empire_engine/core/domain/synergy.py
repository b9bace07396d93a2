"""
Synergy — определения синергий (записи каталога)

Синергия открывается, когда империя владеет компаниями во всех
required_industries и уровень империи >= unlock_level.

Immutable Pydantic модели: каталог read-only с точки зрения пересчёта.
"""

from pydantic import BaseModel, Field, field_validator

from .enums import EmpireIndustry, SynergyBonusTarget, SynergyBonusType, SynergyTier


# =============================================================================
# SYNERGY BONUS
# =============================================================================


class SynergyBonus(BaseModel):
    """Бонус, который даёт синергия"""

    type: SynergyBonusType = Field(..., description="Тип бонуса")
    target: SynergyBonusTarget = Field(..., description="Целевая метрика")
    value: float = Field(..., ge=0, description="Базовое значение (%, $ или флаг unlock)")
    applies_to_industry: EmpireIndustry | None = Field(
        None, description="Ограничение бонуса одной индустрией (nullable)"
    )
    description: str = Field(..., min_length=1, description="Человекочитаемое описание")

    model_config = {"frozen": True}

    @property
    def is_scaled(self) -> bool:
        """Масштабируется ли бонус множителем империи (только PERCENTAGE)."""
        return self.type == SynergyBonusType.PERCENTAGE


# =============================================================================
# SYNERGY DEFINITION
# =============================================================================


class SynergyDefinition(BaseModel):
    """
    Определение синергии из каталога.

    required_industries хранится как tuple без дубликатов, порядок как в каталоге.
    """

    synergy_id: str = Field(..., min_length=1, description="Идентификатор синергии")
    name: str = Field(..., min_length=1, description="Название")
    description: str = Field("", description="Описание")
    required_industries: tuple[EmpireIndustry, ...] = Field(
        ..., min_length=1, description="Индустрии, которые должны присутствовать в империи"
    )
    tier: SynergyTier = Field(..., description="Ранг синергии")
    unlock_level: int = Field(1, ge=1, description="Минимальный уровень империи")
    bonuses: tuple[SynergyBonus, ...] = Field(default_factory=tuple, description="Бонусы")
    is_active: bool = Field(True, description="Включена ли синергия в каталоге")
    sort_order: int = Field(0, description="Порядок отображения")

    model_config = {"frozen": True}

    @field_validator("required_industries")
    @classmethod
    def validate_unique_industries(
        cls, v: tuple[EmpireIndustry, ...]
    ) -> tuple[EmpireIndustry, ...]:
        """Дубликаты индустрий — ошибка конфигурации каталога."""
        if len(set(v)) != len(v):
            raise ValueError("required_industries must not contain duplicates")
        return v

    def is_satisfied_by(self, industries: set[EmpireIndustry]) -> bool:
        """Все ли required_industries присутствуют."""
        return all(industry in industries for industry in self.required_industries)

    def missing_industries(self, industries: set[EmpireIndustry]) -> list[EmpireIndustry]:
        return [industry for industry in self.required_industries if industry not in industries]
