"""
Synergy Recalculator — пересчёт активных синергий империи

Вызывается при любом изменении состава империи. Проходит по каталогу и
переписывает список активных синергий целиком:

1. Синергия активна, если все required_industries присутствуют в империи
   и уровень империи >= unlock_level
2. Уже активная синергия сохраняет activated_at; бонусы и contributing
   компании пересчитываются по текущему составу
3. Синергия, у которой пропала хотя бы одна индустрия, деактивируется

Только PERCENTAGE бонусы масштабируются synergy_multiplier империи;
FLAT / COST_REDUCTION / EFFICIENCY / UNLOCK сохраняют базовое значение.

Пересчёт идемпотентен: повторный вызов без изменения состава даёт тот же
список (без дубликатов, с теми же activated_at).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from empire_engine.core.domain.empire import ActiveSynergy, CalculatedBonus, Empire
from empire_engine.core.domain.enums import (
    EmpireIndustry,
    SynergyBonusTarget,
    SynergyBonusType,
    SynergyTier,
)
from empire_engine.core.domain.levels import DEFAULT_LEVEL_TABLE, LevelTable
from empire_engine.core.domain.synergy import SynergyBonus, SynergyDefinition

from .catalog import SynergyCatalog, load_default_catalog

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Типы бонусов, которые суммируются как проценты по целевой метрике
PERCENT_LIKE_TYPES: Final[frozenset[SynergyBonusType]] = frozenset(
    {SynergyBonusType.PERCENTAGE, SynergyBonusType.COST_REDUCTION, SynergyBonusType.EFFICIENCY}
)

# Целевые метрики, составляющие бонус выручки/прибыли
REVENUE_TARGETS: Final[tuple[SynergyBonusTarget, ...]] = (
    SynergyBonusTarget.REVENUE,
    SynergyBonusTarget.ALL_PROFITS,
)

# Потенциальные синергии дальше чем current_level + N не показываются
POTENTIAL_LEVEL_HORIZON: Final[int] = 5


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class SynergyRecalcResult:
    """Результат пересчёта синергий."""

    active_synergies: tuple[ActiveSynergy, ...]
    activated_ids: tuple[str, ...]
    deactivated_ids: tuple[str, ...]

    @property
    def changed(self) -> bool:
        return bool(self.activated_ids or self.deactivated_ids)


@dataclass(frozen=True)
class PotentialSynergy:
    """Синергия, которую можно открыть, докупив индустрии."""

    synergy_id: str
    name: str
    tier: SynergyTier
    unlock_level: int
    missing_industries: tuple[EmpireIndustry, ...]
    percent_complete: float
    estimated_bonus: float


@dataclass(frozen=True)
class TargetBonus:
    """Бонус по одной целевой метрике."""

    percentage: float
    flat: float
    synergy_names: tuple[str, ...]


@dataclass(frozen=True)
class EmpireBonusSummary:
    """Сводка бонусов империи."""

    empire_level: int
    level_multiplier: float
    active_synergies: int
    total_revenue_bonus: float
    total_cost_reduction: float
    total_efficiency_bonus: float
    projected_monthly_revenue: float
    unlocked_features: tuple[str, ...]
    top_synergies: tuple[tuple[str, float], ...]


# =============================================================================
# RECALCULATOR
# =============================================================================


class SynergyRecalculator:
    """Пересчёт и агрегация синергий по каталогу."""

    def __init__(
        self,
        catalog: SynergyCatalog | None = None,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
    ):
        self.catalog = catalog if catalog is not None else load_default_catalog()
        self.level_table = level_table

    # -------------------------------------------------------------------------
    # Пересчёт
    # -------------------------------------------------------------------------

    def evaluate(self, empire: Empire, now: datetime) -> list[ActiveSynergy]:
        """
        Список синергий, которые должны быть активны при текущем составе.

        Чистая функция: empire не изменяется.
        """
        industries = set(empire.get_industries())
        previous = {synergy.synergy_id: synergy for synergy in empire.active_synergies}

        active: list[ActiveSynergy] = []
        for definition in self.catalog.active_definitions():
            if definition.unlock_level > empire.level:
                continue
            if not definition.is_satisfied_by(industries):
                continue

            prior = previous.get(definition.synergy_id)
            active.append(
                ActiveSynergy(
                    synergy_id=definition.synergy_id,
                    name=definition.name,
                    tier=definition.tier,
                    activated_at=prior.activated_at if prior is not None else now,
                    contributing_company_ids=tuple(
                        company.company_id
                        for company in empire.companies
                        if company.industry in definition.required_industries
                    ),
                    bonuses=tuple(
                        self._calculate_bonus(bonus, empire.synergy_multiplier)
                        for bonus in definition.bonuses
                    ),
                )
            )
        return active

    def recalculate(self, empire: Empire, now: datetime) -> SynergyRecalcResult:
        """
        Переписывает empire.active_synergies и last_recalculated_at.

        Returns:
            SynergyRecalcResult с новым списком и id активированных/деактивированных
        """
        previous_ids = [synergy.synergy_id for synergy in empire.active_synergies]
        active = self.evaluate(empire, now)
        active_ids = [synergy.synergy_id for synergy in active]

        activated = tuple(sid for sid in active_ids if sid not in previous_ids)
        deactivated = tuple(sid for sid in previous_ids if sid not in active_ids)

        empire.active_synergies = active
        empire.last_recalculated_at = now

        for synergy_id in activated:
            logger.info("Synergy activated: player=%s synergy=%s", empire.player_id, synergy_id)
        for synergy_id in deactivated:
            logger.info("Synergy deactivated: player=%s synergy=%s", empire.player_id, synergy_id)

        return SynergyRecalcResult(
            active_synergies=tuple(active),
            activated_ids=activated,
            deactivated_ids=deactivated,
        )

    @staticmethod
    def _calculate_bonus(bonus: SynergyBonus, empire_multiplier: float) -> CalculatedBonus:
        multiplier = empire_multiplier if bonus.is_scaled else 1.0
        return CalculatedBonus(
            bonus_type=bonus.type,
            target=bonus.target,
            base_value=bonus.value,
            multiplier=multiplier,
            final_value=bonus.value * multiplier,
            description=bonus.description,
        )

    # -------------------------------------------------------------------------
    # Агрегация
    # -------------------------------------------------------------------------

    @staticmethod
    def bonuses_by_target(empire: Empire) -> dict[SynergyBonusTarget, float]:
        """Сумма процентных бонусов (percentage / cost reduction / efficiency) по метрикам."""
        result = {target: 0.0 for target in SynergyBonusTarget}
        for synergy in empire.active_synergies:
            for bonus in synergy.bonuses:
                if bonus.bonus_type in PERCENT_LIKE_TYPES:
                    result[bonus.target] += bonus.final_value
        return result

    @staticmethod
    def bonus_for_target(empire: Empire, target: SynergyBonusTarget) -> TargetBonus:
        percentage = 0.0
        flat = 0.0
        names: dict[str, None] = {}
        for synergy in empire.active_synergies:
            for bonus in synergy.bonuses:
                if bonus.target != target:
                    continue
                names.setdefault(synergy.name, None)
                if bonus.bonus_type == SynergyBonusType.FLAT:
                    flat += bonus.final_value
                elif bonus.bonus_type in PERCENT_LIKE_TYPES:
                    percentage += bonus.final_value
        return TargetBonus(percentage=percentage, flat=flat, synergy_names=tuple(names))

    @classmethod
    def apply_bonus_to_value(
        cls, empire: Empire, base_value: float, target: SynergyBonusTarget
    ) -> float:
        """
        base_value * (1 + percentage / 100) + flat для метрики target.

        Examples:
            Property Mogul (+12% revenue) при multiplier 1.0:
            apply_bonus_to_value(empire, 100_000, REVENUE) == 112_000
        """
        bonus = cls.bonus_for_target(empire, target)
        return base_value * (1 + bonus.percentage / 100) + bonus.flat

    @staticmethod
    def unlocked_features(empire: Empire) -> list[str]:
        return [
            bonus.description
            for synergy in empire.active_synergies
            for bonus in synergy.bonuses
            if bonus.bonus_type == SynergyBonusType.UNLOCK
        ]

    def find_potential_synergies(self, empire: Empire) -> list[PotentialSynergy]:
        """
        Синергии, которые ещё не открыты по индустриям.

        Пропускаются: уже выполненные по индустриям и требующие уровень
        выше current_level + POTENTIAL_LEVEL_HORIZON. Сортировка по
        percent_complete (ближайшие к открытию первыми).
        """
        owned = set(empire.get_industries())
        potential: list[PotentialSynergy] = []

        for definition in self.catalog.active_definitions():
            missing = definition.missing_industries(owned)
            if not missing:
                continue
            if definition.unlock_level > empire.level + POTENTIAL_LEVEL_HORIZON:
                continue

            required = len(definition.required_industries)
            potential.append(
                PotentialSynergy(
                    synergy_id=definition.synergy_id,
                    name=definition.name,
                    tier=definition.tier,
                    unlock_level=definition.unlock_level,
                    missing_industries=tuple(missing),
                    percent_complete=(required - len(missing)) / required * 100,
                    estimated_bonus=_estimated_revenue_bonus(definition),
                )
            )

        # sorted() стабилен: при равенстве сохраняется порядок каталога
        return sorted(potential, key=lambda p: p.percent_complete, reverse=True)

    def bonus_summary(self, empire: Empire, top_n: int = 3) -> EmpireBonusSummary:
        by_target = self.bonuses_by_target(empire)

        ranked = sorted(
            ((synergy.name, synergy.total_bonus()) for synergy in empire.active_synergies),
            key=lambda pair: pair[1],
            reverse=True,
        )

        return EmpireBonusSummary(
            empire_level=empire.level,
            level_multiplier=self.level_table.multiplier_for(empire.level),
            active_synergies=len(empire.active_synergies),
            total_revenue_bonus=sum(by_target[target] for target in REVENUE_TARGETS),
            total_cost_reduction=by_target[SynergyBonusTarget.OPERATING_COST],
            total_efficiency_bonus=by_target[SynergyBonusTarget.PRODUCTION_SPEED],
            projected_monthly_revenue=self.apply_bonus_to_value(
                empire, empire.monthly_revenue, SynergyBonusTarget.REVENUE
            ),
            unlocked_features=tuple(self.unlocked_features(empire)),
            top_synergies=tuple(ranked[:top_n]),
        )


def _estimated_revenue_bonus(definition: SynergyDefinition) -> float:
    return sum(
        bonus.value
        for bonus in definition.bonuses
        if bonus.type == SynergyBonusType.PERCENTAGE and bonus.target in REVENUE_TARGETS
    )
