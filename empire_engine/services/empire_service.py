"""
Empire Service — операции над агрегатом Empire для вызывающего кода

Каждая операция — одна логическая транзакция:
load → структурное изменение → recompute → XP / leveling → synergy → save

Single-writer дисциплина на Empire:
- внутри процесса: lock на player_id
- между процессами: version-checked save; при ConcurrencyConflictError
  агрегат перечитывается и логическая операция применяется заново
  (устаревшая in-memory мутация не переигрывается)

Если операция бросает исключение, ничего не сохраняется.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from empire_engine.core.clock import Clock
from empire_engine.core.domain.empire import Empire, EmpireCompany, EmpireStats
from empire_engine.core.domain.enums import EmpireIndustry
from empire_engine.core.domain.levels import (
    DEFAULT_LEVEL_TABLE,
    DEFAULT_XP_REWARDS,
    LevelTable,
    XpRewards,
)
from empire_engine.core.errors import ConcurrencyConflictError, InvalidArgumentError, NotFoundError
from empire_engine.leveling.engine import LevelingEngine
from empire_engine.storage.base_repository import EmpireRepository, ResourceFlowRepository
from empire_engine.synergy.recalculator import (
    EmpireBonusSummary,
    PotentialSynergy,
    SynergyRecalculator,
)

logger = logging.getLogger(__name__)

DEFAULT_EMPIRE_NAME = "My Empire"


# =============================================================================
# CONFIGURATION / RESULTS
# =============================================================================


@dataclass(frozen=True)
class EmpireServiceConfig:
    """Конфигурация сервиса."""

    # Повторы логической операции после ConcurrencyConflictError
    max_retries: int = 3


@dataclass(frozen=True)
class EmpireUpdate:
    """Результат мутирующей операции над Empire."""

    empire: Empire
    previous_level: int
    xp_awarded: int = 0
    activated_synergies: tuple[str, ...] = ()
    deactivated_synergies: tuple[str, ...] = ()
    company: Optional[EmpireCompany] = None

    @property
    def leveled_up(self) -> bool:
        return self.empire.level > self.previous_level


@dataclass
class _Progress:
    """Накопитель эффектов одной операции."""

    previous_level: int
    xp_awarded: int = 0
    activated: List[str] = field(default_factory=list)
    deactivated: List[str] = field(default_factory=list)
    company: Optional[EmpireCompany] = None


# =============================================================================
# SERVICE
# =============================================================================


class EmpireService:
    """Caller-facing операции над империей игрока."""

    def __init__(
        self,
        repo: EmpireRepository,
        clock: Clock,
        recalculator: Optional[SynergyRecalculator] = None,
        leveling: Optional[LevelingEngine] = None,
        xp_rewards: XpRewards = DEFAULT_XP_REWARDS,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
        flow_repo: Optional[ResourceFlowRepository] = None,
        config: Optional[EmpireServiceConfig] = None,
    ):
        self.repo = repo
        self.clock = clock
        self.level_table = level_table
        self.recalculator = recalculator or SynergyRecalculator(level_table=level_table)
        self.leveling = leveling or LevelingEngine(level_table)
        self.xp_rewards = xp_rewards
        self.flow_repo = flow_repo
        self.config = config or EmpireServiceConfig()

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def get(self, player_id: str) -> Empire:
        """
        Raises:
            NotFoundError: у игрока нет империи
        """
        empire = self.repo.get(player_id)
        if empire is None:
            raise NotFoundError("empire", player_id)
        return empire

    def get_or_create(self, player_id: str, name: str = DEFAULT_EMPIRE_NAME) -> Empire:
        """Империя игрока; создаётся пустой при первом обращении."""
        empire = self.repo.get(player_id)
        if empire is not None:
            return empire

        now = self.clock.now()
        try:
            empire = Empire(player_id=player_id, name=name, created_at=now)
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid empire data: {e}") from e

        try:
            created = self.repo.create(empire)
        except ConcurrencyConflictError:
            # Параллельный вызов создал империю первым
            return self.get(player_id)

        logger.info("Empire created: player=%s name=%s", player_id, name)
        return created

    def get_stats(self, player_id: str) -> EmpireStats:
        empire = self.get(player_id)
        flows_count = self.flow_repo.count_by_player(player_id) if self.flow_repo is not None else 0
        return empire.get_stats(self.level_table, resource_flows_count=flows_count)

    def bonus_summary(self, player_id: str, top_n: int = 3) -> EmpireBonusSummary:
        return self.recalculator.bonus_summary(self.get(player_id), top_n=top_n)

    def potential_synergies(self, player_id: str) -> List[PotentialSynergy]:
        return self.recalculator.find_potential_synergies(self.get(player_id))

    def leaderboard(self, limit: int = 100) -> List[Empire]:
        return self.repo.list_leaderboard(limit)

    def find_by_min_industry_count(self, min_count: int) -> List[Empire]:
        return self.repo.find_by_min_industry_count(min_count)

    # -------------------------------------------------------------------------
    # Мутации
    # -------------------------------------------------------------------------

    def add_company(
        self,
        player_id: str,
        company_id: str,
        name: str,
        industry: EmpireIndustry | str,
        level: int = 1,
        revenue: float = 0.0,
        value: float = 0.0,
        expenses: float = 0.0,
    ) -> EmpireUpdate:
        """
        Добавление компании в империю.

        Порядок:
        1. Новая ли индустрия — определяется ДО вставки
        2. Вставка (первая компания → штаб-квартира) и recompute
        3. XP "company acquired", затем XP "new industry" (если новая);
           каждый грант сразу прогоняет Leveling Engine
        4. Пересчёт синергий, XP за новые синергии
        5. Одна запись в конце

        Raises:
            NotFoundError / DuplicateMemberError / InvalidArgumentError
        """
        industry = _coerce_industry(industry)

        def operation(empire: Empire, progress: _Progress) -> None:
            is_new_industry = not empire.has_industry(industry)
            now = self.clock.now()

            progress.company = empire.add_company(
                company_id,
                name,
                industry,
                level,
                revenue,
                value,
                now=now,
                expenses=expenses,
                level_table=self.level_table,
            )

            self._award_xp(empire, self.xp_rewards.company_acquired, progress)
            if is_new_industry:
                self._award_xp(empire, self.xp_rewards.new_industry, progress)

            self._settle_synergies(empire, progress)

        update = self._mutate(player_id, operation)
        logger.info(
            "Company added: player=%s company=%s industry=%s xp_awarded=%d level=%d",
            player_id,
            company_id,
            industry.value,
            update.xp_awarded,
            update.empire.level,
        )
        return update

    def remove_company(self, player_id: str, company_id: str) -> EmpireUpdate:
        """
        Удаление компании. XP не отзывается, уровень не понижается.

        Raises:
            NotFoundError: нет империи или компании
        """

        def operation(empire: Empire, progress: _Progress) -> None:
            progress.company = empire.remove_company(company_id, self.level_table)
            self._settle_synergies(empire, progress)

        update = self._mutate(player_id, operation)
        logger.info("Company removed: player=%s company=%s", player_id, company_id)
        return update

    def update_company_stats(
        self,
        player_id: str,
        company_id: str,
        *,
        name: Optional[str] = None,
        level: Optional[int] = None,
        revenue: Optional[float] = None,
        value: Optional[float] = None,
        expenses: Optional[float] = None,
    ) -> EmpireUpdate:
        def operation(empire: Empire, progress: _Progress) -> None:
            progress.company = empire.update_company_stats(
                company_id,
                name=name,
                level=level,
                revenue=revenue,
                value=value,
                expenses=expenses,
                level_table=self.level_table,
            )

        return self._mutate(player_id, operation)

    def set_headquarters(self, player_id: str, company_id: str) -> EmpireUpdate:
        def operation(empire: Empire, progress: _Progress) -> None:
            progress.company = empire.set_headquarters(company_id)

        return self._mutate(player_id, operation)

    def add_xp(self, player_id: str, amount: int) -> EmpireUpdate:
        """
        Начисление XP.

        Level-up может открыть синергии с unlock_level, поэтому после
        начисления синергии пересчитываются.

        Raises:
            InvalidArgumentError: amount < 0
        """
        if amount < 0:
            raise InvalidArgumentError(f"XP amount must be non-negative, got {amount}")

        def operation(empire: Empire, progress: _Progress) -> None:
            self._award_xp(empire, amount, progress)
            self._settle_synergies(empire, progress)

        return self._mutate(player_id, operation)

    def recalculate_synergies(self, player_id: str) -> EmpireUpdate:
        """Явный пересчёт (например, после смены каталога или по on_transfer)."""

        def operation(empire: Empire, progress: _Progress) -> None:
            empire.recalculate_aggregates(self.level_table)
            self._settle_synergies(empire, progress)

        return self._mutate(player_id, operation)

    # -------------------------------------------------------------------------
    # Внутреннее
    # -------------------------------------------------------------------------

    def _award_xp(self, empire: Empire, amount: int, progress: _Progress) -> None:
        if amount == 0:
            return
        self.leveling.add_xp(empire, amount)
        progress.xp_awarded += amount

    def _settle_synergies(self, empire: Empire, progress: _Progress) -> None:
        """
        Пересчёт синергий до неподвижной точки.

        Каждая новая синергия даёт XP по tier; level-up меняет multiplier и
        может открыть синергии с unlock_level, поэтому пересчёт повторяется,
        пока появляются новые синергии или растёт уровень. Цикл конечен:
        каждая итерация либо активирует ещё не активную синергию, либо
        поднимает уровень.
        """
        while True:
            level_before = empire.level
            result = self.recalculator.recalculate(empire, self.clock.now())

            for synergy_id in result.deactivated_ids:
                if synergy_id in progress.activated:
                    progress.activated.remove(synergy_id)
                else:
                    progress.deactivated.append(synergy_id)

            for synergy_id in result.activated_ids:
                progress.activated.append(synergy_id)
                definition = self.recalculator.catalog.get(synergy_id)
                if definition is not None:
                    self._award_xp(empire, self.xp_rewards.for_synergy_tier(definition.tier), progress)

            self.leveling.evaluate(empire)

            if not result.activated_ids and empire.level == level_before:
                break

    def _lock_for(self, player_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(player_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[player_id] = lock
            return lock

    def _mutate(self, player_id: str, operation: Callable[[Empire, _Progress], None]) -> EmpireUpdate:
        """
        Read-modify-write с version-checked save и повтором.

        Raises:
            NotFoundError: у игрока нет империи
            ConcurrencyConflictError: конфликт сохранился после max_retries повторов
        """
        attempts = self.config.max_retries + 1
        with self._lock_for(player_id):
            for attempt in range(1, attempts + 1):
                empire = self.get(player_id)
                progress = _Progress(previous_level=empire.level)

                operation(empire, progress)

                try:
                    saved = self.repo.save(empire)
                except ConcurrencyConflictError as e:
                    if attempt == attempts:
                        raise
                    logger.warning(
                        "Empire write conflict (attempt %d/%d), reloading: %s", attempt, attempts, e
                    )
                    continue

                return EmpireUpdate(
                    empire=saved,
                    previous_level=progress.previous_level,
                    xp_awarded=progress.xp_awarded,
                    activated_synergies=tuple(progress.activated),
                    deactivated_synergies=tuple(progress.deactivated),
                    company=progress.company,
                )

        raise AssertionError("unreachable")


def _coerce_industry(industry: EmpireIndustry | str) -> EmpireIndustry:
    try:
        return EmpireIndustry(industry)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown industry: {industry}") from e
