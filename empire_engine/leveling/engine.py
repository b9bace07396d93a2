"""
Leveling Engine — прогрессия уровня империи

Алгоритм add_xp(amount):
1. amount >= 0 добавляется к XP империи
2. Начиная с текущего уровня, проверяются требования СЛЕДУЮЩЕГО уровня:
   - накопленный XP >= xp_required
   - число компаний >= min_companies
   - число различных индустрий >= min_industries
3. Пока все три выполнены и уровень не максимальный: уровень +1,
   synergy_multiplier = multiplier нового уровня
4. Остановка на первом уровне, требования которого не выполнены полностью:
   уровень никогда не перепрыгивается, даже если XP хватает на более высокий

Engine не сохраняет агрегат: запись делает вызывающий код (batch writes).
Уровень монотонен: engine его никогда не понижает.
"""

import logging
from dataclasses import dataclass

from empire_engine.core.domain.empire import Empire
from empire_engine.core.domain.levels import DEFAULT_LEVEL_TABLE, LevelDefinition, LevelTable
from empire_engine.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class LevelGateCheck:
    """Проверка требований одного уровня."""

    level: int
    xp_ok: bool
    companies_ok: bool
    industries_ok: bool

    @property
    def passed(self) -> bool:
        return self.xp_ok and self.companies_ok and self.industries_ok

    @property
    def block_reason(self) -> str:
        reasons = []
        if not self.xp_ok:
            reasons.append("xp")
        if not self.companies_ok:
            reasons.append("companies")
        if not self.industries_ok:
            reasons.append("industries")
        return ",".join(reasons)


@dataclass(frozen=True)
class LevelUpResult:
    """Результат начисления XP."""

    leveled_up: bool
    previous_level: int
    new_level: int
    xp: int

    # Требования следующего уровня, которые остановили продвижение (None на max)
    blocked_by: LevelGateCheck | None

    details: str

    @property
    def levels_gained(self) -> int:
        return self.new_level - self.previous_level


# =============================================================================
# ENGINE
# =============================================================================


class LevelingEngine:
    """Пороговое продвижение уровня по таблице уровней."""

    def __init__(self, level_table: LevelTable = DEFAULT_LEVEL_TABLE):
        self.level_table = level_table

    def check_level(self, empire: Empire, definition: LevelDefinition) -> LevelGateCheck:
        return LevelGateCheck(
            level=definition.level,
            xp_ok=empire.xp >= definition.xp_required,
            companies_ok=len(empire.companies) >= definition.min_companies,
            industries_ok=len(empire.get_industries()) >= definition.min_industries,
        )

    def check_next_level(self, empire: Empire) -> LevelGateCheck | None:
        """Требования следующего уровня; None если уровень максимальный."""
        next_definition = self.level_table.get(empire.level + 1)
        if next_definition is None:
            return None
        return self.check_level(empire, next_definition)

    def add_xp(self, empire: Empire, amount: int) -> LevelUpResult:
        """
        Начисление XP и продвижение уровня по одному.

        Args:
            empire: Агрегат (изменяется на месте, не сохраняется)
            amount: XP (>= 0)

        Returns:
            LevelUpResult: был ли level-up и итоговый уровень

        Raises:
            InvalidArgumentError: amount < 0
        """
        if amount < 0:
            raise InvalidArgumentError(f"XP amount must be non-negative, got {amount}")

        empire.xp += amount
        return self.evaluate(empire)

    def evaluate(self, empire: Empire) -> LevelUpResult:
        """Продвижение уровня без начисления XP (после изменения состава)."""
        previous_level = empire.level
        blocked_by: LevelGateCheck | None = None

        while empire.level < self.level_table.max_level:
            check = self.check_next_level(empire)
            if check is None:
                break
            if not check.passed:
                blocked_by = check
                break

            empire.level += 1
            empire.synergy_multiplier = self.level_table.require(empire.level).multiplier
            logger.info(
                "Empire level up: player=%s level=%d multiplier=%.2f",
                empire.player_id,
                empire.level,
                empire.synergy_multiplier,
            )

        leveled_up = empire.level > previous_level
        if blocked_by is not None:
            details = f"Level {empire.level}, next level blocked by: {blocked_by.block_reason}"
        else:
            details = f"Level {empire.level} (max)"

        return LevelUpResult(
            leveled_up=leveled_up,
            previous_level=previous_level,
            new_level=empire.level,
            xp=empire.xp,
            blocked_by=blocked_by,
            details=details,
        )

    def qualifying_level(self, empire: Empire) -> int:
        """
        Наивысший уровень, достижимый последовательно из уровня 1 при текущем
        состоянии (без изменения empire).
        """
        level = 1
        for definition in self.level_table.levels[1:]:
            if not self.check_level(empire, definition).passed:
                break
            level = definition.level
        return level
