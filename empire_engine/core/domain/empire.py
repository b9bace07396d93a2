"""
Empire — агрегат империи игрока

Одна запись на игрока (player_id уникален). Империя владеет списком
EmpireCompany и списком ActiveSynergy (вне родителя они не существуют).

Инварианты:
- total_value = сумма value участников
- monthly_revenue / monthly_expenses = суммы revenue / expenses участников
- industry_count = размер множества различных индустрий участников
- ровно один участник is_headquarters=True, если список непуст
- synergy_multiplier = multiplier текущего уровня (после recalculate_aggregates)

Структурные операции (add/remove/update/set_headquarters) не начисляют XP
и не сохраняют агрегат: это делает EmpireService, чтобы запись была одна
на всю логическую операцию.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from empire_engine.core.errors import DuplicateMemberError, InvalidArgumentError, NotFoundError

from .enums import EmpireIndustry, SynergyBonusTarget, SynergyBonusType, SynergyTier
from .levels import DEFAULT_LEVEL_TABLE, LevelTable


# =============================================================================
# MEMBERS
# =============================================================================


class EmpireCompany(BaseModel):
    """
    Участник империи (snapshot компании).

    Immutable: изменения статистики создают новый экземпляр.
    """

    company_id: str = Field(..., min_length=1, description="Идентификатор компании")
    name: str = Field(..., min_length=1, description="Отображаемое имя")
    industry: EmpireIndustry = Field(..., description="Индустрия")
    level: int = Field(1, ge=1, description="Уровень компании")
    revenue: float = Field(0.0, ge=0, description="Месячная выручка")
    value: float = Field(0.0, ge=0, description="Оценка стоимости")
    expenses: float = Field(0.0, ge=0, description="Месячные расходы")
    is_headquarters: bool = Field(False, description="Штаб-квартира империи")
    joined_at: datetime = Field(..., description="Момент вступления в империю")

    model_config = {"frozen": True}


class CalculatedBonus(BaseModel):
    """Рассчитанный бонус активной синергии"""

    bonus_type: SynergyBonusType = Field(..., description="Тип бонуса из каталога")
    target: SynergyBonusTarget = Field(..., description="Целевая метрика")
    base_value: float = Field(..., description="Базовое значение из каталога")
    multiplier: float = Field(1.0, description="Применённый множитель")
    final_value: float = Field(..., description="Итоговое значение")
    description: str = Field(..., description="Описание")

    model_config = {"frozen": True}


class ActiveSynergy(BaseModel):
    """
    Активная синергия империи.

    Полностью производная сущность: пересчитывается целиком при изменении
    состава, никогда не патчится инкрементально.
    """

    synergy_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    tier: SynergyTier
    activated_at: datetime
    contributing_company_ids: tuple[str, ...] = Field(default_factory=tuple)
    bonuses: tuple[CalculatedBonus, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    def total_bonus(self) -> float:
        return sum(bonus.final_value for bonus in self.bonuses)


class EmpireStats(BaseModel):
    """Сводная статистика империи (read model)"""

    total_companies: int
    industries_covered: tuple[EmpireIndustry, ...]
    active_synergies_count: int
    total_synergy_bonus: float
    monthly_passive_income: float
    resource_flows_count: int
    empire_level: int
    empire_xp: int
    next_level_xp: int
    total_asset_value: float

    model_config = {"frozen": True}


# =============================================================================
# EMPIRE AGGREGATE
# =============================================================================


class Empire(BaseModel):
    """
    Корневой агрегат империи.

    version используется хранилищем для optimistic concurrency:
    запись проходит только если версия в хранилище совпадает с прочитанной.
    """

    # Идентификация
    player_id: str = Field(..., min_length=1, description="Владелец (уникален)")
    name: str = Field("My Empire", min_length=1, max_length=50, description="Имя империи")

    # Состав
    companies: list[EmpireCompany] = Field(default_factory=list)
    active_synergies: list[ActiveSynergy] = Field(default_factory=list)

    # Производные итоги
    total_value: float = Field(0.0, ge=0)
    monthly_revenue: float = Field(0.0, ge=0)
    monthly_expenses: float = Field(0.0, ge=0)
    industry_count: int = Field(0, ge=0)

    # Прогрессия
    level: int = Field(1, ge=1)
    xp: int = Field(0, ge=0)
    synergy_multiplier: float = Field(1.0, ge=1.0)

    # Время и версия
    last_recalculated_at: datetime | None = None
    created_at: datetime | None = None
    version: int = Field(0, ge=0)

    model_config = {"validate_assignment": True}

    # -------------------------------------------------------------------------
    # Запросы
    # -------------------------------------------------------------------------

    def find_company(self, company_id: str) -> EmpireCompany | None:
        for company in self.companies:
            if company.company_id == company_id:
                return company
        return None

    def _index_of(self, company_id: str) -> int:
        for index, company in enumerate(self.companies):
            if company.company_id == company_id:
                return index
        raise NotFoundError("company", company_id)

    def get_industries(self) -> list[EmpireIndustry]:
        """Различные индустрии в порядке первого появления."""
        seen: dict[EmpireIndustry, None] = {}
        for company in self.companies:
            seen.setdefault(company.industry, None)
        return list(seen)

    def has_industry(self, industry: EmpireIndustry) -> bool:
        return any(company.industry == industry for company in self.companies)

    @property
    def headquarters(self) -> EmpireCompany | None:
        for company in self.companies:
            if company.is_headquarters:
                return company
        return None

    # -------------------------------------------------------------------------
    # Структурные операции
    # -------------------------------------------------------------------------

    def add_company(
        self,
        company_id: str,
        name: str,
        industry: EmpireIndustry | str,
        level: int = 1,
        revenue: float = 0.0,
        value: float = 0.0,
        *,
        now: datetime,
        expenses: float = 0.0,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
    ) -> EmpireCompany:
        """
        Добавление компании в империю.

        Первая компания становится штаб-квартирой. После вставки
        пересчитываются агрегаты.

        Raises:
            DuplicateMemberError: company_id уже в империи
            InvalidArgumentError: неизвестная индустрия или невалидные значения
        """
        if self.find_company(company_id) is not None:
            raise DuplicateMemberError(company_id)

        company = _build_company(
            company_id=company_id,
            name=name,
            industry=industry,
            level=level,
            revenue=revenue,
            value=value,
            expenses=expenses,
            is_headquarters=len(self.companies) == 0,
            joined_at=now,
        )
        self.companies.append(company)
        self.recalculate_aggregates(level_table)
        return company

    def remove_company(
        self,
        company_id: str,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
    ) -> EmpireCompany:
        """
        Удаление компании.

        Если удалена штаб-квартира и участники остались, флаг переходит
        первому оставшемуся. XP не отзывается.

        Raises:
            NotFoundError: компании нет в империи
        """
        index = self._index_of(company_id)
        removed = self.companies.pop(index)

        if removed.is_headquarters and self.companies:
            self.companies[0] = self.companies[0].model_copy(update={"is_headquarters": True})

        self.recalculate_aggregates(level_table)
        return removed

    def update_company_stats(
        self,
        company_id: str,
        *,
        name: str | None = None,
        level: int | None = None,
        revenue: float | None = None,
        value: float | None = None,
        expenses: float | None = None,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
    ) -> EmpireCompany:
        """
        Частичное обновление статистики компании (только переданные поля).

        Raises:
            NotFoundError: компании нет в империи
            InvalidArgumentError: невалидные значения
        """
        index = self._index_of(company_id)
        current = self.companies[index]

        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if level is not None:
            updates["level"] = level
        if revenue is not None:
            updates["revenue"] = revenue
        if value is not None:
            updates["value"] = value
        if expenses is not None:
            updates["expenses"] = expenses

        updated = _build_company(**{**current.model_dump(), **updates})
        self.companies[index] = updated
        self.recalculate_aggregates(level_table)
        return updated

    def set_headquarters(self, company_id: str) -> EmpireCompany:
        """
        Назначение штаб-квартиры: флаг снимается со всех остальных.

        Raises:
            NotFoundError: компании нет в империи
        """
        target_index = self._index_of(company_id)
        self.companies = [
            company.model_copy(update={"is_headquarters": index == target_index})
            for index, company in enumerate(self.companies)
        ]
        return self.companies[target_index]

    # -------------------------------------------------------------------------
    # Производные значения
    # -------------------------------------------------------------------------

    def recalculate_aggregates(self, level_table: LevelTable = DEFAULT_LEVEL_TABLE) -> None:
        """
        Пересчёт итогов по текущему составу.

        synergy_multiplier фиксируется на multiplier ТЕКУЩЕГО уровня, уровень
        здесь не пересчитывается (это делает LevelingEngine). Идемпотентно.
        """
        self.total_value = sum(company.value for company in self.companies)
        self.monthly_revenue = sum(company.revenue for company in self.companies)
        self.monthly_expenses = sum(company.expenses for company in self.companies)
        self.industry_count = len(self.get_industries())
        self.synergy_multiplier = level_table.multiplier_for(self.level)

    def get_stats(
        self,
        level_table: LevelTable = DEFAULT_LEVEL_TABLE,
        resource_flows_count: int = 0,
    ) -> EmpireStats:
        """Сводная статистика для отображения."""
        next_level = level_table.get(self.level + 1)

        # Бонус выручки/прибыли от активных синергий
        total_synergy_bonus = 0.0
        for synergy in self.active_synergies:
            for bonus in synergy.bonuses:
                if bonus.target in (SynergyBonusTarget.ALL_PROFITS, SynergyBonusTarget.REVENUE):
                    total_synergy_bonus += bonus.final_value

        return EmpireStats(
            total_companies=len(self.companies),
            industries_covered=tuple(self.get_industries()),
            active_synergies_count=len(self.active_synergies),
            total_synergy_bonus=total_synergy_bonus,
            monthly_passive_income=self.monthly_revenue - self.monthly_expenses,
            resource_flows_count=resource_flows_count,
            empire_level=self.level,
            empire_xp=self.xp,
            next_level_xp=next_level.xp_required if next_level is not None else self.xp,
            total_asset_value=self.total_value,
        )


def _build_company(**fields: Any) -> EmpireCompany:
    """Создание EmpireCompany с переводом ошибок валидации в InvalidArgumentError."""
    try:
        return EmpireCompany(**fields)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid company data: {e}") from e
