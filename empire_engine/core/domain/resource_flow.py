"""
ResourceFlow — запланированная передача ресурса между компаниями игрока

Поток — peer-сущность: ссылается на две компании по id, но не принадлежит
агрегату Empire. Хранится независимо, чтобы планировщик обрабатывал потоки
без загрузки империи.

Жизненный цикл (см. flows.state_machine):
- создаётся ACTIVE; next_run_at = now + период (None для ONE_TIME)
- process_transfer: продвигает счётчики и next_run_at
- ONE_TIME после исполнения → COMPLETED
- COMPLETED и CANCELLED терминальны
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from empire_engine.core.math.flow_value import savings_vs_market, transfer_value
from empire_engine.core.math.scheduling import is_due, shift

from .enums import EmpireIndustry, FlowFrequency, FlowStatus, ResourceKind


# =============================================================================
# SCHEDULE
# =============================================================================


def next_run_after(frequency: FlowFrequency, now: datetime) -> datetime | None:
    """
    Следующий запуск через один период от now.

    ONE_TIME → None: поток исполняется на ближайшем проходе планировщика.
    """
    period = frequency.period
    if period is None:
        return None
    days, months = period
    return shift(now, days=days, months=months)


# =============================================================================
# NESTED MODELS
# =============================================================================


class FlowEndpoint(BaseModel):
    """Источник или получатель потока (snapshot компании)"""

    company_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    industry: EmpireIndustry

    model_config = {"frozen": True}


@dataclass(frozen=True)
class TransferResult:
    """Результат одной попытки передачи."""

    processed: bool
    reason: str

    quantity: float
    value: float

    # Состояние потока после попытки
    status: FlowStatus
    next_run_at: datetime | None
    transfer_count: int


# =============================================================================
# RESOURCE FLOW MODEL
# =============================================================================


class ResourceFlow(BaseModel):
    """
    Ресурсный поток.

    Мутируется только планировщиком (process_transfer) и явными действиями
    pause / resume / cancel. version — для version-checked записи.
    """

    # Идентификация
    flow_id: str = Field(..., min_length=1, description="Глобально уникальный id")
    player_id: str = Field(..., min_length=1, description="Владелец")

    # Участники
    source: FlowEndpoint
    destination: FlowEndpoint

    # Параметры передачи
    resource: ResourceKind
    quantity_per_transfer: float = Field(..., gt=0)
    price_per_unit: float = Field(0.0, ge=0, description="0 для чисто внутренних передач")
    is_internal: bool = True
    frequency: FlowFrequency

    # Накопленные счётчики
    total_quantity_transferred: float = Field(0.0, ge=0)
    total_value_transferred: float = Field(0.0, ge=0)
    transfer_count: int = Field(0, ge=0)
    savings_vs_market: float = Field(0.0, ge=0)

    # Расписание
    status: FlowStatus = FlowStatus.ACTIVE
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    created_at: datetime | None = None

    version: int = Field(0, ge=0)

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def validate_endpoints(self) -> "ResourceFlow":
        if self.source.company_id == self.destination.company_id:
            raise ValueError("source and destination must be different companies")
        return self

    def is_due(self, now: datetime) -> bool:
        """ACTIVE и next_run_at наступил (None = немедленно)."""
        return self.status == FlowStatus.ACTIVE and is_due(self.next_run_at, now)

    def process_transfer(self, now: datetime) -> TransferResult:
        """
        Исполнение одной передачи.

        Не-ACTIVE поток → no-op с processed=False, счётчики не меняются.

        Для ACTIVE:
        1. value = quantity * price_per_unit
        2. накопленные quantity / value / transfer_count увеличиваются
        3. last_run_at = now
        4. ONE_TIME → COMPLETED, next_run_at = None;
           иначе next_run_at = now + один период (от now, без backfill)
        """
        if self.status != FlowStatus.ACTIVE:
            return self._result(
                processed=False,
                reason=f"status_{self.status.value}",
                quantity=0.0,
                value=0.0,
            )

        value = transfer_value(self.quantity_per_transfer, self.price_per_unit)

        self.total_quantity_transferred += self.quantity_per_transfer
        self.total_value_transferred += value
        self.transfer_count += 1
        self.last_run_at = now

        if self.frequency == FlowFrequency.ONE_TIME:
            self.status = FlowStatus.COMPLETED
            self.next_run_at = None
            reason = "completed_one_time"
        else:
            self.next_run_at = next_run_after(self.frequency, now)
            reason = "recurring_advanced"

        return self._result(
            processed=True,
            reason=reason,
            quantity=self.quantity_per_transfer,
            value=value,
        )

    def calculate_savings(self, market_price: float) -> float:
        """
        Экономия относительно рыночной цены (информационно).

        Результат кешируется в savings_vs_market; на расписание не влияет.
        """
        savings = savings_vs_market(
            is_internal=self.is_internal,
            price_per_unit=self.price_per_unit,
            market_price=market_price,
            total_quantity_transferred=self.total_quantity_transferred,
        )
        self.savings_vs_market = savings
        return savings

    def _result(self, processed: bool, reason: str, quantity: float, value: float) -> TransferResult:
        return TransferResult(
            processed=processed,
            reason=reason,
            quantity=quantity,
            value=value,
            status=self.status,
            next_run_at=self.next_run_at,
            transfer_count=self.transfer_count,
        )
