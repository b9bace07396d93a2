"""
Flow Service — создание ресурсных потоков и явные действия над ними

create → ACTIVE поток, next_run_at = now + период (None для ONE_TIME),
империи владельца начисляется XP "resource flow established".

pause / resume / cancel проходят через FlowStateMachine и сохраняются
version-checked записью: если планировщик успел продвинуть поток между
чтением и записью, поток перечитывается и действие применяется заново.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import ValidationError

from empire_engine.core.clock import Clock
from empire_engine.core.domain.empire import Empire
from empire_engine.core.domain.enums import FlowFrequency, FlowStatus, ResourceKind
from empire_engine.core.domain.resource_flow import FlowEndpoint, ResourceFlow, next_run_after
from empire_engine.core.errors import ConcurrencyConflictError, InvalidArgumentError, NotFoundError
from empire_engine.flows.state_machine import FlowAction, FlowStateMachine, FlowTransitionResult
from empire_engine.storage.base_repository import ResourceFlowRepository

from .empire_service import EmpireService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowSavingsReport:
    """Экономия потока относительно рыночной цены."""

    flow_id: str
    resource: ResourceKind
    is_internal: bool
    price_per_unit: float
    market_price: float
    total_quantity_transferred: float
    savings: float


@dataclass(frozen=True)
class FlowActionResult:
    """Результат pause / resume / cancel."""

    flow: ResourceFlow
    transition: FlowTransitionResult


class FlowService:
    """Caller-facing операции над ресурсными потоками."""

    def __init__(
        self,
        flow_repo: ResourceFlowRepository,
        empire_service: EmpireService,
        clock: Clock,
        state_machine: Optional[FlowStateMachine] = None,
        max_retries: int = 3,
    ):
        self.flow_repo = flow_repo
        self.empire_service = empire_service
        self.clock = clock
        self.state_machine = state_machine or FlowStateMachine()
        self.max_retries = max_retries

    # -------------------------------------------------------------------------
    # Создание
    # -------------------------------------------------------------------------

    def create_flow(
        self,
        player_id: str,
        source_company_id: str,
        destination_company_id: str,
        resource: ResourceKind | str,
        quantity_per_transfer: float,
        frequency: FlowFrequency | str,
        price_per_unit: float = 0.0,
        is_internal: bool = True,
    ) -> ResourceFlow:
        """
        Создание потока между двумя компаниями империи игрока.

        Raises:
            InvalidArgumentError: quantity <= 0, price < 0, source == destination,
                неизвестный ресурс или частота
            NotFoundError: нет империи или компания не входит в неё
            ConcurrencyConflictError / StorageFailureError: XP не начислен,
                созданный поток удалён
        """
        if quantity_per_transfer <= 0:
            raise InvalidArgumentError(
                f"quantity_per_transfer must be positive, got {quantity_per_transfer}"
            )
        if price_per_unit < 0:
            raise InvalidArgumentError(f"price_per_unit must be non-negative, got {price_per_unit}")
        if source_company_id == destination_company_id:
            raise InvalidArgumentError("source and destination must be different companies")

        resource = _coerce(ResourceKind, resource, "resource kind")
        frequency = _coerce(FlowFrequency, frequency, "frequency")

        empire = self.empire_service.get(player_id)
        source = _endpoint(empire, source_company_id)
        destination = _endpoint(empire, destination_company_id)

        now = self.clock.now()
        try:
            flow = ResourceFlow(
                flow_id=str(uuid.uuid4()),
                player_id=player_id,
                source=source,
                destination=destination,
                resource=resource,
                quantity_per_transfer=quantity_per_transfer,
                price_per_unit=price_per_unit,
                is_internal=is_internal,
                frequency=frequency,
                status=FlowStatus.ACTIVE,
                next_run_at=next_run_after(frequency, now),
                created_at=now,
            )
        except ValidationError as e:
            raise InvalidArgumentError(f"Invalid flow data: {e}") from e

        created = self.flow_repo.create(flow)
        try:
            self.empire_service.add_xp(player_id, self.empire_service.xp_rewards.resource_flow_established)
        except Exception:
            # Поток без XP империи не остаётся: повтор вызова не создаст дубликат
            self.flow_repo.delete(created.flow_id)
            logger.warning("Flow %s rolled back: empire XP grant failed", created.flow_id)
            raise

        logger.info(
            "Flow created: flow=%s player=%s %s→%s %s x%s %s",
            created.flow_id,
            player_id,
            source_company_id,
            destination_company_id,
            resource.value,
            quantity_per_transfer,
            frequency.value,
        )
        return created

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def get_flow(self, flow_id: str) -> ResourceFlow:
        flow = self.flow_repo.get(flow_id)
        if flow is None:
            raise NotFoundError("flow", flow_id)
        return flow

    def list_flows(self, player_id: str, status: Optional[FlowStatus] = None) -> List[ResourceFlow]:
        return self.flow_repo.list_by_player(player_id, status)

    def savings_report(self, flow_id: str, market_price: float) -> FlowSavingsReport:
        """
        Экономия против рыночной цены; значение кешируется в savings_vs_market.

        Raises:
            InvalidArgumentError: market_price < 0
        """
        if market_price < 0:
            raise InvalidArgumentError(f"market_price must be non-negative, got {market_price}")

        flow = self._mutate(flow_id, lambda f: f.calculate_savings(market_price))
        return FlowSavingsReport(
            flow_id=flow.flow_id,
            resource=flow.resource,
            is_internal=flow.is_internal,
            price_per_unit=flow.price_per_unit,
            market_price=market_price,
            total_quantity_transferred=flow.total_quantity_transferred,
            savings=flow.savings_vs_market,
        )

    # -------------------------------------------------------------------------
    # Действия
    # -------------------------------------------------------------------------

    def pause(self, flow_id: str) -> FlowActionResult:
        return self._apply(flow_id, FlowAction.PAUSE)

    def resume(self, flow_id: str) -> FlowActionResult:
        return self._apply(flow_id, FlowAction.RESUME)

    def cancel(self, flow_id: str) -> FlowActionResult:
        return self._apply(flow_id, FlowAction.CANCEL)

    def _apply(self, flow_id: str, action: FlowAction) -> FlowActionResult:
        """
        Raises:
            NotFoundError: потока нет
            InvalidTransitionError: действие не разрешено из текущего статуса
                (поток не изменяется и не сохраняется)
        """
        transitions: List[FlowTransitionResult] = []

        def operation(flow: ResourceFlow) -> None:
            transitions.append(self.state_machine.apply(flow, action, self.clock.now()))

        flow = self._mutate(flow_id, operation)
        return FlowActionResult(flow=flow, transition=transitions[-1])

    def _mutate(self, flow_id: str, operation: Callable[[ResourceFlow], object]) -> ResourceFlow:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            flow = self.get_flow(flow_id)
            operation(flow)
            try:
                return self.flow_repo.save(flow)
            except ConcurrencyConflictError as e:
                if attempt == attempts:
                    raise
                logger.warning("Flow write conflict (attempt %d/%d), reloading: %s", attempt, attempts, e)
        raise AssertionError("unreachable")


def _endpoint(empire: Empire, company_id: str) -> FlowEndpoint:
    company = empire.find_company(company_id)
    if company is None:
        raise NotFoundError("company", company_id)
    return FlowEndpoint(company_id=company.company_id, name=company.name, industry=company.industry)


def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown {label}: {value}") from e
