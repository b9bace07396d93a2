"""
Тесты FlowService

Coverage:
- create_flow: валидация, snapshot компаний, next_run_at, XP империи
- pause / resume / cancel с version-checked записью
- cancel на COMPLETED → InvalidTransitionError, поток не меняется
- сквозной сценарий: создание → scheduler pass → статистика
- savings_report
"""

from datetime import datetime, timedelta, timezone

import pytest

from empire_engine.core.clock import FixedClock
from empire_engine.core.domain import FlowFrequency, FlowStatus, ResourceKind
from empire_engine.core.errors import (
    ConcurrencyConflictError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
)
from empire_engine.flows import FlowScheduler, SchedulerConfig
from empire_engine.services import EmpireService, FlowService
from empire_engine.storage import InMemoryEmpireRepository, InMemoryResourceFlowRepository


NOW = datetime(2026, 1, 31, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def flow_repo():
    return InMemoryResourceFlowRepository()


@pytest.fixture
def empire_service(clock, flow_repo):
    svc = EmpireService(InMemoryEmpireRepository(), clock, flow_repo=flow_repo)
    svc.get_or_create("p1")
    svc.add_company("p1", "C1", "Acme Power", "Energy")
    svc.add_company("p1", "C2", "Acme Works", "Manufacturing")
    return svc


@pytest.fixture
def service(flow_repo, empire_service, clock):
    return FlowService(flow_repo, empire_service, clock)


def _create(service, frequency=FlowFrequency.MONTHLY, **overrides):
    fields = {
        "player_id": "p1",
        "source_company_id": "C1",
        "destination_company_id": "C2",
        "resource": ResourceKind.ENERGY,
        "quantity_per_transfer": 100_000,
        "frequency": frequency,
    }
    fields.update(overrides)
    return service.create_flow(**fields)


class TestCreateFlow:
    """Создание потока."""

    def test_creates_active_flow(self, service, flow_repo):
        flow = _create(service)

        assert flow.status == FlowStatus.ACTIVE
        assert flow.version == 1
        assert flow.source.name == "Acme Power"
        assert flow.destination.industry.value == "Manufacturing"
        assert flow.created_at == NOW
        assert flow.next_run_at == datetime(2026, 2, 28, 10, 0, tzinfo=timezone.utc)
        assert flow_repo.get(flow.flow_id) is not None

    def test_one_time_due_immediately(self, service):
        flow = _create(service, frequency="one_time")
        assert flow.next_run_at is None
        assert flow.is_due(NOW)

    def test_awards_flow_xp(self, service, empire_service):
        before = empire_service.get("p1").xp
        _create(service)
        assert empire_service.get("p1").xp == before + 500

    def test_failed_xp_grant_removes_flow(self, service, empire_service, flow_repo, monkeypatch):
        """Конфликт записи империи после всех повторов: поток не остаётся."""
        xp_before = empire_service.get("p1").xp

        def always_conflicting(empire):
            raise ConcurrencyConflictError("empire", empire.player_id, expected_version=1, actual_version=2)

        monkeypatch.setattr(empire_service.repo, "save", always_conflicting)

        with pytest.raises(ConcurrencyConflictError):
            _create(service)

        assert flow_repo.list_by_player("p1") == []
        assert empire_service.get("p1").xp == xp_before

    def test_unique_ids(self, service):
        assert _create(service).flow_id != _create(service).flow_id

    @pytest.mark.parametrize(
        "overrides",
        [
            {"quantity_per_transfer": 0},
            {"quantity_per_transfer": -10},
            {"price_per_unit": -1.0},
            {"destination_company_id": "C1"},
            {"resource": "unobtainium"},
            {"frequency": "hourly"},
        ],
    )
    def test_invalid_arguments(self, service, flow_repo, overrides):
        with pytest.raises(InvalidArgumentError):
            _create(service, **overrides)
        assert flow_repo.list_by_player("p1") == []

    def test_company_not_in_empire(self, service):
        with pytest.raises(NotFoundError):
            _create(service, destination_company_id="C9")

    def test_missing_empire(self, service):
        with pytest.raises(NotFoundError):
            _create(service, player_id="ghost")


class TestFlowActions:
    """pause / resume / cancel."""

    def test_pause_and_resume(self, service, clock):
        flow = _create(service, frequency=FlowFrequency.WEEKLY)

        paused = service.pause(flow.flow_id)
        assert paused.flow.status == FlowStatus.PAUSED
        assert service.get_flow(flow.flow_id).status == FlowStatus.PAUSED

        clock.advance(timedelta(days=20))
        resumed = service.resume(flow.flow_id)

        assert resumed.flow.status == FlowStatus.ACTIVE
        assert resumed.flow.next_run_at == clock.now() + timedelta(days=7)

    def test_cancel(self, service):
        flow = _create(service)
        result = service.cancel(flow.flow_id)

        assert result.flow.status == FlowStatus.CANCELLED
        assert result.flow.next_run_at is None
        assert result.transition.previous_status == FlowStatus.ACTIVE

    def test_cancel_completed_rejected(self, service, flow_repo, clock):
        flow = _create(service, frequency=FlowFrequency.ONE_TIME)
        with FlowScheduler(flow_repo, clock, SchedulerConfig(poll_interval_sec=0.01)) as scheduler:
            scheduler.run_pass()

        completed = service.get_flow(flow.flow_id)
        assert completed.status == FlowStatus.COMPLETED

        with pytest.raises(InvalidTransitionError):
            service.cancel(flow.flow_id)

        assert service.get_flow(flow.flow_id) == completed

    def test_missing_flow(self, service):
        with pytest.raises(NotFoundError):
            service.pause("nope")

    def test_pause_takes_effect_next_pass(self, service, flow_repo, clock):
        flow = _create(service, frequency=FlowFrequency.DAILY)
        service.pause(flow.flow_id)
        clock.advance(timedelta(days=3))

        with FlowScheduler(flow_repo, clock, SchedulerConfig(poll_interval_sec=0.01)) as scheduler:
            report = scheduler.run_pass()

        assert report.due_count == 0
        assert service.get_flow(flow.flow_id).transfer_count == 0


class TestQueriesAndSavings:
    """Запросы и экономия."""

    def test_list_flows_and_stats(self, service, empire_service):
        first = _create(service)
        _create(service, frequency=FlowFrequency.DAILY)
        service.pause(first.flow_id)

        assert len(service.list_flows("p1")) == 2
        assert [f.flow_id for f in service.list_flows("p1", FlowStatus.PAUSED)] == [first.flow_id]
        assert empire_service.get_stats("p1").resource_flows_count == 2

    def test_savings_report(self, service, flow_repo, clock):
        flow = _create(service, price_per_unit=1.0, quantity_per_transfer=1_000, frequency=FlowFrequency.DAILY)
        clock.advance(timedelta(days=1))
        with FlowScheduler(flow_repo, clock, SchedulerConfig(poll_interval_sec=0.01)) as scheduler:
            scheduler.run_pass()

        report = service.savings_report(flow.flow_id, market_price=4.0)

        assert report.savings == 3_000
        assert report.total_quantity_transferred == 1_000
        assert service.get_flow(flow.flow_id).savings_vs_market == 3_000

    def test_savings_negative_market_price(self, service):
        flow = _create(service)
        with pytest.raises(InvalidArgumentError):
            service.savings_report(flow.flow_id, market_price=-1)
