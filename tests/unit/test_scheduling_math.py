"""
Тесты арифметики периодов и стоимости потоков

Coverage:
- add_months: clamp по концу месяца, переход через год, високосный год
- shift: дни и месяцы
- is_due: None = немедленно
- transfer_value / savings_vs_market
"""

from datetime import datetime, timezone

import pytest

from empire_engine.core.domain import FlowFrequency, next_run_after
from empire_engine.core.math import add_months, is_due, savings_vs_market, shift, transfer_value


UTC = timezone.utc


class TestAddMonths:
    """Сдвиг на месяцы с clamp."""

    def test_same_day_next_month(self):
        assert add_months(datetime(2026, 3, 15, 9, 30, tzinfo=UTC), 1) == datetime(
            2026, 4, 15, 9, 30, tzinfo=UTC
        )

    def test_clamps_to_end_of_february(self):
        """31 января → 28 февраля (невисокосный год)."""
        assert add_months(datetime(2026, 1, 31, tzinfo=UTC), 1) == datetime(2026, 2, 28, tzinfo=UTC)

    def test_clamps_to_leap_day(self):
        assert add_months(datetime(2028, 1, 31, tzinfo=UTC), 1) == datetime(2028, 2, 29, tzinfo=UTC)

    def test_crosses_year_boundary(self):
        assert add_months(datetime(2026, 11, 30, tzinfo=UTC), 3) == datetime(2027, 2, 28, tzinfo=UTC)

    def test_zero_months_is_identity(self):
        moment = datetime(2026, 5, 31, tzinfo=UTC)
        assert add_months(moment, 0) == moment

    def test_preserves_tzinfo(self):
        assert add_months(datetime(2026, 1, 1, tzinfo=UTC), 1).tzinfo is UTC

    def test_negative_months_rejected(self):
        with pytest.raises(ValueError):
            add_months(datetime(2026, 1, 1, tzinfo=UTC), -1)


class TestShift:
    """Сдвиг на дни и месяцы."""

    def test_days(self):
        assert shift(datetime(2026, 12, 31, tzinfo=UTC), days=1) == datetime(2027, 1, 1, tzinfo=UTC)

    def test_week(self):
        assert shift(datetime(2026, 2, 25, tzinfo=UTC), days=7) == datetime(2026, 3, 4, tzinfo=UTC)

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            shift(datetime(2026, 1, 1, tzinfo=UTC), days=-1)


class TestNextRunAfter:
    """Следующий запуск по частоте."""

    NOW = datetime(2026, 1, 31, 12, 0, tzinfo=UTC)

    def test_one_time_has_no_next_run(self):
        assert next_run_after(FlowFrequency.ONE_TIME, self.NOW) is None

    def test_daily(self):
        assert next_run_after(FlowFrequency.DAILY, self.NOW) == datetime(2026, 2, 1, 12, 0, tzinfo=UTC)

    def test_weekly(self):
        assert next_run_after(FlowFrequency.WEEKLY, self.NOW) == datetime(2026, 2, 7, 12, 0, tzinfo=UTC)

    def test_monthly_clamped(self):
        assert next_run_after(FlowFrequency.MONTHLY, self.NOW) == datetime(2026, 2, 28, 12, 0, tzinfo=UTC)


class TestIsDue:
    """Наступление запуска."""

    NOW = datetime(2026, 6, 1, tzinfo=UTC)

    def test_none_is_due_immediately(self):
        assert is_due(None, self.NOW)

    def test_past_and_exact_are_due(self):
        assert is_due(datetime(2026, 5, 31, tzinfo=UTC), self.NOW)
        assert is_due(self.NOW, self.NOW)

    def test_future_not_due(self):
        assert not is_due(datetime(2026, 6, 2, tzinfo=UTC), self.NOW)


class TestFlowValue:
    """Стоимость передачи и экономия."""

    def test_transfer_value(self):
        assert transfer_value(250, 4.0) == 1000.0
        assert transfer_value(100_000, 0.0) == 0.0

    @pytest.mark.parametrize("quantity,price", [(-1, 1.0), (1, -1.0), (float("nan"), 1.0), (1, float("inf"))])
    def test_transfer_value_rejects_invalid(self, quantity, price):
        with pytest.raises(ValueError):
            transfer_value(quantity, price)

    def test_savings_internal_below_market(self):
        assert savings_vs_market(True, 2.0, 5.0, 1000) == 3000.0

    def test_no_savings_when_market_not_higher(self):
        assert savings_vs_market(True, 5.0, 5.0, 1000) == 0.0
        assert savings_vs_market(True, 6.0, 5.0, 1000) == 0.0

    def test_no_savings_for_external_flow(self):
        assert savings_vs_market(False, 0.0, 5.0, 1000) == 0.0
