"""
Scheduling — арифметика периодов ресурсных потоков

Правила:
- сдвиг на дни: обычный timedelta
- сдвиг на месяцы: тот же день через N месяцев; если такого дня нет,
  берётся последний день месяца (31 января → 28/29 февраля)

Следующий запуск всегда считается от "now", а не от предыдущего next_run:
после простоя планировщика пропущенные периоды НЕ догоняются (без backfill).
"""

import calendar
from datetime import datetime, timedelta
from typing import Optional


def add_months(moment: datetime, months: int) -> datetime:
    """
    Сдвиг datetime на заданное число месяцев с clamp по концу месяца.

    Args:
        moment: Исходный момент (время суток и tzinfo сохраняются)
        months: Количество месяцев (>= 0)

    Returns:
        Новый момент

    Examples:
        >>> add_months(datetime(2026, 1, 31), 1)
        datetime.datetime(2026, 2, 28, 0, 0)
        >>> add_months(datetime(2026, 11, 15), 2)
        datetime.datetime(2027, 1, 15, 0, 0)
    """
    if months < 0:
        raise ValueError(f"months must be non-negative, got {months}")

    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def shift(moment: datetime, days: int = 0, months: int = 0) -> datetime:
    """
    Сдвиг на months месяцев, затем на days дней.

    Args:
        moment: Точка отсчёта ("now" планировщика)
        days: Дни (>= 0)
        months: Месяцы (>= 0)
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    return add_months(moment, months) + timedelta(days=days)


def is_due(next_run_at: Optional[datetime], now: datetime) -> bool:
    """Наступил ли запуск: None трактуется как "немедленно"."""
    return next_run_at is None or next_run_at <= now
