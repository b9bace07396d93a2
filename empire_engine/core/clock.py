"""
Clock — инжектируемый источник текущего времени.

Планировщик и расписания потоков зависят только от Clock, поэтому sweep
детерминирован в тестах (FixedClock) и использует UTC в production (SystemClock).
Все timestamps — timezone-aware UTC datetime.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Источник текущего времени."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Системное время в UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Управляемое время для тестов и симуляции.

    Время меняется только явно: set() или advance().
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        with self._lock:
            self._now = moment

    def advance(self, delta: timedelta) -> datetime:
        """Сдвиг времени вперёд; возвращает новое значение."""
        with self._lock:
            self._now = self._now + delta
            return self._now
