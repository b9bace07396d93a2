"""
Математические примитивы ресурсных потоков.

- scheduling: арифметика периодов (дни / месяцы с clamp) без backfill
- flow_value: стоимость передачи и экономия относительно рынка
"""

from empire_engine.core.math.flow_value import savings_vs_market, transfer_value
from empire_engine.core.math.scheduling import add_months, is_due, shift

__all__ = [
    # Scheduling
    "add_months",
    "shift",
    "is_due",
    # Flow value
    "transfer_value",
    "savings_vs_market",
]
