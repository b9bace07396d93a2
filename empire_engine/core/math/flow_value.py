"""
Flow Value — стоимость передачи и экономия относительно рынка

- transfer_value = quantity * price_per_unit
- savings = (market_price - price_per_unit) * total_quantity_transferred,
  только для internal потоков и только если рынок дороже
"""

import math


def _require_finite_non_negative(name: str, value: float) -> None:
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"{name} must be finite, got {value}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def transfer_value(quantity: float, price_per_unit: float) -> float:
    """
    Стоимость одной передачи.

    Args:
        quantity: Количество за передачу (>= 0)
        price_per_unit: Цена за единицу (>= 0, 0 для чисто внутренних передач)

    Returns:
        quantity * price_per_unit

    Examples:
        >>> transfer_value(100_000, 0.0)
        0.0
        >>> transfer_value(250, 4.0)
        1000.0
    """
    _require_finite_non_negative("quantity", quantity)
    _require_finite_non_negative("price_per_unit", price_per_unit)
    return quantity * price_per_unit


def savings_vs_market(
    is_internal: bool,
    price_per_unit: float,
    market_price: float,
    total_quantity_transferred: float,
) -> float:
    """
    Экономия internal потока относительно рыночной цены.

    Args:
        is_internal: Поток между компаниями одного владельца
        price_per_unit: Цена потока за единицу
        market_price: Рыночная цена за единицу
        total_quantity_transferred: Накопленное переданное количество

    Returns:
        (market_price - price_per_unit) * total_quantity_transferred,
        либо 0.0 если поток не internal или рынок не дороже
    """
    _require_finite_non_negative("market_price", market_price)
    if not is_internal or market_price <= price_per_unit:
        return 0.0
    return (market_price - price_per_unit) * total_quantity_transferred
