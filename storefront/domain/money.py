# storefront/domain/money.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Any numeric input -> Decimal with 2 fractional digits, never via float math."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def order_total(lines: Iterable[Tuple[int, Decimal]]) -> Decimal:
    """Sum of quantity * unit price over (quantity, unit_price) pairs."""
    return to_money(sum((to_money(price) * quantity for quantity, price in lines), Decimal("0.00")))
