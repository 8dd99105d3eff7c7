"""
Money bounds shared by catalog prices and order amounts.
"""
from decimal import Decimal

CENT = Decimal("0.01")

# Money columns are DecimalField(max_digits=12, decimal_places=2).
MONEY_LIMIT = Decimal("1e10")


def exceeds_money_limit(value: Decimal) -> bool:
    """Whether ``value`` does not fit a money column once rounded to cents."""
    value = abs(value)
    return value >= MONEY_LIMIT or value.quantize(CENT) >= MONEY_LIMIT
