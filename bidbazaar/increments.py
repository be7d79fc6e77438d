"""
Bid increment calculator.

Valid bids sit on a grid anchored at the starting price: every valid
amount is ``starting_price + k * increment`` for a positive integer ``k``,
where the increment is 5% of the starting price rounded up to a whole
rupee. The grid shown to a bidder is bounded so it stays displayable.
"""

import math
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Iterator, Union

Number = Union[int, float, str, Decimal]

INCREMENT_RATE = Decimal("0.05")
MAX_STEPS_ABOVE_CURRENT = 20


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def increment(starting_price: Number) -> Decimal:
    """Smallest step between valid bids: ``ceil(starting_price * 0.05)``."""
    start = to_decimal(starting_price)
    if not start.is_finite() or start <= 0:
        raise ValueError(f"Starting price must be positive, got {starting_price!r}")
    return Decimal(math.ceil(start * INCREMENT_RATE))


def _last_step(start: Decimal, current: Decimal, step: Decimal) -> int:
    # Number of grid values at or below the current price.
    below = max(0, math.floor((current - start) / step))
    # First grid index whose value reaches twice the current price.
    doubled = max(1, math.ceil((2 * current - start) / step))
    return min(below + MAX_STEPS_ABOVE_CURRENT, doubled)


def valid_amounts(starting_price: Number, current_price: Number) -> Iterator[Decimal]:
    """
    Yield the valid bid amounts for a listing, lowest first.

    Starts at ``starting_price + increment`` and stops after the first value
    that is at least twice the current price, or after twenty values above
    the current price, whichever comes first.
    """
    start = to_decimal(starting_price)
    step = increment(start)
    current = max(to_decimal(current_price), start)
    for k in range(1, _last_step(start, current, step) + 1):
        yield start + k * step


def is_valid_amount(starting_price: Number, current_price: Number, amount: Number) -> bool:
    """Whether ``amount`` is one of ``valid_amounts(starting_price, current_price)``."""
    start = to_decimal(starting_price)
    step = increment(start)
    current = max(to_decimal(current_price), start)
    value = to_decimal(amount)
    if not value.is_finite() or value <= start:
        return False
    if value > start + _last_step(start, current, step) * step:
        return False
    with localcontext() as ctx:
        # An offset that cannot be represented exactly is not on the grid.
        ctx.traps[Inexact] = True
        try:
            return (value - start) % step == 0
        except Inexact:
            return False


def next_valid_bid(starting_price: Number, current_price: Number) -> Decimal:
    """The lowest valid amount strictly above the current price."""
    current = to_decimal(current_price)
    for amount in valid_amounts(starting_price, current):
        if amount > current:
            return amount
    return current + increment(starting_price)
