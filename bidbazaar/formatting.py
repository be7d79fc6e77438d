"""Display helpers for rupee amounts and auction countdowns."""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, str, Decimal]

RUPEE = "₹"


def _group_indian(digits: str) -> str:
    # 12345678 -> 1,23,45,678
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Number, show_decimal: bool = False) -> str:
    """Format an amount as Indian Rupees, e.g. ``₹1,00,000``."""
    value = Decimal(str(amount))
    quantum = Decimal("0.01") if show_decimal else Decimal("1")
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):f}".partition(".")
    text = f"{sign}{RUPEE}{_group_indian(whole)}"
    if show_decimal:
        text += f".{fraction}"
    return text


def format_time_left(end_time: datetime, now: datetime) -> str:
    """Countdown text for an auction; ``"Ended"`` once the end is reached."""
    remaining = int((end_time - now).total_seconds())
    if remaining <= 0:
        return "Ended"

    days, rest = divmod(remaining, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0 or days > 0:
        parts.append(f"{minutes}m")
    if days == 0:
        parts.append(f"{seconds}s")
    return " ".join(parts)
