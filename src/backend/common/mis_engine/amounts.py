from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, TypeVar

K = TypeVar("K")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize_amount(value: Decimal, quantize: Optional[Decimal]) -> Decimal:
    if quantize is None:
        return value
    return value.quantize(quantize, rounding=ROUND_HALF_UP)


def percent_of(value: Decimal, base: Decimal) -> Decimal:
    """`value` as a percentage of `base`; zero (never NaN/inf) when base <= 0."""
    if base <= 0:
        return ZERO
    return value / base * HUNDRED


def sum_amounts(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def add_mappings(left: Mapping[K, Decimal], right: Mapping[K, Decimal]) -> dict[K, Decimal]:
    out: dict[K, Decimal] = dict(left)
    for key, amount in right.items():
        out[key] = out.get(key, ZERO) + amount
    return out


def change_between(current: Decimal, previous: Decimal) -> dict[str, object]:
    absolute = current - previous
    percent = (absolute / abs(previous) * HUNDRED) if previous != 0 else ZERO
    if absolute > 0:
        direction = "up"
    elif absolute < 0:
        direction = "down"
    else:
        direction = "flat"
    return {"absolute": absolute, "percent": percent, "direction": direction}
