"""Lamport conversion, saturating integer helpers and the trade total order.

Every narrowing of a wide intermediate into a stored i64/u64 field goes
through this module so the clamping policy lives in one place.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import TradeFact

LAMPORTS_PER_SOL = 1_000_000_000

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1
U64_MAX = 2**64 - 1


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def abs_as_sol(lamports: int) -> float:
    return abs(float(lamports)) / LAMPORTS_PER_SOL


def sol_to_lamports(sol: float) -> int:
    # Truncates toward zero, like casting a float amount to an integer unit.
    return clamp_u64(int(sol * LAMPORTS_PER_SOL))


def clamp_i64(value: int) -> int:
    if value > I64_MAX:
        return I64_MAX
    if value < I64_MIN:
        return I64_MIN
    return value


def clamp_u64(value: int) -> int:
    if value > U64_MAX:
        return U64_MAX
    if value < 0:
        return 0
    return value


def saturating_add_u64(a: int, b: int) -> int:
    return clamp_u64(a + b)


def saturating_sub_u64(a: int, b: int) -> int:
    return clamp_u64(a - b)


def positive_part(value: int) -> int:
    return value if value > 0 else 0


def negative_part(value: int) -> int:
    """Magnitude of a negative delta, 0 otherwise."""
    return -value if value < 0 else 0


def trade_sort_key(trade: TradeFact) -> tuple[int, str]:
    # Slot first, then the signature string. Base-58 ids are ASCII, so str
    # comparison is the same as comparing their bytes.
    return (trade.slot, trade.signature)


def occurs_before(a: TradeFact, b: TradeFact) -> bool:
    return trade_sort_key(a) < trade_sort_key(b)


def occurs_after(a: TradeFact, b: TradeFact) -> bool:
    return trade_sort_key(a) > trade_sort_key(b)
