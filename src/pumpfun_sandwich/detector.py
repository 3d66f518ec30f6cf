from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections import Counter
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from .config import DetectorConfig
from .numeric import abs_as_sol, clamp_i64, negative_part, occurs_after, occurs_before, positive_part
from .types import (
    BackRunEvent,
    DetectionSummary,
    FrontRunEvent,
    SandwichDetection,
    TradeDirection,
    TradeFact,
)


@dataclass(frozen=True)
class ExecutionBreach:
    price_limit: bool
    amount_limit: bool

    def any(self) -> bool:
        return self.price_limit or self.amount_limit


class SlotIndex:
    """Trades grouped by slot, with inclusive slot-range scans."""

    def __init__(self, trades: Sequence[TradeFact]) -> None:
        self._by_slot: dict[int, list[TradeFact]] = {}
        for trade in trades:
            self._by_slot.setdefault(trade.slot, []).append(trade)
        self.slots: list[int] = sorted(self._by_slot)

    def at(self, slot: int) -> list[TradeFact]:
        return self._by_slot.get(slot, [])

    def range(self, start: int, end: int) -> Iterator[tuple[int, list[TradeFact]]]:
        lo = bisect_left(self.slots, start)
        hi = bisect_right(self.slots, end)
        for slot in self.slots[lo:hi]:
            yield slot, self._by_slot[slot]


def bot_signers(trades: Sequence[TradeFact], min_bot_trades: int) -> frozenset[str]:
    counts = Counter(trade.signer for trade in trades)
    return frozenset(signer for signer, count in counts.items() if count >= min_bot_trades)


def analyze_execution(trade: TradeFact) -> ExecutionBreach:
    if trade.direction is TradeDirection.BUY:
        return ExecutionBreach(
            price_limit=negative_part(trade.sol_change) > trade.sol_limit_specified,
            amount_limit=positive_part(trade.token_change) < trade.token_amount_requested,
        )
    return ExecutionBreach(
        price_limit=positive_part(trade.sol_change) < trade.sol_limit_specified,
        amount_limit=negative_part(trade.token_change) > trade.token_amount_requested,
    )


def magnitude_exceeds(trade: TradeFact, config: DetectorConfig) -> bool:
    return (
        abs_as_sol(trade.sol_change) >= config.min_victim_abs_sol
        or abs(float(trade.token_change)) >= config.min_victim_abs_token
    )


def is_frontrun_candidate(front: TradeFact, victim: TradeFact) -> bool:
    return occurs_before(front, victim) and front.direction == victim.direction


def is_backrun_candidate(back: TradeFact, victim: TradeFact) -> bool:
    # Directions are a two-value enum, so "differs" is "opposite".
    return occurs_after(back, victim) and back.direction != victim.direction


def detect_wide_attacks(trades: Sequence[TradeFact], config: DetectorConfig) -> DetectionSummary:
    """Find front-run, back-run and sandwich patterns around breached trades.

    Victims are visited in ascending slot order and, within a slot, in the
    order they appear in ``trades``. Matched legs stay in the pool and can
    serve other victims.
    """
    summary = DetectionSummary()
    if not trades:
        return summary

    bots = bot_signers(trades, config.min_bot_trades)
    index = SlotIndex(trades)

    for slot in index.slots:
        for victim in index.at(slot):
            if not analyze_execution(victim).any():
                continue
            if not magnitude_exceeds(victim, config):
                continue

            frontruns = _collect_legs(
                index,
                victim,
                bots,
                start=max(slot - config.max_slot_gap, 0),
                end=slot,
                same_slot_ok=occurs_before,
                matches=is_frontrun_candidate,
            )
            backruns = _collect_legs(
                index,
                victim,
                bots,
                start=slot,
                end=slot + config.max_slot_gap,
                same_slot_ok=occurs_after,
                matches=is_backrun_candidate,
            )

            if frontruns:
                summary.front_runs.append(FrontRunEvent(victim=victim, frontruns=frontruns))
            if backruns:
                summary.back_runs.append(BackRunEvent(victim=victim, backruns=backruns))

            if not (frontruns and backruns):
                continue

            legs = frontruns + backruns
            net_sol = clamp_i64(sum(leg.sol_change for leg in legs))
            net_tokens = clamp_i64(sum(leg.token_change for leg in legs))
            if net_sol >= config.min_profit_lamports:
                summary.sandwiches.append(
                    SandwichDetection(
                        victim=victim,
                        frontruns=frontruns,
                        backruns=backruns,
                        net_profit_lamports=net_sol,
                        net_token_delta=net_tokens,
                    )
                )

    return summary


def _collect_legs(
    index: SlotIndex,
    victim: TradeFact,
    bots: frozenset[str],
    start: int,
    end: int,
    same_slot_ok: Callable[[TradeFact, TradeFact], bool],
    matches: Callable[[TradeFact, TradeFact], bool],
) -> tuple[TradeFact, ...]:
    legs: list[TradeFact] = []
    for slot, candidates in index.range(start, end):
        for tx in candidates:
            if tx.signature == victim.signature:
                continue
            if tx.mint != victim.mint:
                continue
            if slot == victim.slot and not same_slot_ok(tx, victim):
                continue
            if tx.signer not in bots:
                continue
            if matches(tx, victim):
                legs.append(tx)
    return tuple(legs)
