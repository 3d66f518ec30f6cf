from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class TradeFact:
    signature: str
    slot: int
    signer: str
    mint: str
    direction: TradeDirection
    token_amount_requested: int
    # Buy: max lamports to spend. Sell: min lamports to receive.
    sol_limit_specified: int
    sol_change: int
    token_change: int


@dataclass(frozen=True)
class FrontRunEvent:
    victim: TradeFact
    frontruns: tuple[TradeFact, ...]


@dataclass(frozen=True)
class BackRunEvent:
    victim: TradeFact
    backruns: tuple[TradeFact, ...]


@dataclass(frozen=True)
class SandwichDetection:
    victim: TradeFact
    frontruns: tuple[TradeFact, ...]
    backruns: tuple[TradeFact, ...]
    net_profit_lamports: int
    net_token_delta: int


@dataclass
class DetectionSummary:
    front_runs: list[FrontRunEvent] = field(default_factory=list)
    back_runs: list[BackRunEvent] = field(default_factory=list)
    sandwiches: list[SandwichDetection] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.front_runs or self.back_runs or self.sandwiches)
