"""
Constant-product bonding curve with pump.fun genesis reserves.

Pricing uses the virtual reserves; the real reserves track what could
actually be withdrawn. A trade whose output falls below the caller's limit,
or rounds down to zero, is rejected: it reports 0 and leaves all four
reserves untouched, mirroring an on-chain slippage revert.

Buy:  fee = max(sol_in * FEE_BPS // 10_000, 1)
      tokens_out = (sol_in - fee) * vT // (vS + sol_in - fee)
Sell: the same with the roles of SOL and token swapped; the fee is taken
      from the token input.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .numeric import LAMPORTS_PER_SOL, saturating_add_u64, saturating_sub_u64
from .types import TradeDirection

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 1_000_000
INITIAL_VIRTUAL_SOL = 30 * LAMPORTS_PER_SOL
INITIAL_VIRTUAL_TOKEN = 1_073_000_000 * TOKEN_DECIMALS
INITIAL_REAL_SOL = 0
INITIAL_REAL_TOKEN = 793_100_000 * TOKEN_DECIMALS
FEE_BPS = 30
BPS_DENOMINATOR = 10_000
GAS_EST_PER_TX = 5_000


def fee_for(amount_in: int) -> int:
    return max(amount_in * FEE_BPS // BPS_DENOMINATOR, 1)


def constant_product_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    if reserve_in == 0:
        return 0
    # Python ints are unbounded; the result is at most reserve_out, so it fits u64.
    return amount_in * reserve_out // (reserve_in + amount_in)


@dataclass
class BondingCurve:
    virtual_sol_reserve: int
    virtual_token_reserve: int
    real_sol_reserve: int
    real_token_reserve: int

    @classmethod
    def genesis(cls) -> BondingCurve:
        return cls(
            virtual_sol_reserve=INITIAL_VIRTUAL_SOL,
            virtual_token_reserve=INITIAL_VIRTUAL_TOKEN,
            real_sol_reserve=INITIAL_REAL_SOL,
            real_token_reserve=INITIAL_REAL_TOKEN,
        )

    def copy(self) -> BondingCurve:
        return replace(self)

    def price(self) -> float:
        """Lamports per base token unit, from the virtual reserves."""
        if self.virtual_token_reserve == 0:
            return 0.0
        return self.virtual_sol_reserve / self.virtual_token_reserve

    def quote_buy(self, sol_in: int) -> int:
        sol_after_fee = saturating_sub_u64(sol_in, fee_for(sol_in))
        return constant_product_out(
            sol_after_fee, self.virtual_sol_reserve, self.virtual_token_reserve
        )

    def quote_sell(self, tokens_in: int) -> int:
        tokens_after_fee = saturating_sub_u64(tokens_in, fee_for(tokens_in))
        return constant_product_out(
            tokens_after_fee, self.virtual_token_reserve, self.virtual_sol_reserve
        )

    def buy(self, sol_in: int, min_tokens_out: int) -> int:
        tokens_out = self.quote_buy(sol_in)
        if tokens_out == 0 or tokens_out < min_tokens_out:
            logger.debug("buy rejected sol_in=%d out=%d min=%d", sol_in, tokens_out, min_tokens_out)
            return 0

        sol_after_fee = saturating_sub_u64(sol_in, fee_for(sol_in))
        self.virtual_sol_reserve = saturating_add_u64(self.virtual_sol_reserve, sol_after_fee)
        self.virtual_token_reserve = saturating_sub_u64(self.virtual_token_reserve, tokens_out)
        self.real_sol_reserve = saturating_add_u64(self.real_sol_reserve, sol_in)
        self.real_token_reserve = saturating_sub_u64(self.real_token_reserve, tokens_out)
        return tokens_out

    def sell(self, tokens_in: int, min_sol_out: int) -> int:
        sol_out = self.quote_sell(tokens_in)
        if sol_out == 0 or sol_out < min_sol_out:
            logger.debug("sell rejected tokens_in=%d out=%d min=%d", tokens_in, sol_out, min_sol_out)
            return 0

        tokens_after_fee = saturating_sub_u64(tokens_in, fee_for(tokens_in))
        self.virtual_sol_reserve = saturating_sub_u64(self.virtual_sol_reserve, sol_out)
        self.virtual_token_reserve = saturating_add_u64(self.virtual_token_reserve, tokens_after_fee)
        self.real_sol_reserve = saturating_sub_u64(self.real_sol_reserve, sol_out)
        self.real_token_reserve = saturating_add_u64(self.real_token_reserve, tokens_in)
        return sol_out


@dataclass(frozen=True)
class SimulatedStep:
    label: str
    slot: int
    direction: TradeDirection
    amount_in: int
    amount_out: int
    price_after: float

    @property
    def rejected(self) -> bool:
        return self.amount_out == 0


@dataclass(frozen=True)
class SandwichSimulation:
    victim_sol_in: int
    victim_min_tokens: int
    baseline_tokens: int
    victim_tokens: int
    victim_token_shortfall: int
    extracted_value_lamports: int
    bot_net_profit_lamports: int
    steps: tuple[SimulatedStep, ...]


def victim_min_tokens_for(sol_in: int) -> int:
    return (sol_in // 2) * TOKEN_DECIMALS // LAMPORTS_PER_SOL


def simulate_sandwich(
    victim_sol_in: int,
    curve: BondingCurve | None = None,
    base_slot: int = 380_000_000,
) -> SandwichSimulation:
    """Replay front-run, victim buy and a two-leg back-run on one curve.

    The victim's extracted value is the SOL it paid beyond what its tokens
    would have cost on the unattacked curve.
    """
    amm = curve.copy() if curve is not None else BondingCurve.genesis()
    min_tokens = victim_min_tokens_for(victim_sol_in)

    baseline_tokens = amm.copy().buy(victim_sol_in, min_tokens)

    steps: list[SimulatedStep] = []

    front_sol = victim_sol_in // 5
    bot_tokens = amm.buy(front_sol, 0)
    front_paid = front_sol if bot_tokens else 0
    steps.append(
        SimulatedStep("Bot front-run buy", base_slot, TradeDirection.BUY, front_sol, bot_tokens, amm.price())
    )

    victim_tokens = amm.buy(victim_sol_in, min_tokens)
    steps.append(
        SimulatedStep(
            "Victim buy", base_slot + 1, TradeDirection.BUY, victim_sol_in, victim_tokens, amm.price()
        )
    )

    break_even_tokens = bot_tokens // 2
    break_even_min_sol = (front_paid + GAS_EST_PER_TX * 2) // 2
    back1_sol = amm.sell(break_even_tokens, break_even_min_sol)
    held = bot_tokens - (break_even_tokens if back1_sol else 0)
    steps.append(
        SimulatedStep(
            "Back-run 1 (break even)",
            base_slot + 2,
            TradeDirection.SELL,
            break_even_tokens,
            back1_sol,
            amm.price(),
        )
    )

    back2_sol = amm.sell(held, 0)
    steps.append(
        SimulatedStep(
            "Back-run 2 (profit)", base_slot + 3, TradeDirection.SELL, held, back2_sol, amm.price()
        )
    )

    # Gas is paid on all three bot transactions, filled or not.
    bot_net = back1_sol + back2_sol - front_paid - GAS_EST_PER_TX * 3

    if victim_tokens and baseline_tokens:
        fair_cost = victim_tokens * victim_sol_in // baseline_tokens
        extracted = max(victim_sol_in - fair_cost, 0)
    else:
        extracted = 0

    return SandwichSimulation(
        victim_sol_in=victim_sol_in,
        victim_min_tokens=min_tokens,
        baseline_tokens=baseline_tokens,
        victim_tokens=victim_tokens,
        victim_token_shortfall=max(baseline_tokens - victim_tokens, 0),
        extracted_value_lamports=extracted,
        bot_net_profit_lamports=bot_net,
        steps=tuple(steps),
    )
