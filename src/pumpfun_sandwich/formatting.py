from __future__ import annotations

from collections.abc import Sequence

from .numeric import LAMPORTS_PER_SOL, lamports_to_sol, negative_part, positive_part
from .simulator import TOKEN_DECIMALS, SandwichSimulation
from .types import DetectionSummary, TradeDirection, TradeFact


def short_sig(sig: str) -> str:
    if len(sig) <= 8:
        return sig
    return f"{sig[:4]}…{sig[-4:]}"


def trade_badge(direction: TradeDirection) -> str:
    return direction.value


def format_sol(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):+.4f} SOL"


def format_attack_impact(trade: TradeFact) -> str:
    parts: list[str] = []

    if trade.direction is TradeDirection.BUY:
        spent = negative_part(trade.sol_change)
        received = positive_part(trade.token_change)
        if spent > trade.sol_limit_specified:
            overpaid = spent - trade.sol_limit_specified
            parts.append(f"OVERPAID {overpaid / LAMPORTS_PER_SOL:.6f} SOL")
        if received < trade.token_amount_requested:
            parts.append(f"GOT {trade.token_amount_requested - received} FEWER TOKENS")
    else:
        received = positive_part(trade.sol_change)
        sold = negative_part(trade.token_change)
        if received < trade.sol_limit_specified:
            underpaid = trade.sol_limit_specified - received
            parts.append(f"RECEIVED {underpaid / LAMPORTS_PER_SOL:.6f} SOL LESS")
        if sold > trade.token_amount_requested:
            parts.append(f"SOLD {sold - trade.token_amount_requested} MORE TOKENS")

    return "; ".join(parts) if parts else "FAIR EXECUTION"


def _victim_line(prefix: str, victim: TradeFact) -> str:
    return (
        f"{prefix} Victim {short_sig(victim.signature)} | slot {victim.slot} | "
        f"{trade_badge(victim.direction)} | ΔSOL {format_sol(victim.sol_change)} | "
        f"Δtoken {victim.token_change} | Wanted: {victim.token_amount_requested} tokens "
        f"(SOL limit {victim.sol_limit_specified})"
    )


def _leg_lines(tag: str, legs: Sequence[TradeFact]) -> list[str]:
    return [
        f"{tag}{idx:02d} [{trade_badge(leg.direction)}] slot {leg.slot} signer "
        f"{short_sig(leg.signer)} | ΔSOL {format_sol(leg.sol_change)} | Δtoken {leg.token_change}"
        for idx, leg in enumerate(legs, start=1)
    ]


def format_summary(summary: DetectionSummary, total_trades: int) -> str:
    lines = [
        "---- Detection Summary ----",
        f"Total trades parsed: {total_trades}",
        f"Wide front-run candidates: {len(summary.front_runs)}",
        f"Wide back-run candidates: {len(summary.back_runs)}",
        f"Wide sandwich candidates: {len(summary.sandwiches)}",
    ]

    if summary.front_runs:
        lines += ["", "-- Front-run Events --"]
        for idx, event in enumerate(summary.front_runs, start=1):
            lines.append(_victim_line(f"#{idx:02d}", event.victim))
            lines.append(f"Impact: {format_attack_impact(event.victim)}")
            lines += _leg_lines("FR", event.frontruns)

    if summary.back_runs:
        lines += ["", "-- Back-run Events --"]
        for idx, event in enumerate(summary.back_runs, start=1):
            lines.append(_victim_line(f"#{idx:02d}", event.victim))
            lines.append(f"Impact: {format_attack_impact(event.victim)}")
            lines += _leg_lines("BR", event.backruns)

    if summary.sandwiches:
        lines += ["", "-- Sandwich Events --"]
        for idx, det in enumerate(summary.sandwiches, start=1):
            lines.append(_victim_line(f"#{idx}", det.victim))
            lines.append(f"Impact: {format_attack_impact(det.victim)}")
            lines.append(f"Frontruns: {len(det.frontruns)}")
            lines.append(f"Backruns: {len(det.backruns)}")
            lines.append(
                f"Profit: {format_sol(det.net_profit_lamports)}, net tokens {det.net_token_delta}"
            )
            lines += _leg_lines("FR", det.frontruns)
            lines += _leg_lines("BR", det.backruns)

    return "\n".join(lines)


def format_simulation(result: SandwichSimulation) -> str:
    lines = [
        f"Hypothetical victim buy: {lamports_to_sol(result.victim_sol_in):.3f} SOL, "
        f"min tokens {result.victim_min_tokens / TOKEN_DECIMALS:,.0f}",
        f"Baseline (no attack): {result.baseline_tokens / TOKEN_DECIMALS:,.0f} tokens",
        "",
    ]
    for step in result.steps:
        if step.direction is TradeDirection.BUY:
            amounts = (
                f"{lamports_to_sol(step.amount_in):.6f} SOL -> "
                f"{step.amount_out / TOKEN_DECIMALS:,.0f} tokens"
            )
        else:
            amounts = (
                f"{step.amount_in / TOKEN_DECIMALS:,.0f} tokens -> "
                f"{lamports_to_sol(step.amount_out):.6f} SOL"
            )
        status = " (REJECTED)" if step.rejected else ""
        lines.append(f"Slot {step.slot}: {step.label}: {amounts}{status}")
        lines.append(f"  Price after: {step.price_after:.12f} lamports/token unit")

    lines += [
        "",
        f"Victim token shortfall: {result.victim_token_shortfall / TOKEN_DECIMALS:,.0f} tokens",
        f"Extracted value: {lamports_to_sol(result.extracted_value_lamports):.6f} SOL",
        f"Bot total net profit: {format_sol(result.bot_net_profit_lamports)}",
    ]
    return "\n".join(lines)
