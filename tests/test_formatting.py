from pumpfun_sandwich.formatting import (
    format_attack_impact,
    format_simulation,
    format_sol,
    format_summary,
    short_sig,
    trade_badge,
)
from pumpfun_sandwich.simulator import simulate_sandwich
from pumpfun_sandwich.types import (
    DetectionSummary,
    FrontRunEvent,
    SandwichDetection,
    TradeDirection,
    TradeFact,
)

SOL = 1_000_000_000


def _trade(
    signature: str,
    direction: TradeDirection,
    requested: int,
    limit: int,
    sol: int,
    tokens: int,
    signer: str = "5TrAderWa11et1111111111111111111111111111",
) -> TradeFact:
    return TradeFact(
        signature=signature,
        slot=100,
        signer=signer,
        mint="T",
        direction=direction,
        token_amount_requested=requested,
        sol_limit_specified=limit,
        sol_change=sol,
        token_change=tokens,
    )


def test_short_sig() -> None:
    assert short_sig("abc") == "abc"
    assert short_sig("4vJ9JU1bJJE96FWSJKvHsmmFADCg4gpZQff4P3bkLKi") == "4vJ9…kLKi"
    assert short_sig("1234567890") == "1234…7890"


def test_trade_badge_and_sol() -> None:
    assert trade_badge(TradeDirection.BUY) == "BUY"
    assert trade_badge(TradeDirection.SELL) == "SELL"
    assert format_sol(-1_500_000_000) == "-1.5000 SOL"
    assert format_sol(250_000_000) == "+0.2500 SOL"


def test_format_attack_impact_buy() -> None:
    breached = _trade("s", TradeDirection.BUY, 1000, 1 * SOL, -2 * SOL, 900)
    assert format_attack_impact(breached) == "OVERPAID 1.000000 SOL; GOT 100 FEWER TOKENS"

    fair = _trade("s", TradeDirection.BUY, 1000, 1 * SOL, -1 * SOL, 1000)
    assert format_attack_impact(fair) == "FAIR EXECUTION"


def test_format_attack_impact_sell() -> None:
    breached = _trade("s", TradeDirection.SELL, 1000, 2 * SOL, SOL // 2, -1200)
    assert format_attack_impact(breached) == "RECEIVED 1.500000 SOL LESS; SOLD 200 MORE TOKENS"


def test_format_summary_lists_events() -> None:
    victim = _trade("VictimSignature111", TradeDirection.BUY, 1000, SOL, -2 * SOL, 900)
    front = _trade("FrontSignature111", TradeDirection.BUY, 0, SOL, -SOL, 500, signer="BotSigner111")
    back = _trade("BackSignature1111", TradeDirection.SELL, 500, 0, 2 * SOL, -500, signer="BotSigner111")
    summary = DetectionSummary(
        front_runs=[FrontRunEvent(victim=victim, frontruns=(front,))],
        sandwiches=[
            SandwichDetection(
                victim=victim,
                frontruns=(front,),
                backruns=(back,),
                net_profit_lamports=SOL,
                net_token_delta=0,
            )
        ],
    )

    text = format_summary(summary, total_trades=3)

    assert "Total trades parsed: 3" in text
    assert "Wide front-run candidates: 1" in text
    assert "Wide back-run candidates: 0" in text
    assert "-- Back-run Events --" not in text
    assert "#01 Victim Vict…e111 | slot 100 | BUY" in text
    assert "FR01 [BUY] slot 100 signer BotS…r111" in text
    assert "BR01 [SELL]" in text
    assert "Profit: +1.0000 SOL, net tokens 0" in text


def test_format_summary_empty() -> None:
    text = format_summary(DetectionSummary(), total_trades=0)
    assert text.splitlines()[0] == "---- Detection Summary ----"
    assert "Events" not in text


def test_format_simulation_mentions_every_step() -> None:
    result = simulate_sandwich(SOL)
    text = format_simulation(result)

    for step in result.steps:
        assert f"Slot {step.slot}: {step.label}" in text
    assert "Extracted value:" in text
    assert "Bot total net profit: +" in text
    assert "REJECTED" not in text
