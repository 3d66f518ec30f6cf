from pumpfun_sandwich.numeric import (
    I64_MAX,
    I64_MIN,
    U64_MAX,
    abs_as_sol,
    clamp_i64,
    clamp_u64,
    lamports_to_sol,
    negative_part,
    occurs_after,
    occurs_before,
    positive_part,
    saturating_add_u64,
    saturating_sub_u64,
    sol_to_lamports,
    trade_sort_key,
)
from pumpfun_sandwich.types import TradeDirection, TradeFact


def _trade(signature: str, slot: int) -> TradeFact:
    return TradeFact(
        signature=signature,
        slot=slot,
        signer="s",
        mint="T",
        direction=TradeDirection.BUY,
        token_amount_requested=0,
        sol_limit_specified=0,
        sol_change=0,
        token_change=0,
    )


def test_lamport_conversions() -> None:
    assert lamports_to_sol(1_500_000_000) == 1.5
    assert abs_as_sol(-250_000_000) == 0.25
    assert sol_to_lamports(0.01) == 10_000_000
    assert sol_to_lamports(-1.0) == 0


def test_clamping() -> None:
    assert clamp_i64(I64_MAX + 1) == I64_MAX
    assert clamp_i64(I64_MIN - 1) == I64_MIN
    assert clamp_i64(-5) == -5
    assert clamp_u64(-1) == 0
    assert clamp_u64(U64_MAX + 10) == U64_MAX


def test_saturating_ops() -> None:
    assert saturating_sub_u64(3, 5) == 0
    assert saturating_add_u64(U64_MAX, 1) == U64_MAX
    assert saturating_add_u64(2, 3) == 5


def test_delta_parts() -> None:
    assert positive_part(7) == 7
    assert positive_part(-7) == 0
    assert negative_part(-7) == 7
    assert negative_part(7) == 0


def test_lower_slot_always_sorts_first() -> None:
    early = _trade("zzzz", 99)
    late = _trade("aaaa", 100)
    assert occurs_before(early, late)
    assert occurs_after(late, early)


def test_same_slot_orders_by_signature() -> None:
    a = _trade("3Abc", 100)
    b = _trade("3Abd", 100)
    assert occurs_before(a, b)
    assert not occurs_before(b, a)
    assert not occurs_before(a, a)
    assert not occurs_after(a, a)
    # Upper-case letters sort before lower-case, as with raw bytes.
    assert occurs_before(_trade("Z", 1), _trade("a", 1))


def test_sort_key_matches_total_order() -> None:
    trades = [_trade("b", 2), _trade("c", 1), _trade("a", 2)]
    ordered = sorted(trades, key=trade_sort_key)
    assert [(t.slot, t.signature) for t in ordered] == [(1, "c"), (2, "a"), (2, "b")]
