from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Any

import base58

from .numeric import clamp_i64
from .types import TradeDirection, TradeFact

logger = logging.getLogger(__name__)

DISCRIMINATOR_LEN = 8

BUY_DISCRIMINATOR = bytes([102, 6, 61, 18, 1, 218, 235, 234])
SELL_DISCRIMINATOR = bytes([51, 230, 133, 164, 1, 127, 131, 173])

# buy: (amount, max_sol_cost), sell: (amount, min_sol_output)
_ARGS = struct.Struct("<QQ")

_DIRECTIONS = {
    BUY_DISCRIMINATOR: TradeDirection.BUY,
    SELL_DISCRIMINATOR: TradeDirection.SELL,
}

# Discriminator windows, tried in order. Some encodings prepend one framing byte.
PROBE_OFFSETS: tuple[int, ...] = (0, 1)


@dataclass(frozen=True)
class DecodedInstruction:
    direction: TradeDirection
    token_amount_requested: int
    sol_limit_specified: int


def decode_instruction_data(data_b58: str) -> DecodedInstruction | None:
    try:
        raw = base58.b58decode(data_b58)
    except ValueError:
        return None

    if len(raw) < DISCRIMINATOR_LEN:
        return None

    for offset in PROBE_OFFSETS:
        end = offset + DISCRIMINATOR_LEN
        if len(raw) < end:
            break
        decoded = _try_decode(raw[offset:end], raw[end:])
        if decoded is not None:
            return decoded
    return None


def _try_decode(discriminator: bytes, payload: bytes) -> DecodedInstruction | None:
    direction = _DIRECTIONS.get(discriminator)
    if direction is None:
        return None
    # Fixed layout: leftover bytes are a mismatch, not padding.
    if len(payload) != _ARGS.size:
        return None
    amount, sol_limit = _ARGS.unpack(payload)
    return DecodedInstruction(
        direction=direction,
        token_amount_requested=amount,
        sol_limit_specified=sol_limit,
    )


def parse_transaction(tx: dict[str, Any], signature: str, mint: str) -> TradeFact | None:
    """Decode one ``getTransaction`` (jsonParsed) record into a trade fact.

    Returns ``None`` when the record is not a parsed message or carries no
    pump.fun buy/sell instruction. Balance deltas come from the meta
    snapshots, not from the instruction arguments.
    """
    message = _parsed_message(tx)
    if message is None:
        logger.debug("skip %s: transaction is not jsonParsed", signature)
        return None

    account_keys = message.get("accountKeys")
    if not isinstance(account_keys, list) or not account_keys:
        return None
    signer = _pubkey(account_keys[0])
    if signer is None:
        return None

    slot = tx.get("slot")
    if not isinstance(slot, int) or slot < 0:
        return None

    meta = tx.get("meta")
    if not isinstance(meta, dict):
        meta = None

    decoded = _scan_instructions(message.get("instructions"))
    if decoded is None and meta is not None:
        decoded = _scan_inner_groups(meta.get("innerInstructions"))
    if decoded is None:
        return None

    sol_change = 0
    token_change = 0
    if meta is not None:
        sol_change = _compute_sol_change(meta, account_keys, signer) or 0
        token_change = _compute_token_change(meta, signer, mint) or 0

    logger.debug(
        "decoded %s signer=%s wanted=%s %d tokens (sol limit %d) executed sol=%+d token=%+d",
        signature,
        signer,
        decoded.direction.value,
        decoded.token_amount_requested,
        decoded.sol_limit_specified,
        sol_change,
        token_change,
    )

    return TradeFact(
        signature=signature,
        slot=slot,
        signer=signer,
        mint=mint,
        direction=decoded.direction,
        token_amount_requested=decoded.token_amount_requested,
        sol_limit_specified=decoded.sol_limit_specified,
        sol_change=sol_change,
        token_change=token_change,
    )


def _parsed_message(tx: dict[str, Any]) -> dict[str, Any] | None:
    envelope = tx.get("transaction")
    # base58/base64 encodings arrive as [data, encoding] lists.
    if not isinstance(envelope, dict):
        return None
    message = envelope.get("message")
    if not isinstance(message, dict):
        return None
    keys = message.get("accountKeys")
    # Raw "json" encoding lists keys as bare strings; only jsonParsed is accepted.
    if not isinstance(keys, list) or not all(isinstance(k, dict) for k in keys):
        return None
    return message


def _pubkey(account: Any) -> str | None:
    if not isinstance(account, dict):
        return None
    pubkey = account.get("pubkey")
    if isinstance(pubkey, str) and pubkey:
        return pubkey
    return None


def _scan_instructions(instructions: Any) -> DecodedInstruction | None:
    if not isinstance(instructions, list):
        return None
    for instruction in instructions:
        decoded = _decode_instruction(instruction)
        if decoded is not None:
            return decoded
    return None


def _scan_inner_groups(groups: Any) -> DecodedInstruction | None:
    if not isinstance(groups, list):
        return None
    for group in groups:
        if not isinstance(group, dict):
            continue
        decoded = _scan_instructions(group.get("instructions"))
        if decoded is not None:
            return decoded
    return None


def _decode_instruction(instruction: Any) -> DecodedInstruction | None:
    # Program-parsed instructions (system, spl-token, ...) have no raw data.
    if not isinstance(instruction, dict) or "parsed" in instruction:
        return None
    data = instruction.get("data")
    if not isinstance(data, str) or not data:
        return None
    return decode_instruction_data(data)


def _compute_sol_change(
    meta: dict[str, Any], account_keys: list[Any], signer: str
) -> int | None:
    index = next(
        (i for i, account in enumerate(account_keys) if _pubkey(account) == signer),
        None,
    )
    if index is None:
        return None
    pre = _balance_at(meta.get("preBalances"), index)
    post = _balance_at(meta.get("postBalances"), index)
    if pre is None or post is None:
        return None
    return clamp_i64(post - pre)


def _balance_at(balances: Any, index: int) -> int | None:
    if not isinstance(balances, list) or index >= len(balances):
        return None
    value = balances[index]
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _compute_token_change(meta: dict[str, Any], owner: str, mint: str) -> int | None:
    pre = _token_total(meta.get("preTokenBalances"), owner, mint)
    post = _token_total(meta.get("postTokenBalances"), owner, mint)
    if pre is None and post is None:
        return None
    return clamp_i64((post or 0) - (pre or 0))


def _token_total(balances: Any, owner: str, mint: str) -> int | None:
    if not isinstance(balances, list):
        return None

    total = 0
    found = False
    for entry in balances:
        if not isinstance(entry, dict):
            continue
        if entry.get("mint") != mint or entry.get("owner") != owner:
            continue
        ui_amount = entry.get("uiTokenAmount")
        if not isinstance(ui_amount, dict):
            continue
        amount = _parse_amount(ui_amount.get("amount"))
        if amount is None:
            continue
        total += amount
        found = True

    return total if found else None


def _parse_amount(raw: Any) -> int | None:
    # Plain ASCII integer with an optional sign. No whitespace or underscores.
    if not isinstance(raw, str):
        return None
    digits = raw[1:] if raw[:1] in ("+", "-") else raw
    if not digits or not digits.isascii() or not digits.isdigit():
        return None
    return int(raw)
