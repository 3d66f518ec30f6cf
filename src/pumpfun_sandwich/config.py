from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .rpc import MAX_SIGNATURE_PAGE

HELIUS_RPC_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={api_key}"


@dataclass(frozen=True)
class DetectorConfig:
    max_slot_gap: int = 3
    min_victim_abs_sol: float = 0.01
    min_victim_abs_token: float = 100_000_000.0
    min_profit_lamports: int = 10_000
    min_bot_trades: int = 2

    def __post_init__(self) -> None:
        # Zero is a valid, if degenerate, setting. Negative values are not.
        for name in (
            "max_slot_gap",
            "min_victim_abs_sol",
            "min_victim_abs_token",
            "min_bot_trades",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    signature_limit: int
    fetch_concurrency: int
    rpc_timeout_seconds: float
    log_level: str
    detector: DetectorConfig = field(default_factory=DetectorConfig)


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _rpc_url() -> str:
    explicit = os.getenv("SOLANA_RPC_URL", "").strip()
    if explicit:
        return explicit
    return HELIUS_RPC_TEMPLATE.format(api_key=_required("HELIUS_API_KEY"))


def load_detector_config() -> DetectorConfig:
    defaults = DetectorConfig()
    return DetectorConfig(
        max_slot_gap=_optional_int("MAX_SLOT_GAP", defaults.max_slot_gap),
        min_victim_abs_sol=_optional_float("MIN_VICTIM_ABS_SOL", defaults.min_victim_abs_sol),
        min_victim_abs_token=_optional_float(
            "MIN_VICTIM_ABS_TOKEN", defaults.min_victim_abs_token
        ),
        min_profit_lamports=_optional_int("MIN_PROFIT_LAMPORTS", defaults.min_profit_lamports),
        min_bot_trades=_optional_int("MIN_BOT_TRADES", defaults.min_bot_trades),
    )


def load_settings() -> Settings:
    load_dotenv()
    signature_limit = _optional_int("SIGNATURE_LIMIT", 50)
    fetch_concurrency = _optional_int("FETCH_CONCURRENCY", 8)
    if not 0 < signature_limit <= MAX_SIGNATURE_PAGE:
        raise ValueError(f"SIGNATURE_LIMIT must be between 1 and {MAX_SIGNATURE_PAGE}")
    if fetch_concurrency <= 0:
        raise ValueError("FETCH_CONCURRENCY must be positive")
    return Settings(
        rpc_url=_rpc_url(),
        signature_limit=signature_limit,
        fetch_concurrency=fetch_concurrency,
        rpc_timeout_seconds=_optional_float("RPC_TIMEOUT_SECONDS", 20.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        detector=load_detector_config(),
    )
