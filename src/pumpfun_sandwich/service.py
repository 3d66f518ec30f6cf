from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from .config import Settings
from .decoder import parse_transaction
from .detector import detect_wide_attacks
from .numeric import trade_sort_key
from .rpc import SolanaRpcClient
from .types import DetectionSummary, TradeFact

logger = logging.getLogger(__name__)


@dataclass
class Metrics:
    signatures_seen: int = 0
    transactions_fetched: int = 0
    fetch_failures: int = 0
    trades_decoded: int = 0
    undecodable: int = 0


@dataclass(frozen=True)
class AnalysisReport:
    mint: str
    trades: tuple[TradeFact, ...]
    summary: DetectionSummary
    metrics: Metrics = field(default_factory=Metrics)


class AnalysisService:
    def __init__(self, settings: Settings, client: SolanaRpcClient | None = None) -> None:
        self.settings = settings
        self.metrics = Metrics()
        self.client = client or SolanaRpcClient(
            settings.rpc_url, timeout=settings.rpc_timeout_seconds
        )

    async def close(self) -> None:
        await self.client.close()

    async def analyze(self, mint: str) -> AnalysisReport:
        self.metrics = Metrics()
        signatures = await self.client.get_signatures_for_address(
            mint, limit=self.settings.signature_limit
        )
        self.metrics.signatures_seen = len(signatures)
        logger.info("Found %d signatures for %s. Fetching transactions...", len(signatures), mint)

        semaphore = asyncio.Semaphore(self.settings.fetch_concurrency)

        async def fetch(signature: str) -> tuple[str, dict[str, Any] | None]:
            async with semaphore:
                return signature, await self._fetch_transaction(signature)

        fetched = await asyncio.gather(*(fetch(sig) for sig in signatures))

        trades: list[TradeFact] = []
        for signature, tx in fetched:
            if tx is None:
                continue
            trade = parse_transaction(tx, signature, mint)
            if trade is None:
                self.metrics.undecodable += 1
                continue
            trades.append(trade)

        trades.sort(key=trade_sort_key)
        self.metrics.trades_decoded = len(trades)

        summary = detect_wide_attacks(trades, self.settings.detector)
        logger.info(
            "analysis mint=%s signatures=%d fetched=%d failures=%d trades=%d "
            "front_runs=%d back_runs=%d sandwiches=%d",
            mint,
            self.metrics.signatures_seen,
            self.metrics.transactions_fetched,
            self.metrics.fetch_failures,
            self.metrics.trades_decoded,
            len(summary.front_runs),
            len(summary.back_runs),
            len(summary.sandwiches),
        )
        return AnalysisReport(mint=mint, trades=tuple(trades), summary=summary, metrics=self.metrics)

    async def _fetch_transaction(self, signature: str) -> dict[str, Any] | None:
        try:
            tx = await self.client.get_transaction(signature)
        except Exception as exc:
            self.metrics.fetch_failures += 1
            logger.warning("Failed %s: %s", signature, exc)
            return None
        if tx is not None:
            self.metrics.transactions_fetched += 1
        return tx
