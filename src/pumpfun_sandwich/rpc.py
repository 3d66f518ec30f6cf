from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MAX_SIGNATURE_PAGE = 1000


class RpcError(RuntimeError):
    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class SolanaRpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout: float = 20.0,
        max_retries: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.max_retries = max_retries
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._next_id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def get_signatures_for_address(
        self, address: str, limit: int = 50, before: str | None = None
    ) -> list[str]:
        if limit <= 0 or limit > MAX_SIGNATURE_PAGE:
            raise ValueError(f"limit must be between 1 and {MAX_SIGNATURE_PAGE}")
        options: dict[str, Any] = {"limit": limit}
        if before:
            options["before"] = before

        result = await self._call("getSignaturesForAddress", [address, options])
        if not isinstance(result, list):
            return []
        out: list[str] = []
        for entry in result:
            if isinstance(entry, dict) and isinstance(entry.get("signature"), str):
                out.append(entry["signature"])
        return out

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0},
            ],
        )
        return result if isinstance(result, dict) else None

    async def _call(self, method: str, params: list[Any]) -> Any:
        self._next_id += 1
        body = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        delay = 1.0

        for attempt in range(self.max_retries):
            try:
                response = await self._client.post(self.rpc_url, json=body)

                if response.status_code == 429 and attempt < self.max_retries - 1:
                    retry_after = _retry_after(response, delay)
                    logger.warning("RPC rate limited on %s. Sleeping %.1fs", method, retry_after)
                    await asyncio.sleep(retry_after)
                    delay *= 2
                    continue

                response.raise_for_status()
                payload = response.json()
            except httpx.TransportError as exc:
                if attempt == self.max_retries - 1:
                    raise
                logger.warning("RPC %s attempt %d failed: %s", method, attempt + 1, exc)
                await asyncio.sleep(delay)
                delay *= 2
                continue

            if not isinstance(payload, dict):
                raise RpcError(None, f"unexpected response to {method}")
            error = payload.get("error")
            if error:
                code = error.get("code") if isinstance(error, dict) else None
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise RpcError(code, message)
            return payload.get("result")

        raise RpcError(None, f"{method} failed after {self.max_retries} attempts")


def _retry_after(response: httpx.Response, default: float) -> float:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default
