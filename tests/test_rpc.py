import asyncio
import json

import httpx
import pytest

from pumpfun_sandwich.rpc import RpcError, SolanaRpcClient


def _client(handler, max_retries: int = 4) -> SolanaRpcClient:
    return SolanaRpcClient(
        "https://rpc.example.com",
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )


def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("pumpfun_sandwich.rpc.asyncio.sleep", fake_sleep)
    return delays


async def _call_and_close(client: SolanaRpcClient, signature: str):
    try:
        return await client.get_transaction(signature)
    finally:
        await client.close()


def test_get_signatures_for_address_extracts_signatures() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.update(body)
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "result": [
                    {"signature": "sig1", "slot": 10, "err": None},
                    {"signature": "sig2", "slot": 9, "err": {"InstructionError": [0, "Custom"]}},
                    {"slot": 8},
                ],
            },
        )

    async def run() -> list[str]:
        client = _client(handler)
        try:
            return await client.get_signatures_for_address("Mint", limit=20)
        finally:
            await client.close()

    signatures = asyncio.run(run())

    assert signatures == ["sig1", "sig2"]
    assert seen["method"] == "getSignaturesForAddress"
    assert seen["params"] == ["Mint", {"limit": 20}]


def test_get_transaction_requests_json_parsed() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.update(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": None})

    client = _client(handler)
    assert asyncio.run(_call_and_close(client, "sig1")) is None
    assert seen["params"][1] == {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}


def test_rpc_error_is_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}},
        )

    client = _client(handler)
    with pytest.raises(RpcError) as excinfo:
        asyncio.run(_call_and_close(client, "bad"))
    assert excinfo.value.code == -32602


def test_page_size_is_bounded() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async def run() -> None:
        client = _client(handler)
        try:
            await client.get_signatures_for_address("Mint", limit=1001)
        finally:
            await client.close()

    with pytest.raises(ValueError):
        asyncio.run(run())


def test_rate_limit_is_retried_with_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    delays = _no_sleep(monkeypatch)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(429)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"slot": 5}})

    client = _client(handler)
    result = asyncio.run(_call_and_close(client, "sig1"))

    assert result == {"slot": 5}
    assert len(calls) == 3
    assert delays == [1.0, 2.0]


def test_retry_after_header_is_honoured(monkeypatch: pytest.MonkeyPatch) -> None:
    delays = _no_sleep(monkeypatch)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, headers={"Retry-After": "7"})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

    client = _client(handler)
    assert asyncio.run(_call_and_close(client, "sig1")) is None
    assert delays == [7.0]


def test_transport_error_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    delays = _no_sleep(monkeypatch)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"slot": 9}})

    client = _client(handler)
    result = asyncio.run(_call_and_close(client, "sig1"))

    assert result == {"slot": 9}
    assert len(calls) == 2
    assert delays == [1.0]


def test_persistent_rate_limit_raises_after_last_attempt(monkeypatch: pytest.MonkeyPatch) -> None:
    delays = _no_sleep(monkeypatch)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429)

    client = _client(handler, max_retries=2)
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_call_and_close(client, "sig1"))

    assert len(calls) == 2
    assert delays == [1.0]


def test_persistent_transport_error_is_reraised(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_sleep(monkeypatch)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler, max_retries=3)
    with pytest.raises(httpx.ConnectError):
        asyncio.run(_call_and_close(client, "sig1"))
