from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from solders.signature import Signature

from soltnet.core.client import SolanaClient


@pytest.fixture
def client():
    return SolanaClient("http://127.0.0.1:8899", max_retries=3)


@pytest.mark.asyncio
async def test_get_transaction_requests_json_parsed(client):
    client.post_rpc = AsyncMock(return_value={"jsonrpc": "2.0", "id": 1, "result": {"slot": 7}})

    result = await client.get_transaction("sig")

    assert result == {"slot": 7}
    body = client.post_rpc.await_args.args[0]
    assert body["method"] == "getTransaction"
    assert body["params"][0] == "sig"
    assert body["params"][1]["encoding"] == "jsonParsed"
    assert body["params"][1]["maxSupportedTransactionVersion"] == 0


@pytest.mark.asyncio
async def test_get_block_not_found(client):
    client.post_rpc = AsyncMock(return_value={"jsonrpc": "2.0", "id": 1, "result": None})
    with pytest.raises(ValueError):
        await client.get_block(42)
    assert client.post_rpc.await_args.args[0]["params"][0] == 42


@pytest.mark.asyncio
async def test_rpc_error_response(client):
    client.post_rpc = AsyncMock(return_value={"error": {"code": -32009, "message": "missing"}})
    with pytest.raises(ValueError):
        await client.get_transaction("sig")


@pytest.mark.asyncio
async def test_rpc_request_failure(client):
    client.post_rpc = AsyncMock(return_value=None)
    with pytest.raises(ConnectionError):
        await client.get_block(1)


@pytest.mark.asyncio
async def test_send_transaction_retries(client, monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("soltnet.core.client.asyncio.sleep", sleep)
    rpc = AsyncMock()
    rpc.send_transaction.side_effect = [
        RuntimeError("node is behind"),
        SimpleNamespace(value=Signature.default()),
    ]
    client._client = rpc

    signature = await client.send_transaction(object())

    assert signature == Signature.default()
    assert rpc.send_transaction.await_count == 2
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_send_transaction_gives_up(client, monkeypatch):
    monkeypatch.setattr("soltnet.core.client.asyncio.sleep", AsyncMock())
    rpc = AsyncMock()
    rpc.send_transaction.side_effect = RuntimeError("blockhash not found")
    client._client = rpc

    with pytest.raises(RuntimeError):
        await client.send_transaction(object())
    assert rpc.send_transaction.await_count == 3


@pytest.mark.asyncio
async def test_get_account_info_missing(client):
    rpc = AsyncMock()
    rpc.get_account_info.return_value = SimpleNamespace(value=None)
    client._client = rpc

    with pytest.raises(ValueError):
        await client.get_account_info(object())


def test_rejects_zero_send_attempts():
    with pytest.raises(ValueError):
        SolanaClient("http://127.0.0.1:8899", max_retries=0)


@pytest.mark.asyncio
async def test_single_attempt_reraises(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("soltnet.core.client.asyncio.sleep", sleep)
    client = SolanaClient("http://127.0.0.1:8899", max_retries=1)
    rpc = AsyncMock()
    rpc.send_transaction.side_effect = RuntimeError("blockhash not found")
    client._client = rpc

    with pytest.raises(RuntimeError):
        await client.send_transaction(object())
    assert rpc.send_transaction.await_count == 1
    sleep.assert_not_awaited()
