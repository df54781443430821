"""Tests for the chain tip HTTP client - uses httpx mock transport."""

from __future__ import annotations

import httpx
import pytest

from wallet_ledger.chain.client import ChainTipClient
from wallet_ledger.config.settings import ChainConfig
from wallet_ledger.errors.definitions import OracleUnavailable

_BASE_URL = "http://tip.test"


def _client_with(handler) -> ChainTipClient:
    """Build a client whose internal httpx client uses a mock transport."""
    client = ChainTipClient(ChainConfig(url=_BASE_URL))
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=_BASE_URL,
    )
    return client


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connect_and_close(self) -> None:
        client = ChainTipClient(ChainConfig(url=_BASE_URL, auth_token="secret"))
        assert client.is_connected is False
        await client.connect()
        assert client.is_connected is True
        assert client._client.headers["Authorization"] == "Bearer secret"
        await client.close()
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_close_idempotent(self) -> None:
        client = ChainTipClient(ChainConfig())
        await client.close()
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_not_connected_raises(self) -> None:
        client = ChainTipClient(ChainConfig())
        with pytest.raises(OracleUnavailable, match="not connected"):
            await client.get_chain_tip_height()


# ---------------------------------------------------------------------------
# Tip height
# ---------------------------------------------------------------------------


class TestTipHeight:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{"height": 2_500_000}, {"blockHeight": 2_500_000}, {"latest_block_height": 2_500_000}],
    )
    async def test_height_keys(self, body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/chain/tip"
            return httpx.Response(200, json=body)

        client = _client_with(handler)
        assert await client.get_chain_tip_height() == 2_500_000
        await client.close()

    @pytest.mark.asyncio
    async def test_bare_integer_body(self) -> None:
        client = _client_with(lambda request: httpx.Response(200, json=42))
        assert await client.get_chain_tip_height() == 42

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        client = _client_with(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(OracleUnavailable, match="502") as exc_info:
            await client.get_chain_tip_height()
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_height(self) -> None:
        client = _client_with(lambda request: httpx.Response(200, json={"hash": "00ab"}))
        with pytest.raises(OracleUnavailable, match="no height"):
            await client.get_chain_tip_height()

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _client_with(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(OracleUnavailable, match="not JSON"):
            await client.get_chain_tip_height()

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client_with(handler)
        with pytest.raises(OracleUnavailable, match="request failed"):
            await client.get_chain_tip_height()


class TestHealthcheck:
    @pytest.mark.asyncio
    async def test_healthy(self) -> None:
        client = _client_with(lambda request: httpx.Response(200, json={"ok": True}))
        assert await client.healthcheck() is True

    @pytest.mark.asyncio
    async def test_unhealthy(self) -> None:
        client = _client_with(lambda request: httpx.Response(500))
        assert await client.healthcheck() is False

    @pytest.mark.asyncio
    async def test_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert await _client_with(handler).healthcheck() is False
