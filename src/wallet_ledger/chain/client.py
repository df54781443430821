"""Chain tip HTTP client.

Async client for a light-wallet backend exposing the current tip:
- GET /api/v1/chain/tip - current chain tip height
- GET /api/v1/chain/healthcheck - Health check
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from wallet_ledger.errors.definitions import OracleUnavailable

if TYPE_CHECKING:
    from wallet_ledger.config.settings import ChainConfig


def _parse_height(body: Any) -> int:
    """Extract the tip height from the response body."""
    if isinstance(body, int) and not isinstance(body, bool):
        return body
    if isinstance(body, dict):
        for key in ("height", "blockHeight", "latest_block_height"):
            value = body.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    raise OracleUnavailable(f"chain tip response has no height: {body!r}")


class ChainTipClient:
    """Async HTTP client that satisfies :class:`ChainTipSource`.

    Usage::

        client = ChainTipClient(config.chain)
        await client.connect()
        try:
            tip = await client.get_chain_tip_height()
        finally:
            await client.close()
    """

    def __init__(self, config: ChainConfig) -> None:
        """Initialize the client.

        Args:
            config: Chain configuration (url, auth_token, timeout).
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:  # noqa: ASYNC910
        """Create the underlying HTTP client."""
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._config.auth_token:
            headers["Authorization"] = f"Bearer {self._config.auth_token}"

        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    async def get_chain_tip_height(self) -> int:
        """Fetch the current chain tip height.

        Raises:
            OracleUnavailable: On transport errors, non-200 responses, or a
                body without a height.
        """
        client = self._ensure_connected()
        try:
            response = await client.get("/api/v1/chain/tip")
        except httpx.HTTPError as exc:
            raise OracleUnavailable(f"chain tip request failed: {exc}") from exc

        if response.status_code != 200:
            raise OracleUnavailable(
                f"chain tip request failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise OracleUnavailable("chain tip response is not JSON") from exc
        return _parse_height(body)

    async def healthcheck(self) -> bool:
        """Return True if the backend answers its health endpoint."""
        client = self._ensure_connected()
        try:
            response = await client.get("/api/v1/chain/healthcheck")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Chain tip client not connected. Call connect() first."
            raise OracleUnavailable(msg, status_code=500)
        return self._client
