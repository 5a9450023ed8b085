"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits whose
  `request` method is the request primitive a `TransportDescriptor` wraps
- Helpers for the chain head and the finalized block

It does not parse logs; the cascade normalizes `eth_getLogs` results.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from logcascade.core.constants import RETRYABLE_HTTP_STATUS
from logcascade.core.errors import RPCError
from logcascade.core.models import CallOptions

logger = logging.getLogger(__name__)


def _retry_after_s(response: httpx.Response) -> float | None:
    ra = response.headers.get("Retry-After")
    if ra and ra.isdigit():
        return float(ra)
    return None


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : float
        Default per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    client : httpx.AsyncClient | None
        Pre-built client (tests inject one backed by `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 30,
        max_connections: int = 64,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._ids = itertools.count(1)
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )

    async def request(self, call_spec: dict[str, Any], options: CallOptions | None = None) -> Any:
        """POST one JSON-RPC call and return its `result`.

        Transport errors, timeouts and HTTP 429/5xx are retried up to
        `options.retry_count` times, `options.retry_delay_s` apart (429 honors
        `Retry-After`). A JSON-RPC error object raises `RPCError` at once.
        """
        options = options or CallOptions()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": call_spec["method"],
            "params": call_spec.get("params", []),
        }
        timeout = httpx.Timeout(options.timeout_s)

        for attempt in range(options.retry_count + 1):
            last = attempt == options.retry_count
            delay = options.retry_delay_s
            try:
                r = await self.client.post(self.url, json=payload, timeout=timeout)
                if r.status_code in RETRYABLE_HTTP_STATUS and not last:
                    if r.status_code == 429:
                        delay = max(delay, _retry_after_s(r) or 0.0)
                    logger.debug("%s answered HTTP %d, retrying in %.2fs", self.url, r.status_code, delay)
                    await asyncio.sleep(delay)
                    continue
                r.raise_for_status()
            except httpx.TransportError as e:
                if last:
                    raise
                logger.debug("%s transport error %s, retrying in %.2fs", self.url, type(e).__name__, delay)
                await asyncio.sleep(delay)
                continue

            data = r.json()
            if "error" in data:
                err = data["error"]
                if isinstance(err, dict):
                    raise RPCError(err.get("code"), err.get("message"), err.get("data"))
                raise RPCError(None, str(err))
            return data.get("result")

        raise RuntimeError("unreachable: retry loop exited without a response")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        result = await self.request({"method": "eth_blockNumber", "params": []})
        return int(result, 16)

    async def finalized_block(self) -> int:
        """Return the finalized block number, or the latest one if the tag is unsupported."""
        try:
            block = await self.request({"method": "eth_getBlockByNumber", "params": ["finalized", False]})
        except RPCError as e:
            logger.info("%s does not support the 'finalized' tag (%s); using latest", self.url, e)
            return await self.latest_block()
        if not block:
            return await self.latest_block()
        return int(block["number"], 16)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> RPC:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
