"""Error taxonomy for chunked log retrieval.

- `TransportFailure`: one attempt on one transport failed (absorbed by the cascade).
- `AllTransportsExhausted`: every transport failed for a chunk (surfaced).
- `StrategyMismatch` / `InvalidRange`: caller-side invariant violations (fatal).
- `ScanCancelled`: the caller fired its cancellation event.
- `RPCError`: an endpoint answered with a JSON-RPC error object.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from logcascade.core.models import AttemptStat


class ScanError(Exception):
    """Base class for every error raised by logcascade."""


class TransportFailure(ScanError):
    """A single transport call failed or timed out."""

    def __init__(self, transport_id: str, cause: BaseException) -> None:
        self.transport_id = transport_id
        self.cause = cause
        super().__init__(f"transport {transport_id!r} failed: {type(cause).__name__}: {cause}")


class AllTransportsExhausted(ScanError):
    """Every transport of the strategy failed for the chunk starting at `from_block`."""

    def __init__(self, from_block: int, to_block_max: int, stats: tuple[AttemptStat, ...]) -> None:
        self.from_block = from_block
        self.to_block_max = to_block_max
        self.stats = stats
        tried = ", ".join(s.transport_id for s in stats) or "none"
        super().__init__(
            f"Failed to fetch range starting at from_block={from_block} "
            f"(to_block_max={to_block_max}) -- all transports errored [{tried}]"
        )


class StrategyMismatch(ScanError, ValueError):
    """A transport is bound to another chain than the one being scanned."""

    def __init__(self, expected_chain_id: int, got_chain_id: int | None, transport_id: str | None = None) -> None:
        self.expected_chain_id = expected_chain_id
        self.got_chain_id = got_chain_id
        self.transport_id = transport_id
        where = f" (transport {transport_id!r})" if transport_id else ""
        super().__init__(
            f"outdated transport(s){where} -- need chain_id {expected_chain_id}, got {got_chain_id}"
        )


class InvalidRange(ScanError, ValueError):
    """A block window is empty or negative."""

    def __init__(self, from_block: int, to_block: int, reason: str = "") -> None:
        self.from_block = from_block
        self.to_block = to_block
        msg = f"invalid block range [{from_block}, {to_block}]"
        super().__init__(f"{msg}: {reason}" if reason else msg)


class ScanCancelled(ScanError):
    """The caller-owned cancellation event fired while a request was in flight."""


class RPCError(ScanError):
    """JSON-RPC error object returned by an endpoint."""

    def __init__(self, code: Any, message: Any, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error code={code} message={message}")
