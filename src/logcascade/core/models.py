"""Core data models for chunked, multi-transport log retrieval.

This module defines:
- `TransportDescriptor` / `Strategy`: read-only endpoint tables for one chain.
- `ChunkRequest`: one `[from_block, to_block_max]` window plus its filter.
- `EventLog`: a raw RPC log, minimally normalized.
- `AttemptStat` / `ChunkResult`: the immutable outcome of one cascade.
- `ScanProgress`: blocks covered versus blocks requested.

Design notes
------------
- All block bounds are inclusive on both ends: `[from_block, to_block]`.
- Results carry tuples only and hold no back-references, so they can be
  shared freely once returned.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterator, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from logcascade.core.constants import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_S,
    DEFAULT_TIMEOUT_S,
    UNCONSTRAINED,
)
from logcascade.core.errors import InvalidRange, StrategyMismatch

Unconstrained = Literal["unconstrained"]
MaxNumBlocks = int | Unconstrained
Outcome = Literal["success", "failure"]

# Topic filter as accepted by eth_getLogs: None (wildcard), one hash, or an OR-set.
TopicFilter = Sequence[str | Sequence[str] | None]


# === Transports ===


@dataclass(slots=True, frozen=True)
class CallOptions:
    """Knobs forwarded to a request primitive for one call."""

    timeout_s: float = DEFAULT_TIMEOUT_S
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S


RequestFn = Callable[[dict[str, Any], CallOptions], Awaitable[Any]]


@dataclass(slots=True, frozen=True)
class TransportDescriptor:
    """One endpoint able to serve `eth_getLogs`, with its own limits and retry budget."""

    id: str
    chain_id: int
    request: RequestFn = field(compare=False, repr=False)
    max_num_blocks: MaxNumBlocks = UNCONSTRAINED
    timeout_s: float = DEFAULT_TIMEOUT_S
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S

    @property
    def call_options(self) -> CallOptions:
        return CallOptions(
            timeout_s=self.timeout_s,
            retry_count=self.retry_count,
            retry_delay_s=self.retry_delay_s,
        )

    @property
    def attempt_budget_s(self) -> float:
        """Upper bound for one cascade attempt, internal retries included."""
        return self.timeout_s * (self.retry_count + 1) + self.retry_delay_s * self.retry_count


@dataclass(slots=True, frozen=True)
class Strategy:
    """Ordered fallback cascade of transports, all bound to `chain_id`."""

    chain_id: int
    transports: tuple[TransportDescriptor, ...]

    def __post_init__(self) -> None:
        if not self.transports:
            raise StrategyMismatch(self.chain_id, None)
        for t in self.transports:
            if t.chain_id != self.chain_id:
                raise StrategyMismatch(self.chain_id, t.chain_id, t.id)

    @classmethod
    def of(cls, *transports: TransportDescriptor) -> Strategy:
        """Build a strategy whose chain is taken from the first transport."""
        if not transports:
            raise ValueError("a strategy needs at least one transport")
        return cls(chain_id=transports[0].chain_id, transports=tuple(transports))

    def __iter__(self) -> Iterator[TransportDescriptor]:
        return iter(self.transports)

    def __len__(self) -> int:
        return len(self.transports)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.transports)


# === Requests ===


@dataclass(slots=True, frozen=True)
class ChunkRequest:
    """A window `[from_block, to_block_max]` to be served by one cascade."""

    from_block: int
    to_block_max: int
    topics: tuple[Any, ...] = ()
    address: str | None = None

    def __post_init__(self) -> None:
        if self.from_block < 0:
            raise InvalidRange(self.from_block, self.to_block_max, "from_block must be >= 0")
        if self.from_block > self.to_block_max:
            raise InvalidRange(self.from_block, self.to_block_max, "from_block must be <= to_block_max")

    @property
    def num_blocks(self) -> int:
        return self.to_block_max - self.from_block + 1


# === RPC record ===


def _hex_to_int(x: Any) -> int:
    if isinstance(x, int):
        return x
    return int(str(x), 16)


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as returned by eth_getLogs, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_hash: str | None = None
    removed: bool = False

    @classmethod
    def from_rpc(cls, raw: Mapping[str, Any]) -> EventLog:
        """Normalize one log object of an eth_getLogs response."""
        topics = tuple((t if isinstance(t, str) else t.hex()).lower() for t in raw.get("topics", []))
        block_hash = raw.get("blockHash")
        return cls(
            address=str(raw["address"]).lower(),
            topics=topics,
            data_hex=str(raw.get("data") or "0x"),
            block_number=_hex_to_int(raw["blockNumber"]),
            tx_hash=str(raw.get("transactionHash") or "").lower(),
            log_index=_hex_to_int(raw["logIndex"]),
            block_hash=block_hash.lower() if isinstance(block_hash, str) else None,
            removed=bool(raw.get("removed", False)),
        )

    @property
    def topic0(self) -> str | None:
        return self.topics[0] if self.topics else None


# === Results ===


@dataclass(slots=True, frozen=True)
class AttemptStat:
    """Diagnostics for one attempt of one transport."""

    transport_id: str
    outcome: Outcome
    num_blocks_requested: int
    started_at: float
    ended_at: float
    error: str | None = None

    @property
    def duration_s(self) -> float:
        return self.ended_at - self.started_at

    @property
    def ok(self) -> bool:
        return self.outcome == "success"

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(asdict(self), separators=(",", ":")) + "\n"


@dataclass(slots=True, frozen=True)
class ChunkResult:
    """Outcome of a successful cascade: logs for `[from_block, to_block]`."""

    logs: tuple[EventLog, ...]
    stats: tuple[AttemptStat, ...]
    from_block: int
    to_block: int  # achieved, <= the requested to_block_max
    finalized_block_number: int | None

    @property
    def num_blocks(self) -> int:
        return self.to_block - self.from_block + 1


@dataclass(slots=True, frozen=True)
class ScanProgress:
    """Blocks covered so far versus blocks requested by the scan."""

    blocks_covered: int
    blocks_total: int

    def __post_init__(self) -> None:
        if self.blocks_total <= 0:
            raise ValueError("blocks_total must be positive")
        if not 0 <= self.blocks_covered <= self.blocks_total:
            raise ValueError("blocks_covered must lie in [0, blocks_total]")

    @property
    def fraction_fetched(self) -> float:
        return self.blocks_covered / self.blocks_total

    @property
    def is_complete(self) -> bool:
        return self.blocks_covered == self.blocks_total
