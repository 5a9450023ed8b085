"""Fetch one chunk of logs through a ranked fallback cascade of transports.

`CascadeExecutor` is a small state machine::

    PENDING -> TRYING(transport_i) -> SUCCEEDED | EXHAUSTED
                                   -> CANCELLED (caller-owned event fired)

Every transport is tried with the *full* requested window; the planner only
shrinks it to what that transport accepts. The first success wins, even when
its achieved `to_block` is short of `to_block_max`: the caller asks again for
the remainder.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from logcascade.core.constants import GET_LOGS_METHOD, UNCONSTRAINED
from logcascade.core.errors import (
    AllTransportsExhausted,
    InvalidRange,
    ScanCancelled,
    StrategyMismatch,
    TransportFailure,
)
from logcascade.core.interfaces import IFilterEncoder, IStatsSink
from logcascade.core.models import (
    AttemptStat,
    ChunkRequest,
    ChunkResult,
    EventLog,
    Strategy,
    TransportDescriptor,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Chunk planner
# ---------------------------------------------------------------------------


def plan_to_block(from_block: int, to_block_max: int, transport: TransportDescriptor) -> int:
    """Return the largest `to_block` the transport can serve in one call.

    eth_getLogs is inclusive of both bounds, so N blocks span
    `to_block - from_block + 1 == N`.
    """
    if transport.max_num_blocks == UNCONSTRAINED:
        to_block = to_block_max
    else:
        to_block = min(to_block_max, from_block + int(transport.max_num_blocks) - 1)
    if to_block < from_block:
        raise InvalidRange(
            from_block,
            to_block,
            f"transport {transport.id!r} has max_num_blocks={transport.max_num_blocks}",
        )
    return to_block


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def build_get_logs_call(request: ChunkRequest, to_block: int) -> dict[str, Any]:
    """Build the `{method, params}` call spec for `[request.from_block, to_block]`."""
    flt: dict[str, Any] = {
        "topics": list(request.topics),
        "fromBlock": to_hex_block(request.from_block),
        "toBlock": to_hex_block(to_block),
    }
    if request.address:
        flt["address"] = request.address.lower()
    return {"method": GET_LOGS_METHOD, "params": [flt]}


def check_strategy_chain(chain_id: int, strategy: Strategy) -> None:
    """Fail fast if any transport is bound to another chain."""
    if strategy.chain_id != chain_id:
        raise StrategyMismatch(chain_id, strategy.chain_id)
    for transport in strategy:
        if transport.chain_id != chain_id:
            raise StrategyMismatch(chain_id, transport.chain_id, transport.id)


# ---------------------------------------------------------------------------
# Cascade executor
# ---------------------------------------------------------------------------


class CascadeState(str, Enum):
    PENDING = "pending"
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class CascadeExecutor:
    """Walk a strategy for one `ChunkRequest`, stopping at the first success.

    Parameters
    ----------
    chain_id : int
        Chain the caller is scanning; every transport must be bound to it.
    strategy : Strategy
        Ranked transports, tried in order.
    request : ChunkRequest
        Window and filter. The same window is offered to every transport.
    finalized_block_number : int | None
        Passed through to the result untouched.
    stats_sink : IStatsSink | None
        Receives each `AttemptStat` as soon as it is recorded. Sink errors are
        logged and never interrupt the cascade.
    cancel : asyncio.Event | None
        Caller-owned token. Only this aborts an in-flight request.
    """

    def __init__(
        self,
        *,
        chain_id: int,
        strategy: Strategy,
        request: ChunkRequest,
        finalized_block_number: int | None = None,
        stats_sink: IStatsSink | None = None,
        cancel: asyncio.Event | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.chain_id = chain_id
        self.strategy = strategy
        self.request = request
        self.finalized_block_number = finalized_block_number
        self.state = CascadeState.PENDING
        self.current: TransportDescriptor | None = None
        self._stats_sink = stats_sink
        self._cancel = cancel
        self._clock = clock
        self._stats: list[AttemptStat] = []

    @property
    def stats(self) -> tuple[AttemptStat, ...]:
        return tuple(self._stats)

    async def run(self) -> ChunkResult:
        if self.state is not CascadeState.PENDING:
            raise RuntimeError(f"cascade already ran (state={self.state.value})")

        check_strategy_chain(self.chain_id, self.strategy)

        req = self.request
        for transport in self.strategy:
            to_block = plan_to_block(req.from_block, req.to_block_max, transport)
            self.state = CascadeState.TRYING
            self.current = transport
            num_blocks = to_block - req.from_block + 1
            started_at = self._clock()

            try:
                raw = await self._invoke(transport, build_get_logs_call(req, to_block))
                logs = tuple(EventLog.from_rpc(rl) for rl in _as_log_list(raw))
            except ScanCancelled:
                self.state = CascadeState.CANCELLED
                raise
            except Exception as e:
                failure = TransportFailure(transport.id, e)
                await self._record(
                    AttemptStat(
                        transport_id=transport.id,
                        outcome="failure",
                        num_blocks_requested=num_blocks,
                        started_at=started_at,
                        ended_at=self._clock(),
                        error=f"{type(e).__name__}: {e}",
                    )
                )
                logger.warning(
                    "Failed to fetch %d->%d (%d blocks) with %s: %s",
                    req.from_block,
                    to_block,
                    num_blocks,
                    transport.id,
                    failure,
                )
                continue

            await self._record(
                AttemptStat(
                    transport_id=transport.id,
                    outcome="success",
                    num_blocks_requested=num_blocks,
                    started_at=started_at,
                    ended_at=self._clock(),
                )
            )
            logger.debug(
                "Fetched %d->%d (%d blocks, %d logs) with %s",
                req.from_block,
                to_block,
                num_blocks,
                len(logs),
                transport.id,
            )
            self.state = CascadeState.SUCCEEDED
            return ChunkResult(
                logs=logs,
                stats=self.stats,
                from_block=req.from_block,
                to_block=to_block,
                finalized_block_number=self.finalized_block_number,
            )

        self.state = CascadeState.EXHAUSTED
        self.current = None
        raise AllTransportsExhausted(req.from_block, req.to_block_max, self.stats)

    async def _record(self, stat: AttemptStat) -> None:
        self._stats.append(stat)
        if self._stats_sink is None:
            return
        try:
            await self._stats_sink.append(stat)
        except Exception as e:
            logger.warning("Stats sink rejected attempt of %s: %s", stat.transport_id, e)

    async def _invoke(self, transport: TransportDescriptor, call: dict[str, Any]) -> Any:
        """Run one request bounded by the transport's attempt budget."""
        if self._cancel is not None and self._cancel.is_set():
            raise ScanCancelled(f"cancelled before calling {transport.id!r}")

        call_coro = asyncio.wait_for(
            transport.request(call, transport.call_options),
            timeout=transport.attempt_budget_s,
        )
        if self._cancel is None:
            return await call_coro

        call_task = asyncio.ensure_future(call_coro)
        cancel_task = asyncio.ensure_future(self._cancel.wait())
        try:
            done, _ = await asyncio.wait({call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
        if call_task in done:
            return call_task.result()

        call_task.cancel()
        await asyncio.gather(call_task, return_exceptions=True)
        raise ScanCancelled(f"cancelled while {transport.id!r} was in flight")


def _as_log_list(raw: Any) -> list[Mapping[str, Any]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TypeError(f"eth_getLogs returned {type(raw).__name__}, expected a list")
    return raw


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------


async def fetch_chunk(
    chain_id: int,
    request: ChunkRequest,
    strategy: Strategy,
    finalized_block_number: int | None = None,
    *,
    stats_sink: IStatsSink | None = None,
    cancel: asyncio.Event | None = None,
) -> ChunkResult:
    """Serve `request` with the first transport of `strategy` that succeeds."""
    executor = CascadeExecutor(
        chain_id=chain_id,
        strategy=strategy,
        request=request,
        finalized_block_number=finalized_block_number,
        stats_sink=stats_sink,
        cancel=cancel,
    )
    return await executor.run()


async def query_chunk(
    chain_id: int,
    contract_address: str | None,
    event: Any,
    arg_filter: Mapping[str, Any] | None,
    from_block: int,
    to_block_max: int,
    strategy: Strategy,
    finalized_block_number: int | None = None,
    *,
    encoder: IFilterEncoder | None = None,
    stats_sink: IStatsSink | None = None,
    cancel: asyncio.Event | None = None,
) -> ChunkResult:
    """Encode `(event, arg_filter)` into topics and fetch one chunk.

    Callers re-invoke with an updated `from_block` until their range is covered.
    """
    if encoder is None:
        from logcascade.encoding.topics import encode_event_topics

        encoder = encode_event_topics
    request = ChunkRequest(
        from_block=from_block,
        to_block_max=to_block_max,
        topics=tuple(encoder(event, arg_filter)),
        address=contract_address,
    )
    return await fetch_chunk(
        chain_id,
        request,
        strategy,
        finalized_block_number,
        stats_sink=stats_sink,
        cancel=cancel,
    )
