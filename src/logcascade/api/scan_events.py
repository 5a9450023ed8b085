"""High-level convenience API for notebooks / scripts.

`scan_events` wires concrete pieces (RPC clients, strategy, topic encoding,
optional stats journal) around a `RangeScanner` and manages client lifecycle.
`scan_many` does the same for several scans at once, building one shared
strategy per chain.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from logcascade.clients.rpc import RPC
from logcascade.core.config import ReorgPolicy, ScanConfig
from logcascade.core.errors import AllTransportsExhausted, ScanError, StrategyMismatch
from logcascade.core.models import ChunkResult, EventLog, ScanProgress, Strategy
from logcascade.core.stats import TransportSummary
from logcascade.encoding import encode_event_topics, resolve_event
from logcascade.orchestration.scanner import RangeScanner, ScanStep, scan_concurrently
from logcascade.storage.stats_journal import StatsJournal
from logcascade.strategies import StrategySpec, build_strategy, default_strategy_spec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ScanReport:
    """Outcome of one scan, partial when `error` is set."""

    config: ScanConfig
    from_block: int
    to_block: int
    finalized_block_number: int | None
    progress: ScanProgress
    logs: list[EventLog]
    results: tuple[ChunkResult, ...]
    stats_summary: dict[str, TransportSummary]
    error: AllTransportsExhausted | None = None

    @property
    def complete(self) -> bool:
        return self.error is None and self.progress.is_complete


# ---------------------------------------------------------------------------
# Setup helpers
# ---------------------------------------------------------------------------


async def _ask_clients(clients: Sequence[RPC], tag: str) -> int:
    """Resolve a block tag with the first client that answers."""
    last: Exception | None = None
    for rpc in clients:
        try:
            if tag == "finalized":
                return await rpc.finalized_block()
            return await rpc.latest_block()
        except Exception as e:
            logger.warning("Could not resolve %r block with %s: %s", tag, rpc.url, e)
            last = e
    raise ScanError(f"could not resolve the {tag!r} block with any transport") from last


async def _resolve_block_range(
    clients: Sequence[RPC],
    config: ScanConfig,
) -> tuple[int, int, int | None]:
    """Resolve start/end blocks and, when needed, the finalized block."""
    start_block, end_block = config.from_block, config.to_block

    if isinstance(start_block, str) and start_block.lower() in ("earliest", "genesis"):
        start = 0
    else:
        start = int(start_block)

    finalized: int | None = None
    needs_finalized = config.reorg_policy is ReorgPolicy.FINALIZED_ONLY
    if isinstance(end_block, str) and end_block.lower() == "finalized":
        finalized = await _ask_clients(clients, "finalized")
        end = finalized
    elif isinstance(end_block, str) and end_block.lower() == "latest":
        end = await _ask_clients(clients, "latest")
    else:
        end = int(end_block)

    if finalized is None and needs_finalized:
        finalized = await _ask_clients(clients, "finalized")

    return start, end, finalized


async def _make_scanner(
    config: ScanConfig,
    strategy: Strategy,
    clients: Sequence[RPC],
    *,
    on_step: Callable[[ScanStep], None] | None,
    cancel: asyncio.Event | None,
) -> RangeScanner:
    event = resolve_event(config.event, config.abi_path)
    topics = encode_event_topics(event, config.arg_filter)
    start, end, finalized = await _resolve_block_range(clients, config)

    return RangeScanner(
        chain_id=config.chain_id,
        strategy=strategy,
        from_block=start,
        to_block=end,
        topics=topics,
        address=config.address,
        finalized_block_number=finalized,
        reverse=config.reverse,
        max_block_range=config.max_block_range,
        reorg_policy=config.reorg_policy,
        stats_sink=StatsJournal(config.stats_path) if config.stats_path else None,
        cancel=cancel,
        on_step=on_step,
    )


def _report(config: ScanConfig, scanner: RangeScanner, error: AllTransportsExhausted | None) -> ScanReport:
    return ScanReport(
        config=config,
        from_block=scanner.from_block,
        to_block=scanner.to_block,
        finalized_block_number=scanner.finalized_block_number,
        progress=scanner.progress,
        logs=scanner.logs,
        results=scanner.results,
        stats_summary=scanner.stats.summary(),
        error=error,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def scan_many(
    configs: Sequence[ScanConfig],
    *,
    strategy_specs: Mapping[int, StrategySpec] | None = None,
    concurrency: int = 4,
    client_factory: Callable[..., RPC] = RPC,
    on_step: Callable[[ScanConfig, ScanStep], None] | None = None,
    cancel: asyncio.Event | None = None,
) -> list[ScanReport]:
    """Run several scans concurrently; scans on the same chain share one strategy.

    Exhaustion of a scan is reported in its `ScanReport.error` with partial
    data; invariant violations propagate.
    """
    specs = dict(strategy_specs or {})
    built: dict[int, tuple[Strategy, list[RPC]]] = {}
    try:
        for config in configs:
            if config.chain_id in built:
                continue
            spec = specs.get(config.chain_id) or default_strategy_spec(config.chain_id)
            if spec.chain_id != config.chain_id:
                raise StrategyMismatch(config.chain_id, spec.chain_id)
            built[config.chain_id] = build_strategy(spec, client_factory)

        scanners: list[RangeScanner] = []
        for config in configs:
            strategy, clients = built[config.chain_id]
            step_cb = None
            if on_step is not None:
                step_cb = (lambda cfg: lambda step: on_step(cfg, step))(config)
            scanners.append(await _make_scanner(config, strategy, clients, on_step=step_cb, cancel=cancel))

        errors = await scan_concurrently(scanners, concurrency=concurrency)
        for config, error in zip(configs, errors):
            if error is not None:
                logger.error("Scan of %s on chain %d stopped early: %s", config.event, config.chain_id, error)
        return [_report(c, s, e) for c, s, e in zip(configs, scanners, errors)]
    finally:
        await asyncio.gather(*(rpc.aclose() for _, clients in built.values() for rpc in clients))


async def scan_events(
    config: ScanConfig,
    *,
    strategy_spec: StrategySpec | None = None,
    client_factory: Callable[..., RPC] = RPC,
    on_step: Callable[[ScanStep], None] | None = None,
    cancel: asyncio.Event | None = None,
) -> ScanReport:
    """Scan one event over one range with the given (or default) strategy."""
    (report,) = await scan_many(
        [config],
        strategy_specs={config.chain_id: strategy_spec} if strategy_spec is not None else None,
        concurrency=1,
        client_factory=client_factory,
        on_step=(lambda _cfg, step: on_step(step)) if on_step is not None else None,
        cancel=cancel,
    )
    return report
