"""Range scanner: cover `[from_block, to_block]` with successive cascades.

A scan is a strictly sequential chain of chunk fetches: each request is
derived from the coverage produced by the previous one. Independent scans
can run side by side (`scan_concurrently`) since they only share the
read-only `Strategy`.

Traversal
---------
- forward: the next window starts right after the last achieved `to_block`.
- reverse: windows are taken from the top down so recent activity is
  available first. A window spans `max_block_range` blocks (default
  `DEFAULT_MAX_NUM_BLOCKS`), capped at the preferred transport's
  `max_num_blocks` so that transport serves the newest blocks of the window.
  When a fallback serves a window `[a, b]` only up to `t < b`, the remainder
  `[t + 1, b]` is requested next, before moving further down.

Forward scans without `max_block_range` ask for everything left and let the
planner size each call per transport.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from logcascade.core.config import ReorgPolicy
from logcascade.core.constants import DEFAULT_MAX_NUM_BLOCKS, UNCONSTRAINED
from logcascade.core.errors import AllTransportsExhausted, InvalidRange, ScanError
from logcascade.core.interfaces import IStatsSink
from logcascade.core.models import ChunkRequest, ChunkResult, EventLog, ScanProgress, Strategy
from logcascade.core.stats import StatsCollector
from logcascade.core.use_cases.fetch_chunk import fetch_chunk
from logcascade.orchestration.utils import covered_blocks, merge_intervals, reconcile_logs, subtract_iv

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ScanStep:
    """One orchestration step: the window asked for, what was served, and progress after it."""

    window: tuple[int, int]
    result: ChunkResult
    progress: ScanProgress


class RangeScanner:
    """Incrementally fetch logs for one filter over one block range.

    Partial state (`results`, `logs`, `coverage`, `progress`) stays readable
    after a terminal error so callers can keep showing what was fetched.
    """

    def __init__(
        self,
        *,
        chain_id: int,
        strategy: Strategy,
        from_block: int,
        to_block: int,
        topics: Sequence[Any] = (),
        address: str | None = None,
        finalized_block_number: int | None = None,
        reverse: bool = False,
        max_block_range: int | None = None,
        reorg_policy: ReorgPolicy = ReorgPolicy.KEEP,
        stats_sink: IStatsSink | None = None,
        cancel: asyncio.Event | None = None,
        on_step: Callable[[ScanStep], None] | None = None,
    ) -> None:
        if from_block < 0 or from_block > to_block:
            raise InvalidRange(from_block, to_block, "scan range must satisfy 0 <= from_block <= to_block")
        if max_block_range is not None and max_block_range <= 0:
            raise ValueError("max_block_range must be positive")

        self.chain_id = chain_id
        self.strategy = strategy
        self.from_block = from_block
        self.to_block = to_block
        self.topics = tuple(topics)
        self.address = address
        self.finalized_block_number = finalized_block_number
        self.reverse = reverse
        self.max_block_range = max_block_range
        self.reorg_policy = reorg_policy
        self.error: ScanError | None = None

        self._stats_sink = stats_sink
        self._cancel = cancel
        self._on_step = on_step
        self._frontier = to_block if reverse else from_block
        self._span = _window_span(strategy, reverse, max_block_range)
        self._gaps: list[tuple[int, int]] = []
        self._coverage: list[tuple[int, int]] = []
        self._results: list[ChunkResult] = []
        self._stats = StatsCollector()
        self._progress = ScanProgress(blocks_covered=0, blocks_total=to_block - from_block + 1)

    # -- state -------------------------------------------------------------

    @property
    def progress(self) -> ScanProgress:
        return self._progress

    @property
    def fraction_fetched(self) -> float:
        return self._progress.fraction_fetched

    @property
    def is_complete(self) -> bool:
        return self._progress.is_complete

    @property
    def results(self) -> tuple[ChunkResult, ...]:
        """Chunk results in traversal order."""
        return tuple(self._results)

    @property
    def coverage(self) -> tuple[tuple[int, int], ...]:
        """Merged inclusive ranges covered so far."""
        return tuple(self._coverage)

    @property
    def missing(self) -> list[tuple[int, int]]:
        """Inclusive ranges of the scan not covered yet."""
        return subtract_iv((self.from_block, self.to_block), self._coverage)

    @property
    def stats(self) -> StatsCollector:
        """Every attempt of the scan, failed chunks included."""
        return self._stats

    @property
    def logs(self) -> list[EventLog]:
        """Accumulated logs in traversal order, reconciled with `reorg_policy`."""
        return reconcile_logs(
            (log for r in self._results for log in r.logs),
            self.reorg_policy,
            self.finalized_block_number,
        )

    def next_window(self) -> tuple[int, int] | None:
        """The `[from_block, to_block_max]` the next step will request, or None when done."""
        if self._gaps:
            return self._gaps[-1]
        span = self._span
        if self.reverse:
            if self._frontier < self.from_block:
                return None
            hi = self._frontier
            lo = self.from_block if span is None else max(self.from_block, hi - span + 1)
            return lo, hi
        if self._frontier > self.to_block:
            return None
        lo = self._frontier
        hi = self.to_block if span is None else min(self.to_block, lo + span - 1)
        return lo, hi

    # -- driving -----------------------------------------------------------

    async def step(self) -> ScanStep:
        """Fetch the next chunk and extend coverage."""
        window = self.next_window()
        if window is None:
            raise RuntimeError("scan is already complete")

        request = ChunkRequest(
            from_block=window[0],
            to_block_max=window[1],
            topics=self.topics,
            address=self.address,
        )
        try:
            result = await fetch_chunk(
                self.chain_id,
                request,
                self.strategy,
                self.finalized_block_number,
                stats_sink=self._stats_sink,
                cancel=self._cancel,
            )
        except AllTransportsExhausted as e:
            self._stats.extend(e.stats)
            self.error = e
            raise
        except ScanError as e:
            self.error = e
            raise

        self._stats.extend(result.stats)
        self._advance(window, result)

        step = ScanStep(window=window, result=result, progress=self._progress)
        logger.debug(
            "Covered %d->%d, %.2f%% fetched",
            result.from_block,
            result.to_block,
            100 * step.progress.fraction_fetched,
        )
        if self._on_step is not None:
            self._on_step(step)
        return step

    def _advance(self, window: tuple[int, int], result: ChunkResult) -> None:
        a, b = window
        t = result.to_block
        from_gap = bool(self._gaps) and self._gaps[-1] == window
        if from_gap:
            self._gaps.pop()

        if self.reverse:
            if not from_gap:
                self._frontier = a - 1
            if t < b:
                self._gaps.append((t + 1, b))
        else:
            self._frontier = t + 1

        self._results.append(result)
        self._coverage = merge_intervals([*self._coverage, (result.from_block, t)])
        self._progress = ScanProgress(
            blocks_covered=covered_blocks(self._coverage),
            blocks_total=self._progress.blocks_total,
        )

    async def run(self) -> ScanProgress:
        """Step until the whole range is covered; the first terminal error propagates."""
        while self.next_window() is not None:
            await self.step()
        return self._progress

    async def __aiter__(self) -> AsyncIterator[ScanStep]:
        while self.next_window() is not None:
            yield await self.step()


def _window_span(strategy: Strategy, reverse: bool, max_block_range: int | None) -> int | None:
    """Blocks asked for per window; None means everything left."""
    if not reverse:
        return max_block_range
    span = max_block_range or DEFAULT_MAX_NUM_BLOCKS
    preferred = strategy.transports[0].max_num_blocks
    if preferred != UNCONSTRAINED:
        span = min(span, int(preferred))
    return span


async def scan_concurrently(
    scanners: Iterable[RangeScanner],
    *,
    concurrency: int = 4,
) -> list[AllTransportsExhausted | None]:
    """Run independent scans with at most `concurrency` in flight.

    Returns one entry per scanner: None when it completed, or the exhaustion
    error that stopped it. Any other error cancels the remaining scans and
    propagates once they have finished.
    """
    sem = asyncio.Semaphore(concurrency)

    async def _run_one(scanner: RangeScanner) -> AllTransportsExhausted | None:
        async with sem:
            try:
                await scanner.run()
            except AllTransportsExhausted as e:
                return e
        return None

    tasks = [asyncio.create_task(_run_one(s)) for s in scanners]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        # no scan outlives the call
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
