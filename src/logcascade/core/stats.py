"""In-memory collector for per-attempt statistics."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from logcascade.core.models import AttemptStat


@dataclass(kw_only=True)
class TransportSummary:
    """Aggregated counters for one transport across many attempts."""

    transport_id: str
    successes: int = 0
    failures: int = 0
    blocks_served: int = 0
    total_duration_s: float = 0.0

    @property
    def attempts(self) -> int:
        return self.successes + self.failures

    @property
    def mean_duration_s(self) -> float:
        return self.total_duration_s / self.attempts if self.attempts else 0.0

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0


class StatsCollector:
    """Append-only record of attempts; also usable as an `IStatsSink`."""

    def __init__(self, stats: Iterable[AttemptStat] = ()) -> None:
        self._stats: list[AttemptStat] = list(stats)

    def record(self, stat: AttemptStat) -> None:
        self._stats.append(stat)

    def extend(self, stats: Iterable[AttemptStat]) -> None:
        self._stats.extend(stats)

    async def append(self, stat: AttemptStat) -> None:
        self.record(stat)

    def snapshot(self) -> tuple[AttemptStat, ...]:
        return tuple(self._stats)

    def __len__(self) -> int:
        return len(self._stats)

    def summary(self) -> dict[str, TransportSummary]:
        """Per-transport counters, keyed in order of first appearance."""
        out: dict[str, TransportSummary] = {}
        for s in self._stats:
            agg = out.get(s.transport_id)
            if agg is None:
                agg = out[s.transport_id] = TransportSummary(transport_id=s.transport_id)
            if s.ok:
                agg.successes += 1
                agg.blocks_served += s.num_blocks_requested
            else:
                agg.failures += 1
            agg.total_duration_s += s.duration_s
        return out
