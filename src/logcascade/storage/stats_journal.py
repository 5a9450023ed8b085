from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from logcascade.core.models import AttemptStat


class StatsJournal:
    """Append-only JSONL journal of attempt statistics.

    Safe to share between concurrent scans: writes are serialized and each
    line is flushed and synced before `append` returns.
    """

    def __init__(self, path: str | Path) -> None:
        """Create (or reopen) the journal at `path`, creating parent directories."""
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self._lock = asyncio.Lock()

    async def append(self, stat: AttemptStat) -> None:
        """Append one attempt record."""
        line = stat.to_json_line()
        async with self._lock:
            await asyncio.to_thread(self._append_durably, line)

    def _append_durably(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line)
            fh.flush()
            os.fsync(fh.fileno())


def load_stats(path: str | Path) -> list[AttemptStat]:
    """Read a journal back; blank lines are skipped."""
    out: list[AttemptStat] = []
    with open(path) as f:
        for line in f:
            if not line.strip():
                continue
            out.append(AttemptStat(**json.loads(line)))
    return out
