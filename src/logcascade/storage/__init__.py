"""Storage adapters for attempt statistics and scanned logs.

This package provides:
- StatsJournal: async, append-only JSONL journal of AttemptStat records
- write_logs_parquet: Parquet export of EventLog rows
"""

from logcascade.storage.parquet_sink import logs_to_arrow_table, write_logs_parquet
from logcascade.storage.stats_journal import StatsJournal, load_stats

__all__ = [
    "StatsJournal",
    "load_stats",
    "logs_to_arrow_table",
    "write_logs_parquet",
]
