"""Parquet export of scanned logs.

Block numbers and log indices are typed `uint64`; hashes, addresses and the
data payload are strings. Topics are stored as one `topic0..topic3` column
each (None when absent). Rows are sorted by (block_number, log_index).
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from logcascade.core.models import EventLog

MAX_TOPICS = 4

LOGS_SCHEMA = pa.schema(
    [
        pa.field("block_number", pa.uint64()),
        pa.field("log_index", pa.uint64()),
        pa.field("tx_hash", pa.string()),
        pa.field("block_hash", pa.string()),
        pa.field("address", pa.string()),
        *(pa.field(f"topic{i}", pa.string()) for i in range(MAX_TOPICS)),
        pa.field("data", pa.string()),
        pa.field("removed", pa.bool_()),
    ]
)


def logs_to_arrow_table(logs: Iterable[EventLog]) -> pa.Table:
    """Convert logs to a sorted Arrow table with a deterministic schema."""
    cols: dict[str, list] = {f.name: [] for f in LOGS_SCHEMA}
    for log in logs:
        cols["block_number"].append(log.block_number)
        cols["log_index"].append(log.log_index)
        cols["tx_hash"].append(log.tx_hash)
        cols["block_hash"].append(log.block_hash)
        cols["address"].append(log.address)
        for i in range(MAX_TOPICS):
            cols[f"topic{i}"].append(log.topics[i] if i < len(log.topics) else None)
        cols["data"].append(log.data_hex)
        cols["removed"].append(log.removed)
    table = pa.Table.from_pydict(cols, schema=LOGS_SCHEMA)
    return table.sort_by([("block_number", "ascending"), ("log_index", "ascending")])


def write_logs_parquet(logs: Iterable[EventLog], path: str | Path, *, codec: str = "zstd") -> Path:
    """Write logs to a single Parquet file and return its path."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(logs_to_arrow_table(logs), out_path, compression=codec)
    return out_path
