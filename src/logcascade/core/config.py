from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from logcascade.core.constants import DEFAULT_MAX_NUM_BLOCKS


class ReorgPolicy(str, Enum):
    """How accumulated logs are reconciled against reorgs."""

    KEEP = "keep"  # return logs exactly as served
    DROP_REMOVED = "drop_removed"  # drop logs flagged `removed: true`
    FINALIZED_ONLY = "finalized_only"  # also drop logs above the finalized block


@dataclass(frozen=True)
class ScanConfig:
    """Configuration for one historical log scan."""

    chain_id: int
    address: str | None
    event: str  # signature, e.g. "Transfer(address indexed from,address indexed to,uint256 value)"
    from_block: int | str
    to_block: int | str = "latest"  # int | "latest" | "finalized"
    arg_filter: Mapping[str, Any] = field(default_factory=dict)
    max_block_range: int | None = DEFAULT_MAX_NUM_BLOCKS  # None: whole range per request when scanning forward
    reverse: bool = True
    reorg_policy: ReorgPolicy = ReorgPolicy.KEEP
    abi_path: Path | None = None  # resolve `event` by name from this ABI instead
    stats_path: Path | None = None  # optional JSONL journal of attempts
