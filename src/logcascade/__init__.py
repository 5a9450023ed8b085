from __future__ import annotations

from .core.config import ReorgPolicy, ScanConfig
from .core.constants import UNCONSTRAINED
from .core.errors import AllTransportsExhausted, InvalidRange, ScanError, StrategyMismatch
from .core.models import ChunkRequest, ChunkResult, ScanProgress, Strategy, TransportDescriptor
from .core.use_cases.fetch_chunk import fetch_chunk, plan_to_block, query_chunk
from .orchestration.scanner import RangeScanner, scan_concurrently

__all__ = [
    "ReorgPolicy",
    "ScanConfig",
    "UNCONSTRAINED",
    "AllTransportsExhausted",
    "InvalidRange",
    "ScanError",
    "StrategyMismatch",
    "ChunkRequest",
    "ChunkResult",
    "ScanProgress",
    "Strategy",
    "TransportDescriptor",
    "fetch_chunk",
    "plan_to_block",
    "query_chunk",
    "RangeScanner",
    "scan_concurrently",
]
