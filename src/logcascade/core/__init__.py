"""Core data models, errors, configuration and the chunk-fetch use case.

This package provides:
- Data models (TransportDescriptor, Strategy, ChunkRequest, ChunkResult, AttemptStat, ScanProgress)
- Error taxonomy (AllTransportsExhausted, StrategyMismatch, InvalidRange, ...)
- Configuration classes (ScanConfig, ReorgPolicy)
- Statistics collection (StatsCollector)
"""

from logcascade.core.config import ReorgPolicy, ScanConfig
from logcascade.core.constants import UNCONSTRAINED
from logcascade.core.errors import (
    AllTransportsExhausted,
    InvalidRange,
    RPCError,
    ScanCancelled,
    ScanError,
    StrategyMismatch,
    TransportFailure,
)
from logcascade.core.models import (
    AttemptStat,
    CallOptions,
    ChunkRequest,
    ChunkResult,
    EventLog,
    ScanProgress,
    Strategy,
    TransportDescriptor,
)
from logcascade.core.stats import StatsCollector, TransportSummary

__all__ = [
    "ReorgPolicy",
    "ScanConfig",
    "UNCONSTRAINED",
    "AllTransportsExhausted",
    "InvalidRange",
    "RPCError",
    "ScanCancelled",
    "ScanError",
    "StrategyMismatch",
    "TransportFailure",
    "AttemptStat",
    "CallOptions",
    "ChunkRequest",
    "ChunkResult",
    "EventLog",
    "ScanProgress",
    "Strategy",
    "TransportDescriptor",
    "StatsCollector",
    "TransportSummary",
]
