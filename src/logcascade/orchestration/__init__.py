"""Orchestration of multi-chunk scans with coverage and progress tracking.

This package provides:
- RangeScanner: sequential, cursor-driven scan over one block range
- scan_concurrently: run independent scans side by side
- Interval utilities for coverage tracking and reorg reconciliation
"""

from logcascade.orchestration.scanner import RangeScanner, ScanStep, scan_concurrently
from logcascade.orchestration.utils import (
    covered_blocks,
    merge_intervals,
    reconcile_logs,
    subtract_iv,
)

__all__ = [
    "RangeScanner",
    "ScanStep",
    "scan_concurrently",
    "covered_blocks",
    "merge_intervals",
    "reconcile_logs",
    "subtract_iv",
]
