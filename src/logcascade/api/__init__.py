from logcascade.api.scan_events import ScanReport, scan_events, scan_many

__all__ = ["ScanReport", "scan_events", "scan_many"]
