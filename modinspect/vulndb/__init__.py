from .scanner import (
    ScanError,
    ScanResult,
    Scanner,
    ScannerNotFound,
    Vulnerability,
    filter_by_severity,
    group_by_severity,
    parse_stream,
)

__all__ = [
    "ScanError",
    "ScanResult",
    "Scanner",
    "ScannerNotFound",
    "Vulnerability",
    "filter_by_severity",
    "group_by_severity",
    "parse_stream",
]
