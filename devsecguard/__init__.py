"""Repository scanner for exposed secrets and injection/XSS patterns."""

from devsecguard.core.orchestrator import Scanner, scan, scan_async
from devsecguard.detectors.result_schema import Finding, ScanResult

__version__ = "0.1.0"

__all__ = ["Finding", "ScanResult", "Scanner", "scan", "scan_async"]
