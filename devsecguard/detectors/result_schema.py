# SPDX-License-Identifier: Apache-2.0
"""Result schema for scan findings and scan results."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class FindingType(str, Enum):
    """Kind of issue a finding reports."""

    SECRET = "secret"
    VULNERABILITY = "vulnerability"
    CODE_SMELL = "code_smell"


class Severity(str, Enum):
    """Enumeration of supported finding severities, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


class Confidence(str, Enum):
    """Certainty that a match is a true positive."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True, slots=True)
class Category:
    """Derived boolean tags partitioning a finding by type, severity and location."""

    by_type: Dict[str, bool]
    by_severity: Dict[str, bool]
    by_location: Dict[str, bool]

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        """Serialize the category flags for JSON output."""

        return {
            "byType": dict(self.by_type),
            "bySeverity": dict(self.by_severity),
            "byLocation": dict(self.by_location),
        }


@dataclass(frozen=True, slots=True)
class Finding:
    """A single detected issue.

    ``severity_score`` and ``category`` stay ``None`` until the post-processing
    stage derives them from the merged finding set.
    """

    type: FindingType
    severity: Severity
    confidence: Confidence
    description: str
    file: str
    line: int
    code: Optional[str] = None
    severity_score: Optional[int] = None
    # Excluded from the hash: Category holds dicts.
    category: Optional[Category] = field(default=None, hash=False)

    @property
    def is_enriched(self) -> bool:
        return self.severity_score is not None and self.category is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the finding to a dictionary."""

        payload: Dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
            "confidence": self.confidence.value,
            "description": self.description,
            "file": self.file,
            "line": self.line,
        }
        if self.code is not None:
            payload["code"] = self.code
        if self.severity_score is not None:
            payload["severityScore"] = self.severity_score
        if self.category is not None:
            payload["category"] = self.category.to_dict()
        return payload


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of one scan invocation."""

    repository_url: str
    status: ScanStatus
    findings: Tuple[Finding, ...] = ()
    error: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.UTC))

    @classmethod
    def completed(cls, repository_url: str, findings: Tuple[Finding, ...]) -> "ScanResult":
        return cls(repository_url=repository_url, status=ScanStatus.COMPLETED, findings=tuple(findings))

    @classmethod
    def failed(cls, repository_url: str, error: str) -> "ScanResult":
        return cls(repository_url=repository_url, status=ScanStatus.FAILED, findings=(), error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the scan result to a dictionary."""

        payload: Dict[str, Any] = {
            "id": self.id,
            "repositoryUrl": self.repository_url,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "findings": [finding.to_dict() for finding in self.findings],
        }
        if self.status is ScanStatus.FAILED:
            payload["error"] = self.error or "Unknown error occurred"
        return payload
