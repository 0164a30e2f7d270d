"""Severity scoring and categorization for findings."""

from __future__ import annotations

from typing import Dict, Iterable, List

from devsecguard.core.classifier import CATEGORY_EXTENSIONS, FileCategory
from devsecguard.detectors.result_schema import Category, Finding, FindingType, Severity

SEVERITY_WEIGHT = {
    Severity.CRITICAL: 10,
    Severity.HIGH: 7,
    Severity.MEDIUM: 4,
    Severity.LOW: 1,
}

# Path substrings are matched case-sensitively.
SECURITY_PATH_TOKENS = ("auth", "security")
API_PATH_TOKENS = ("api", "endpoint")
SECURITY_BONUS = 2
API_BONUS = 1

SOURCE_EXTENSIONS = tuple(
    dict.fromkeys(
        CATEGORY_EXTENSIONS[FileCategory.FRONTEND] + CATEGORY_EXTENSIONS[FileCategory.BACKEND]
    )
)


def severity_score(finding: Finding) -> int:
    return SEVERITY_WEIGHT[finding.severity] + contextual_bonus(finding.file)


def contextual_bonus(path: str) -> int:
    bonus = 0
    if any(token in path for token in SECURITY_PATH_TOKENS):
        bonus += SECURITY_BONUS
    if any(token in path for token in API_PATH_TOKENS):
        bonus += API_BONUS
    return bonus


def categorize(finding: Finding) -> Category:
    return Category(
        by_type={kind.value: finding.type is kind for kind in FindingType},
        by_severity={level.value: finding.severity is level for level in Severity},
        by_location=location_flags(finding.file),
    )


def location_flags(path: str) -> Dict[str, bool]:
    """Independent location tags; a path may be config and test at once."""

    lowered = path.lower()
    return {
        "isSource": lowered.endswith(SOURCE_EXTENSIONS),
        "isConfig": "config" in path or lowered.endswith(".json"),
        "isTest": ".test." in path or ".spec." in path,
    }


def prioritise(findings: Iterable[Finding]) -> List[Finding]:
    """Return findings ordered by descending score; ties keep emission order."""

    return sorted(
        findings,
        key=lambda item: -(item.severity_score if item.severity_score is not None else severity_score(item)),
    )
