"""Post-processing stages: raw -> enriched -> filtered."""

from __future__ import annotations

import dataclasses
import re
from typing import Iterable, List, Optional, Sequence

from devsecguard.core import ignore_rules
from devsecguard.core.prioritizer import categorize, severity_score
from devsecguard.detectors.result_schema import Confidence, Finding, Severity

TEST_PATH = re.compile(
    r"(?:^|/)(?:tests?|__tests__|specs?)/"
    r"|\.(?:test|spec)\.[^/]+$"
    r"|(?:^|/)test_[^/]+$"
    r"|_(?:test|spec)\.[^/]+$"
)
MOCK_PATH = re.compile(
    r"(?i)(?:^|/)[^/]*(?:mock|fake|dummy)[^/]*$"
    r"|(?:^|/)(?:__)?(?:mocks?|fakes?|fixtures?|stubs?)(?:__)?/"
)
EXAMPLE_MARKER = re.compile(r"(?i)example|demo|sample")


def enrich(findings: Iterable[Finding]) -> List[Finding]:
    """Attach ``severity_score`` and ``category`` to every finding in one step."""

    return [
        dataclasses.replace(finding, severity_score=severity_score(finding), category=categorize(finding))
        for finding in findings
    ]


def is_false_positive(finding: Finding) -> bool:
    if finding.confidence is Confidence.LOW and finding.severity is not Severity.CRITICAL:
        return True
    path = finding.file.replace("\\", "/")
    if TEST_PATH.search(path):
        return True
    if MOCK_PATH.search(path):
        return True
    if EXAMPLE_MARKER.search(path) or EXAMPLE_MARKER.search(finding.description):
        return True
    return False


def filter_false_positives(findings: Iterable[Finding]) -> List[Finding]:
    enriched = list(findings)
    if any(not finding.is_enriched for finding in enriched):
        raise ValueError("findings must be enriched before filtering")
    return [finding for finding in enriched if not is_false_positive(finding)]


def process(
    findings: Iterable[Finding],
    rules: Optional[Sequence[ignore_rules.IgnoreRule]] = None,
) -> List[Finding]:
    """Run the full pipeline over the merged finding set, preserving order."""

    kept = filter_false_positives(enrich(findings))
    if rules:
        kept = ignore_rules.filter_findings(kept, rules)
    return kept
