import pytest

from devsecguard.core import postprocess
from devsecguard.detectors import engine
from devsecguard.detectors.result_schema import Confidence, Finding, FindingType, Severity


def _finding(
    path: str = "src/server.py",
    severity: Severity = Severity.HIGH,
    confidence: Confidence = Confidence.HIGH,
    kind: FindingType = FindingType.VULNERABILITY,
    description: str = "Potential SQL injection vulnerability [sql_injection]",
) -> Finding:
    return Finding(type=kind, severity=severity, confidence=confidence, description=description, file=path, line=3)


def test_enrich_sets_score_and_category_together_without_mutating():
    raw = _finding(path="src/auth/session.py")
    (enriched,) = postprocess.enrich([raw])
    assert raw.severity_score is None and raw.category is None
    assert enriched.severity_score == 9
    assert enriched.category is not None
    assert enriched.to_dict()["category"]["byType"]["vulnerability"] is True


def test_filter_requires_enriched_findings():
    with pytest.raises(ValueError):
        postprocess.filter_false_positives([_finding()])


@pytest.mark.parametrize(
    "finding",
    [
        _finding(confidence=Confidence.LOW),
        _finding(path="src/components/Button.test.ts", severity=Severity.CRITICAL, kind=FindingType.SECRET),
        _finding(path="web/app.spec.js"),
        _finding(path="tests/test_login.py"),
        _finding(path="src/__mocks__/client.js"),
        _finding(path="src/fakeGateway.ts"),
        _finding(path="fixtures/dummy_keys.py"),
        _finding(path="examples/server.py"),
        _finding(path="docs/demo/app.py"),
        _finding(description="Hardcoded sample credential [secret-scan]"),
    ],
)
def test_false_positives_are_removed(finding: Finding):
    assert postprocess.process([finding]) == []


def test_low_confidence_critical_and_medium_secrets_survive():
    findings = [
        _finding(severity=Severity.CRITICAL, confidence=Confidence.LOW, kind=FindingType.SECRET),
        _finding(severity=Severity.CRITICAL, confidence=Confidence.MEDIUM, kind=FindingType.SECRET),
        _finding(severity=Severity.MEDIUM, confidence=Confidence.MEDIUM, kind=FindingType.CODE_SMELL),
    ]
    kept = postprocess.process(findings)
    assert len(kept) == 3
    assert all(item.is_enriched for item in kept)


def test_parameterised_query_is_dropped_but_concatenated_query_kept():
    concatenated = engine.scan_content('q = "SELECT * FROM users WHERE id = " + uid', "app/db.py")
    placeholder = engine.scan_content('q = "SELECT * FROM users WHERE id = ?" + uid', "app/db.py")
    assert [f.confidence for f in postprocess.process(concatenated)] == [Confidence.HIGH]
    assert postprocess.process(placeholder) == []


def test_process_preserves_emission_order():
    findings = [_finding(path=f"src/mod{i}.py", severity=sev) for i, sev in enumerate(Severity)]
    kept = postprocess.process(findings)
    assert [item.file for item in kept] == [item.file for item in findings]


def test_enriched_findings_are_hashable():
    first, second = postprocess.enrich([_finding(), _finding()])
    assert first.is_enriched
    assert hash(first) == hash(second)
    assert len({first, second}) == 1
