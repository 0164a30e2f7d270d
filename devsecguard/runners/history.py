"""History-scan adapter: secret rules over added lines in commit history."""

from __future__ import annotations

from typing import Iterable, List, Optional

from devsecguard.detectors import git_io
from devsecguard.detectors.engine import first_match, truncate_line
from devsecguard.detectors.patterns import SECRET_RULES
from devsecguard.detectors.result_schema import Finding, FindingType, Severity

from .base import DEFAULT_TIMEOUT, ExternalAdapter, ScanTarget

HISTORY_LOCATION = "history"


class HistoryScanAdapter(ExternalAdapter):
    name = "history-scan"

    def __init__(self, max_commits: Optional[int] = 100, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        self.max_commits = max_commits

    async def detect(self, target: ScanTarget) -> List[Finding]:
        assert target.checkout is not None
        diff_text = await git_io.get_history_diff(target.checkout, max_commits=self.max_commits)
        return scan_history(git_io.parse_unified_diff(diff_text))


def scan_history(patches: Iterable[git_io.GitPatch]) -> List[Finding]:
    findings: List[Finding] = []
    for patch in patches:
        commit = (patch.commit or "unknown")[:8]
        for added in patch.added_lines:
            match = first_match(added.content, SECRET_RULES)
            if match is None:
                continue
            findings.append(
                Finding(
                    type=FindingType.SECRET,
                    severity=Severity.CRITICAL,
                    confidence=match.confidence,
                    description=(
                        f"{match.rule.description} in commit history "
                        f"({commit} {patch.path.as_posix()})"
                    ),
                    file=HISTORY_LOCATION,
                    line=added.line_number,
                    code=truncate_line(added.content.strip()),
                )
            )
    return findings
