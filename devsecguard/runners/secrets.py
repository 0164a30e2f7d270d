"""Secret-scan adapter for gitleaks-style JSON reports."""

from __future__ import annotations

import json
from pathlib import Path, PurePath
from typing import Any, Dict, List, Optional, Sequence

from devsecguard.detectors.result_schema import Confidence, Finding, FindingType, Severity

from .base import DEFAULT_TIMEOUT, ExternalAdapter, ScanTarget, expand_command, line_number, run_tool

DEFAULT_COMMAND = (
    "gitleaks",
    "detect",
    "--source",
    "{checkout}",
    "--no-git",
    "--report-format",
    "json",
    "--report-path",
    "-",
    "--exit-code",
    "0",
)


class SecretScanAdapter(ExternalAdapter):
    name = "secret-scan"

    def __init__(self, command: Sequence[str] = DEFAULT_COMMAND, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout=timeout)
        self.command = tuple(command)

    async def detect(self, target: ScanTarget) -> List[Finding]:
        assert target.checkout is not None
        cmd = expand_command(self.command, checkout=target.checkout, owner=target.owner, repo=target.repo)
        output = await run_tool(cmd, cwd=target.checkout)
        report = json.loads(output) if output.strip() else []
        return parse(report, root=target.checkout)


def parse(report: Any, root: Optional[Path] = None) -> List[Finding]:
    if report is None:
        return []
    if not isinstance(report, list):
        raise ValueError("secret-scan report must be a JSON array")
    findings: List[Finding] = []
    for hit in report:
        if not isinstance(hit, dict):
            continue
        path = hit.get("file") or hit.get("File")
        if not path:
            continue
        findings.append(
            Finding(
                type=FindingType.SECRET,
                severity=Severity.CRITICAL,
                confidence=Confidence.HIGH,
                description=f"{_description(hit)} [secret-scan]",
                file=_relative(str(path), root),
                line=line_number(hit.get("lineNumber", hit.get("StartLine"))),
            )
        )
    return findings


def _description(hit: Dict[str, Any]) -> str:
    for key in ("description", "Description", "RuleID", "rule"):
        if hit.get(key):
            return str(hit[key])
    return "Secret detected"


def _relative(path: str, root: Optional[Path]) -> str:
    if root is not None:
        try:
            return PurePath(path).relative_to(root).as_posix()
        except ValueError:
            pass
    return PurePath(path).as_posix()
