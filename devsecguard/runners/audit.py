"""Dependency-audit adapter for npm audit JSON reports."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from devsecguard.detectors.result_schema import Confidence, Finding, FindingType, Severity

from .base import DEFAULT_TIMEOUT, ExternalAdapter, ScanTarget, expand_command, run_tool

DEFAULT_COMMAND = ("npm", "audit", "--json")
# npm audit exits 1 whenever advisories are found.
DEFAULT_OK_EXIT_CODES = (0, 1)
DEFAULT_MANIFEST = "package.json"


class DependencyAuditAdapter(ExternalAdapter):
    name = "dependency-audit"

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_COMMAND,
        manifest: str = DEFAULT_MANIFEST,
        ok_exit_codes: Tuple[int, ...] = DEFAULT_OK_EXIT_CODES,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(timeout=timeout)
        self.command = tuple(command)
        self.manifest = manifest
        self.ok_exit_codes = tuple(ok_exit_codes)

    async def detect(self, target: ScanTarget) -> List[Finding]:
        assert target.checkout is not None
        if not (target.checkout / self.manifest).is_file():
            return []
        cmd = expand_command(self.command, checkout=target.checkout, manifest=self.manifest)
        output = await run_tool(cmd, cwd=target.checkout, ok_exit_codes=self.ok_exit_codes)
        return parse(json.loads(output), manifest=self.manifest)


def parse(report: Any, manifest: str = DEFAULT_MANIFEST) -> List[Finding]:
    findings: List[Finding] = []
    for advisory in iter_advisories(report):
        title = advisory.get("title") or "Vulnerable dependency"
        module = advisory.get("module_name") or "unknown"
        version = advisory.get("version")
        package = f"{module}@{version}" if version else str(module)
        findings.append(
            Finding(
                type=FindingType.VULNERABILITY,
                severity=map_severity(advisory.get("level")),
                confidence=Confidence.HIGH,
                description=f"{title} in {package} [dependency-audit]",
                file=manifest,
                line=1,
            )
        )
    return findings


def map_severity(level: Any) -> Severity:
    if str(level or "").lower() == "critical":
        return Severity.CRITICAL
    return Severity.HIGH


def iter_advisories(report: Any) -> Iterator[Dict[str, Any]]:
    """Normalise the supported report shapes to ``{title, level, module_name, version}``."""

    if isinstance(report, list):
        yield from (entry for entry in report if isinstance(entry, dict))
        return
    if not isinstance(report, dict):
        raise ValueError("dependency-audit report must be a JSON array or object")

    advisories = report.get("advisories")
    if isinstance(advisories, dict):
        for advisory in advisories.values():
            if not isinstance(advisory, dict):
                continue
            yield {
                "title": advisory.get("title"),
                "level": advisory.get("severity"),
                "module_name": advisory.get("module_name"),
                "version": _first_version(advisory.get("findings")),
            }
        return

    vulnerabilities = report.get("vulnerabilities")
    if isinstance(vulnerabilities, dict):
        for name, entry in vulnerabilities.items():
            if not isinstance(entry, dict):
                continue
            sources = [via for via in entry.get("via") or [] if isinstance(via, dict)]
            if not sources:
                # Only transitively affected; the root advisory is reported on its own entry.
                continue
            yield {
                "title": sources[0].get("title"),
                "level": entry.get("severity"),
                "module_name": entry.get("name") or name,
                "version": entry.get("range"),
            }


def _first_version(entries: Any) -> Optional[str]:
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("version"):
            return str(entry["version"])
    return None
