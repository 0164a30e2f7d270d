"""Report rendering, summary statistics, filtering and sorting."""

from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from devsecguard.core.prioritizer import prioritise
from devsecguard.detectors.result_schema import Finding, FindingType, ScanResult, Severity

SEVERITY_ORDER = ["critical", "high", "medium", "low"]


@dataclass
class ReportPaths:
    json_path: pathlib.Path | None
    markdown_path: pathlib.Path | None


def filter_findings(
    findings: Iterable[Finding],
    severity: Optional[str] = None,
    finding_type: Optional[str] = None,
) -> List[Finding]:
    """Keep findings matching the given severity and type (``None`` matches all)."""

    wanted_severity = Severity(severity.lower()) if severity else None
    wanted_type = FindingType(finding_type.lower()) if finding_type else None
    return [
        finding
        for finding in findings
        if (wanted_severity is None or finding.severity is wanted_severity)
        and (wanted_type is None or finding.type is wanted_type)
    ]


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    return prioritise(findings)


def build_summary(result: ScanResult, findings: Optional[Sequence[Finding]] = None, top_n: int = 10) -> Dict[str, Any]:
    items = list(result.findings if findings is None else findings)
    by_severity = {level: 0 for level in SEVERITY_ORDER}
    by_type = {kind.value: 0 for kind in FindingType}
    file_counter: Dict[str, Dict[str, Any]] = {}
    for item in items:
        by_severity[item.severity.value] += 1
        by_type[item.type.value] += 1
        entry = file_counter.setdefault(item.file, {"count": 0, "score": 0})
        entry["count"] += 1
        entry["score"] = max(entry["score"], item.severity_score or 0)
    summary = {
        "id": result.id,
        "repositoryUrl": result.repository_url,
        "timestamp": result.timestamp.isoformat(),
        "status": result.status.value,
        "total": len(items),
        "byType": by_type,
        "top_files": _top_entries(file_counter, top_n),
    }
    if result.error:
        summary["error"] = result.error
    summary.update(by_severity)
    return summary


def write_reports(
    result: ScanResult,
    findings: Sequence[Finding],
    output_dir: pathlib.Path,
    json_path: pathlib.Path | None = None,
    formats: Sequence[str] | None = None,
) -> ReportPaths:
    output_dir.mkdir(parents=True, exist_ok=True)
    formats = [fmt.lower() for fmt in (formats or ["json", "md"])]
    summary = build_summary(result, findings)

    resolved_json = json_path or (output_dir / "scan.json")
    resolved_markdown = output_dir / "scan.md" if "md" in formats else None

    if "json" in formats:
        payload = result.to_dict()
        payload["findings"] = [finding.to_dict() for finding in findings]
        payload["summary"] = summary
        resolved_json.parent.mkdir(parents=True, exist_ok=True)
        resolved_json.write_text(json.dumps(payload, indent=2))
    else:
        resolved_json = None

    if resolved_markdown:
        resolved_markdown.write_text(render_markdown(summary, findings))

    return ReportPaths(json_path=resolved_json, markdown_path=resolved_markdown)


def render_markdown(summary: Dict[str, Any], items: Sequence[Finding]) -> str:
    lines: List[str] = [f"# Scan of {summary['repositoryUrl']}", ""]
    lines.append(f"Scanned: {summary['timestamp']}")
    lines.append(f"Status: {summary['status']}")
    if summary.get("error"):
        lines.append(f"Error: {summary['error']}")
    lines.append("")
    lines.append("## Counts")
    for level in SEVERITY_ORDER:
        lines.append(f"- {level.title()}: {summary.get(level, 0)}")
    for kind, count in summary["byType"].items():
        lines.append(f"- {kind.replace('_', ' ').title()}: {count}")
    lines.append(f"- Total: {summary.get('total', 0)}")
    lines.append("")
    if summary.get("top_files"):
        lines.append("## Top Files")
        for entry in summary["top_files"]:
            lines.append(f"- {entry['name']} ({entry['count']} findings, max score {entry['score']})")
        lines.append("")
    if items:
        lines.append("## Findings")
        for item in items:
            lines.append(
                f"- {item.severity.value} | {item.type.value} | {item.file}:{item.line} | "
                f"{item.description} | confidence={item.confidence.value} | score={item.severity_score}"
            )
    return "\n".join(lines)


def _top_entries(counter: Dict[str, Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    sorted_items = sorted(
        counter.items(),
        key=lambda kv: (kv[1]["score"], kv[1]["count"]),
        reverse=True,
    )
    return [
        {"name": name, "count": payload["count"], "score": payload["score"]}
        for name, payload in sorted_items[:limit]
    ]
