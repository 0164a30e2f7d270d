"""Command-line interface for repository security scans."""

from __future__ import annotations

import argparse
import logging
import pathlib
from typing import Iterable, List

from devsecguard.config import load_config, token_from_environment
from devsecguard.core import orchestrator, reporter
from devsecguard.detectors.result_schema import Finding, ScanStatus, Severity

SEVERITY_LEVELS = [level.value for level in Severity]
FINDING_TYPES = ["secret", "vulnerability", "code_smell"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan a GitHub repository for exposed secrets and injection patterns")
    parser.add_argument("repository", help="Repository URL or owner/name")
    parser.add_argument("--token", help="GitHub access token (defaults to $GITHUB_TOKEN)")
    parser.add_argument("--config", type=pathlib.Path, default=pathlib.Path("devsecguard.yml"), help="Scanner configuration YAML")
    parser.add_argument("--out", type=pathlib.Path, default=pathlib.Path("reports/scan.json"), help="Path for the JSON report")
    parser.add_argument("--format", action="append", choices=["json", "md"], help="Report formats to emit (defaults to all)")
    parser.add_argument("--severity", choices=SEVERITY_LEVELS, help="Only report findings of this severity")
    parser.add_argument("--type", dest="finding_type", choices=FINDING_TYPES, help="Only report findings of this type")
    parser.add_argument("--fail-on", choices=SEVERITY_LEVELS, default="critical", help="Severity threshold that fails the command")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    token = args.token or token_from_environment()
    result = orchestrator.scan(args.repository, token, config)

    findings = reporter.filter_findings(result.findings, severity=args.severity, finding_type=args.finding_type)
    findings = reporter.sort_findings(findings)
    report_paths = reporter.write_reports(
        result,
        findings,
        output_dir=args.out.parent,
        json_path=args.out,
        formats=args.format,
    )

    print(
        "Generated report at "
        f"JSON={report_paths.json_path or 'skipped'} "
        f"MD={report_paths.markdown_path or 'skipped'}"
    )
    if result.status is ScanStatus.FAILED:
        print(f"Scan failed: {result.error}")
        return 1
    if not _passes_threshold(findings, args.fail_on):
        print(f"Failing due to findings at or above {args.fail_on}")
        return 1
    return 0


def _passes_threshold(findings: Iterable[Finding], threshold: str) -> bool:
    threshold_rank = Severity(threshold.lower()).rank
    return all(finding.severity.rank < threshold_rank for finding in findings)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
