"""Ignore rule handling for suppressing accepted findings."""

from __future__ import annotations

import datetime as dt
import fnmatch
import pathlib
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import yaml

from devsecguard.detectors.result_schema import Finding


@dataclass
class IgnoreRule:
    paths: Sequence[str]
    descriptions: Sequence[str]
    types: Sequence[str]
    until: Optional[dt.date]
    reason: Optional[str]

    def matches(self, finding: Finding, reference_date: dt.date) -> bool:
        if self.until and reference_date > self.until:
            return False
        if not (self.paths or self.descriptions or self.types):
            return False
        if self.types and finding.type.value not in self.types:
            return False
        if self.paths and not any(fnmatch.fnmatchcase(finding.file, pattern) for pattern in self.paths):
            return False
        if self.descriptions and not any(text in finding.description for text in self.descriptions):
            return False
        return True


def load_rules(path: pathlib.Path) -> Sequence[IgnoreRule]:
    if not path.exists():
        return []
    data = yaml.safe_load(path.read_text()) or {}
    entries = data.get("rules") or []
    rules: List[IgnoreRule] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        until = _parse_date(entry.get("until") or entry.get("expires"))
        rules.append(
            IgnoreRule(
                paths=_ensure_sequence(entry.get("paths") or entry.get("path")),
                descriptions=_ensure_sequence(entry.get("descriptions") or entry.get("description")),
                types=_ensure_sequence(entry.get("types") or entry.get("type")),
                until=until,
                reason=entry.get("reason"),
            )
        )
    return rules


def filter_findings(
    findings: Iterable[Finding],
    rules: Sequence[IgnoreRule],
    reference_date: Optional[dt.date] = None,
) -> List[Finding]:
    today = reference_date or dt.date.today()
    if not rules:
        return list(findings)
    return [finding for finding in findings if not any(rule.matches(finding, today) for rule in rules)]


def _parse_date(value: object) -> Optional[dt.date]:
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value:
        try:
            return dt.date.fromisoformat(value)
        except ValueError:
            return None
    return None


def _ensure_sequence(value: object) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value]
    return [str(value)]
