# SPDX-License-Identifier: Apache-2.0
"""Line scanner: applies the detector table to repository files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Set

from devsecguard.core.classifier import categories, should_skip
from devsecguard.sources.base import ContentSource, TreeEntry

from .patterns import DetectorRule, Family, rules_for
from .result_schema import Confidence, Finding

_LOG = logging.getLogger(__name__)

MAX_FILE_CHARS = 2 * 1024 * 1024
"""Files larger than this (in characters) are not scanned (2 MiB)."""

CONTEXT_RADIUS = 3
LINE_PREVIEW_LIMIT = 160


@dataclass(slots=True)
class LineContext:
    """Container holding a single line's text and number."""

    number: int
    text: str


@dataclass(frozen=True, slots=True)
class RuleMatch:
    """A rule that fired on a line, with its resolved confidence."""

    rule: DetectorRule
    confidence: Confidence


def scan_tree(source: ContentSource, owner: str, repo: str, path: str = "") -> List[Finding]:
    """Walk the repository tree and scan every eligible file."""

    findings: List[Finding] = []
    for entry in iterate_files(source, owner, repo, path):
        if should_skip(entry.name):
            continue
        if not categories(entry.path):
            _LOG.debug("No file category for %s; skipping pattern scan", entry.path)
            continue
        text = source.get_file_content(owner, repo, entry.path)
        findings.extend(scan_content(text, entry.path))
    return findings


def iterate_files(source: ContentSource, owner: str, repo: str, path: str = "") -> Iterator[TreeEntry]:
    """Yield file entries below ``path``, descending into directories."""

    for entry in source.list_tree(owner, repo, path):
        if entry.is_dir:
            yield from iterate_files(source, owner, repo, entry.path)
        elif entry.is_file:
            yield entry


def scan_content(content: str, path: str) -> List[Finding]:
    """Scan decoded file content with the rules applicable to ``path``."""

    rules = rules_for(categories(path))
    if not rules:
        return []
    if len(content) > MAX_FILE_CHARS or "\x00" in content:
        _LOG.debug("Skipping %s: too large or binary", path)
        return []
    lines = [LineContext(number=i + 1, text=line.rstrip("\r")) for i, line in enumerate(content.split("\n"))]
    return scan_lines(path, lines, rules)


def scan_lines(path: str, lines: Sequence[LineContext], rules: Sequence[DetectorRule]) -> List[Finding]:
    """Scan a set of line contexts and emit one finding per rule match."""

    findings: List[Finding] = []
    for index, line in enumerate(lines):
        for match in detect_line(line.text, rules):
            findings.append(
                Finding(
                    type=match.rule.finding_type,
                    severity=match.rule.severity,
                    confidence=match.confidence,
                    description=match.rule.description,
                    file=path,
                    line=line.number,
                    code=context_window(lines, index),
                )
            )
    return findings


def detect_line(text: str, rules: Iterable[DetectorRule]) -> List[RuleMatch]:
    """Evaluate ``rules`` against one line.

    Only the first secret rule to match a line is reported.
    """

    matches: List[RuleMatch] = []
    seen: Set[Family] = set()
    for rule in rules:
        if rule.family is Family.SECRET and rule.family in seen:
            continue
        if not rule.matches(text):
            continue
        seen.add(rule.family)
        matches.append(RuleMatch(rule=rule, confidence=rule.resolve_confidence(rule.evaluate(text))))
    return matches


def context_window(lines: Sequence[LineContext], index: int, radius: int = CONTEXT_RADIUS) -> str:
    """Return the lines within ``radius`` of ``index``, clamped to the file bounds."""

    start = max(index - radius, 0)
    end = min(index + radius + 1, len(lines))
    return "\n".join(line.text for line in lines[start:end])


def redact_secret(secret: str, prefix: int = 4, suffix: int = 4) -> str:
    """Redact a secret to avoid exposing full values."""

    if not secret:
        return ""
    if len(secret) <= prefix + suffix:
        return "*" * len(secret)
    return f"{secret[:prefix]}{'*' * (len(secret) - prefix - suffix)}{secret[-suffix:]}"


def truncate_line(line: str, limit: int = LINE_PREVIEW_LIMIT) -> str:
    """Return a truncated preview of a line."""

    if len(line) <= limit:
        return line
    return f"{line[: limit - 3]}..."


def first_match(text: str, rules: Iterable[DetectorRule]) -> Optional[RuleMatch]:
    matches = detect_line(text, rules)
    return matches[0] if matches else None
