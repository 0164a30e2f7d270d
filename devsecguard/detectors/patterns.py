# SPDX-License-Identifier: Apache-2.0
"""Static detector table: secret and injection rules with contextual confidence."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Tuple

from devsecguard.core.classifier import FileCategory

from .result_schema import Confidence, FindingType, Severity


class Family(str, Enum):
    """Detector families; first-match-per-line applies to the secret family."""

    SECRET = "secret"
    SQL_INJECTION = "sql_injection"
    NOSQL_INJECTION = "nosql_injection"
    XSS = "xss"
    CODE_EVAL = "code_eval"


@dataclass(frozen=True, slots=True)
class ContextCheck:
    """A named predicate over the matched line.

    The check holds when the pattern's presence equals ``expect_match``.
    """

    name: str
    pattern: re.Pattern[str]
    expect_match: bool = False

    def holds(self, line: str) -> bool:
        return bool(self.pattern.search(line)) is self.expect_match


@dataclass(frozen=True, slots=True)
class DetectorRule:
    """Static regular-expression based rule."""

    name: str
    family: Family
    title: str
    regex: re.Pattern[str]
    finding_type: FindingType
    severity: Severity
    applies_to: frozenset
    checks: Tuple[ContextCheck, ...] = ()
    fallback: Confidence = Confidence.LOW

    def matches(self, line: str) -> bool:
        return self.regex.search(line) is not None

    def evaluate(self, line: str) -> Tuple[bool, ...]:
        return tuple(check.holds(line) for check in self.checks)

    def resolve_confidence(self, results: Sequence[bool]) -> Confidence:
        """High only when every context check holds, otherwise the rule's fallback."""

        if all(results):
            return Confidence.HIGH
        return self.fallback

    def applies(self, categories: Iterable[FileCategory]) -> bool:
        return not self.applies_to.isdisjoint(categories)

    @property
    def description(self) -> str:
        return f"{self.title} [{self.name}]"


def _absent(name: str, pattern: str) -> ContextCheck:
    return ContextCheck(name=name, pattern=re.compile(pattern))


def _present(name: str, pattern: str) -> ContextCheck:
    return ContextCheck(name=name, pattern=re.compile(pattern), expect_match=True)


SECRET_TARGETS = frozenset({FileCategory.CONFIG, FileCategory.BACKEND})
BACKEND = frozenset({FileCategory.BACKEND})
FRONTEND = frozenset({FileCategory.FRONTEND})
CODE = frozenset({FileCategory.FRONTEND, FileCategory.BACKEND})

NOT_PLACEHOLDER = _absent(
    "not_placeholder",
    r"(?i)example|sample|dummy|placeholder|changeme|change_me|your[_-]|x{4,}|\btest\b|<[a-z_-]+>",
)
NOT_ENV_REFERENCE = _absent(
    "not_env_reference",
    r"process\.env|os\.environ|getenv|ENV\[|\$\{\{\s*secrets\.",
)
SECRET_CHECKS = (NOT_PLACEHOLDER, NOT_ENV_REFERENCE)

QUERY_CONCATENATION = r"[\"'`]\s*\+|\+\s*[\"'`]|\$\{|[\"']\s*%\s*[\w(]|\.format\(|\bf[\"']"

RULES: Tuple[DetectorRule, ...] = (
    DetectorRule(
        name="private_key",
        family=Family.SECRET,
        title="Private key material exposed",
        regex=re.compile(r"-----BEGIN (?:RSA |DSA |EC |OPENSSH |PGP |ENCRYPTED )?PRIVATE KEY-----"),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=(NOT_PLACEHOLDER,),
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="aws_access_key",
        family=Family.SECRET,
        title="AWS access key ID exposed",
        regex=re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b"),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=SECRET_CHECKS,
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="github_token",
        family=Family.SECRET,
        title="GitHub access token exposed",
        regex=re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{36}|github_pat_[A-Za-z0-9_]{82})\b"),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=SECRET_CHECKS,
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="slack_token",
        family=Family.SECRET,
        title="Slack token exposed",
        regex=re.compile(r"\bxox[baprs]-[A-Za-z0-9-]{10,48}\b"),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=SECRET_CHECKS,
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="jwt",
        family=Family.SECRET,
        title="JSON Web Token exposed",
        regex=re.compile(r"\beyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\b"),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=SECRET_CHECKS,
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="api_key",
        family=Family.SECRET,
        title="Potential API key or secret found",
        regex=re.compile(
            r"(?i)(?:api[_-]?key|aws[_-]?key|secret[_-]?key|access[_-]?key|client[_-]?secret"
            r"|auth[_-]?token|access[_-]?token|token|secret|password|passwd)"
            r"[\"'\s]*[:=]\s*[\"'`]?[A-Za-z0-9+/]{32,}"
        ),
        finding_type=FindingType.SECRET,
        severity=Severity.CRITICAL,
        applies_to=SECRET_TARGETS,
        checks=SECRET_CHECKS,
        fallback=Confidence.MEDIUM,
    ),
    DetectorRule(
        name="sql_injection",
        family=Family.SQL_INJECTION,
        title="Potential SQL injection vulnerability",
        regex=re.compile(
            r"(?i)\b(?:SELECT\s+.+?\s+FROM|INSERT\s+INTO|UPDATE\s+\S+\s+SET|DELETE\s+FROM"
            r"|DROP\s+TABLE|UNION\s+(?:ALL\s+)?SELECT)\b"
        ),
        finding_type=FindingType.VULNERABILITY,
        severity=Severity.HIGH,
        applies_to=BACKEND,
        checks=(
            _absent("no_parameter_marker", r"\?|\$\d+"),
            _absent("not_prepared", r"(?i)prepare"),
            _present("builds_query_dynamically", QUERY_CONCATENATION),
        ),
    ),
    DetectorRule(
        name="nosql_injection",
        family=Family.NOSQL_INJECTION,
        title="Potential NoSQL injection vulnerability",
        regex=re.compile(
            r"\.(?:find|findOne|findOneAndUpdate|findOneAndDelete|updateOne|updateMany|deleteOne"
            r"|deleteMany|aggregate|countDocuments)\s*\([^)]*\b(?:req|request)\.(?:body|query|params)"
            r"|\$where\b"
        ),
        finding_type=FindingType.VULNERABILITY,
        severity=Severity.HIGH,
        applies_to=BACKEND,
        checks=(
            _absent(
                "no_sanitization",
                r"(?i)sanitiz|escape|validator|ObjectId\(|parseInt\(|Number\(|String\(",
            ),
        ),
    ),
    DetectorRule(
        name="xss",
        family=Family.XSS,
        title="Potential XSS vulnerability",
        regex=re.compile(
            r"(?i)\.(?:innerHTML|outerHTML)\s*\+?=|document\.write(?:ln)?\s*\(|dangerouslySetInnerHTML"
            r"|\bv-html\s*=|insertAdjacentHTML\s*\(|<script\b[^>]*>[^<]+</script>|javascript:"
            r"|\bon(?:click|dblclick|load|error|focus|blur|change|submit|input|key(?:down|up|press)"
            r"|mouse(?:over|out|down|up|move))\s*=\s*[\"']"
        ),
        finding_type=FindingType.VULNERABILITY,
        severity=Severity.HIGH,
        applies_to=FRONTEND,
        checks=(
            _absent("no_sanitization", r"(?i)DOMPurify|sanitiz|escapeHtml|encodeURIComponent|textContent"),
            _absent("not_static_literal", r"(?:innerHTML|outerHTML)\s*=\s*([\"'`])[^\"'`$+]*\1\s*;?\s*$"),
        ),
    ),
    DetectorRule(
        name="dynamic_eval",
        family=Family.CODE_EVAL,
        title="Dynamic code evaluation",
        regex=re.compile(r"\beval\s*\(|\bnew\s+Function\s*\("),
        finding_type=FindingType.CODE_SMELL,
        severity=Severity.MEDIUM,
        applies_to=CODE,
        checks=(_absent("not_commented_out", r"^\s*(?://|#|\*|/\*)"),),
    ),
)

RULES_BY_NAME: Mapping[str, DetectorRule] = MappingProxyType({rule.name: rule for rule in RULES})

SECRET_RULES: Tuple[DetectorRule, ...] = tuple(rule for rule in RULES if rule.family is Family.SECRET)


def rules_for(categories: Iterable[FileCategory]) -> Tuple[DetectorRule, ...]:
    """Return the rules applicable to a file with the given categories."""

    resolved = frozenset(categories)
    if not resolved:
        return ()
    return tuple(rule for rule in RULES if rule.applies(resolved))
