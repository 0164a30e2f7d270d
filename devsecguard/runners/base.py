"""Shared plumbing for out-of-process detectors."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from devsecguard.detectors.result_schema import Finding

_LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class ToolError(RuntimeError):
    """An external tool could not be run or reported failure."""


@dataclass(frozen=True, slots=True)
class ScanTarget:
    """Repository under scan, as seen by the external detectors."""

    owner: str
    repo: str
    url: str
    checkout: Optional[Path] = None


async def run_tool(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    ok_exit_codes: Tuple[int, ...] = (0,),
    env: Optional[Mapping[str, str]] = None,
) -> str:
    """Run ``cmd`` and return its stdout; raise :class:`ToolError` on failure.

    Cancelling the awaiting task kills the child process.
    """

    if not cmd:
        raise ToolError("empty command")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ToolError(f"{cmd[0]} is not installed") from exc
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise
    if proc.returncode not in ok_exit_codes:
        message = stderr.decode("utf-8", errors="ignore").strip()[:200]
        raise ToolError(f"{cmd[0]} exited with status {proc.returncode}: {message}")
    return stdout.decode("utf-8", errors="replace")


def expand_command(template: Sequence[str], **values: Any) -> List[str]:
    """Substitute ``{name}`` placeholders in each argument of a command template."""

    return [part.format(**values) for part in template]


class ExternalAdapter(ABC):
    """Best-effort detector run outside the line scanner.

    ``collect`` is the failure boundary: timeouts, missing tools, bad exit
    codes and unparseable reports all yield an empty list.
    """

    name: str = "external"
    requires_checkout: bool = True

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    async def collect(self, target: ScanTarget) -> List[Finding]:
        if self.requires_checkout and target.checkout is None:
            _LOG.debug("%s skipped: no checkout of %s/%s", self.name, target.owner, target.repo)
            return []
        try:
            findings = await asyncio.wait_for(self.detect(target), timeout=self.timeout)
        except TimeoutError:
            _LOG.warning("%s timed out after %.0fs", self.name, self.timeout)
            return []
        except Exception as exc:
            _LOG.warning("%s failed: %s", self.name, exc)
            return []
        _LOG.info("%s reported %d finding(s)", self.name, len(findings))
        return list(findings)

    @abstractmethod
    async def detect(self, target: ScanTarget) -> List[Finding]:
        """Run the detector and map its report to findings."""
        ...


def line_number(value: Any) -> int:
    """Coerce a reported line number to a 1-based int."""

    try:
        number = int(value)
    except (TypeError, ValueError):
        return 1
    return number if number >= 1 else 1
