# SPDX-License-Identifier: Apache-2.0
"""Utilities for cloning repositories and reading their history."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional

from devsecguard.runners.base import ToolError, run_tool

from .engine import redact_secret

_LOG = logging.getLogger(__name__)

GITHUB_HOST = "github.com"


@dataclass(slots=True)
class DiffLine:
    """Represents a single added line in a diff hunk."""

    line_number: int
    content: str


@dataclass(slots=True)
class GitPatch:
    """Represents the added lines for a file within a diff."""

    path: Path
    added_lines: List[DiffLine]
    commit: Optional[str] = None


HUNK_HEADER = re.compile(
    r"@@ -(?P<old_start>\d+)(?:,\d+)? \+(?P<new_start>\d+)(?:,\d+)? @@"
)


def clone_url(owner: str, repo: str, token: Optional[str] = None, host: str = GITHUB_HOST) -> str:
    if token:
        return f"https://x-access-token:{token}@{host}/{owner}/{repo}.git"
    return f"https://{host}/{owner}/{repo}.git"


async def clone_repository(
    owner: str,
    repo: str,
    destination: Path,
    token: Optional[str] = None,
    depth: Optional[int] = None,
) -> Path:
    """Clone ``owner/repo`` into ``destination``; raise :class:`ToolError` on failure."""

    url = clone_url(owner, repo, token)
    cmd = ["git", "clone", "--quiet", "--single-branch", "--no-tags"]
    if depth:
        cmd += ["--depth", str(depth)]
    cmd += [url, str(destination)]
    _LOG.debug("Cloning %s", clone_url(owner, repo, redact_secret(token) if token else None))
    try:
        await run_tool(cmd)
    except ToolError as exc:
        # git echoes the remote URL on failure.
        message = str(exc).replace(token, redact_secret(token)) if token else str(exc)
        raise ToolError(message) from None
    return destination


@contextlib.asynccontextmanager
async def checkout(
    owner: str,
    repo: str,
    token: Optional[str] = None,
    depth: Optional[int] = None,
    timeout: Optional[float] = None,
) -> AsyncIterator[Optional[Path]]:
    """Yield a temporary clone of the repository, or ``None`` when cloning fails."""

    with tempfile.TemporaryDirectory(prefix="devsecguard-", ignore_cleanup_errors=True) as tmp:
        workdir: Optional[Path] = None
        try:
            workdir = await asyncio.wait_for(
                clone_repository(owner, repo, Path(tmp) / repo, token=token, depth=depth),
                timeout=timeout,
            )
        except TimeoutError:
            _LOG.warning("Clone of %s/%s timed out after %.0fs", owner, repo, timeout)
        except (ToolError, OSError) as exc:
            _LOG.warning("Could not clone %s/%s: %s", owner, repo, exc)
        yield workdir


async def get_history_diff(workdir: Path, max_commits: Optional[int] = None) -> str:
    """Return ``git log -p`` output with a ``commit <sha>`` line before each commit."""

    cmd = ["git", "log", "-p", "--no-color", "--unified=0", "--format=commit %H"]
    if max_commits:
        cmd.append(f"--max-count={max_commits}")
    return await run_tool(cmd, cwd=workdir)


def parse_unified_diff(diff_text: str) -> List[GitPatch]:
    """Parse unified diff (or ``git log -p``) text into structured patches."""

    patches: List[GitPatch] = []
    current_patch: Optional[GitPatch] = None
    current_commit: Optional[str] = None
    new_line_number: Optional[int] = None

    for raw_line in diff_text.splitlines():
        if raw_line.startswith("commit "):
            if current_patch and current_patch.added_lines:
                patches.append(current_patch)
            current_patch = None
            new_line_number = None
            current_commit = raw_line[len("commit "):].strip() or None
            continue

        if raw_line.startswith("diff --git "):
            if current_patch and current_patch.added_lines:
                patches.append(current_patch)
            current_patch = None
            new_line_number = None
            continue

        if raw_line.startswith("+++ "):
            target = raw_line[4:].strip()
            if target == "/dev/null":
                current_patch = None
                continue
            if target.startswith("b/"):
                target = target[2:]
            current_patch = GitPatch(path=Path(target), added_lines=[], commit=current_commit)
            new_line_number = None
            continue

        if current_patch is None:
            continue

        if raw_line.startswith("Binary files "):
            current_patch = None
            new_line_number = None
            continue

        if raw_line.startswith("@@"):
            match = HUNK_HEADER.match(raw_line)
            if not match:
                new_line_number = None
                continue
            new_line_number = int(match.group("new_start"))
            continue

        if new_line_number is None:
            continue

        if raw_line.startswith("+"):
            current_patch.added_lines.append(
                DiffLine(line_number=new_line_number, content=raw_line[1:])
            )
            new_line_number += 1
            continue

        if raw_line.startswith("-"):
            # Removed lines do not advance the new line number.
            continue

        # Context line.
        new_line_number += 1

    if current_patch and current_patch.added_lines:
        patches.append(current_patch)

    return patches
