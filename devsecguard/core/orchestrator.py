"""Scan orchestration: traversal, external detectors, post-processing."""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
import re
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Coroutine, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urlparse

from devsecguard.config import ScannerConfig, load_config
from devsecguard.core import ignore_rules, postprocess
from devsecguard.detectors import engine, git_io
from devsecguard.detectors.result_schema import Finding, ScanResult
from devsecguard.runners.audit import DependencyAuditAdapter
from devsecguard.runners.base import ExternalAdapter, ScanTarget
from devsecguard.runners.history import HistoryScanAdapter
from devsecguard.runners.secrets import SecretScanAdapter
from devsecguard.sources.base import ContentSource
from devsecguard.sources.github import GitHubContentSource

_LOG = logging.getLogger(__name__)

T = TypeVar("T")

_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")
_SSH_REMOTE = re.compile(r"^git@(?P<host>[^:]+):(?P<path>.+)$")
GITHUB_HOSTS = frozenset({git_io.GITHUB_HOST, "www." + git_io.GITHUB_HOST})


class ScanState(str, Enum):
    PENDING = "pending"
    TRAVERSING = "traversing"
    DETECTING = "detecting"
    POST_PROCESSING = "post_processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidRepositoryError(ValueError):
    """The repository identifier could not be decomposed into owner and name."""


def parse_repository(identifier: str) -> Tuple[str, str]:
    """Split a GitHub repository URL or ``owner/name`` shorthand into ``(owner, name)``.

    Browser URLs keep only their first two path segments, so
    ``https://github.com/o/r/tree/main`` resolves to ``("o", "r")``.
    """

    if not isinstance(identifier, str) or not identifier.strip():
        raise InvalidRepositoryError("Invalid repository URL")
    text = identifier.strip()
    ssh = _SSH_REMOTE.match(text)
    browsable = False
    if ssh:
        host, path = ssh.group("host"), ssh.group("path")
    elif "://" in text:
        parsed = urlparse(text)
        if parsed.scheme not in {"http", "https", "ssh", "git"} or not parsed.hostname:
            raise InvalidRepositoryError(f"Invalid repository URL: {identifier}")
        host, path = parsed.hostname, parsed.path
        browsable = parsed.scheme in {"http", "https"}
    else:
        host, path = git_io.GITHUB_HOST, text
    if host.lower() not in GITHUB_HOSTS:
        raise InvalidRepositoryError(f"Not a GitHub repository: {identifier}")
    parts = [part for part in path.strip("/").split("/") if part]
    if browsable:
        parts = parts[:2]
    if len(parts) != 2:
        raise InvalidRepositoryError(f"Invalid repository URL: {identifier}")
    owner, name = parts
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not (_NAME.match(owner) and _NAME.match(name)):
        raise InvalidRepositoryError(f"Invalid repository URL: {identifier}")
    return owner, name


def default_adapters(config: ScannerConfig) -> List[ExternalAdapter]:
    adapters: List[ExternalAdapter] = [
        SecretScanAdapter(command=config.secret_scan_command, timeout=config.adapter_timeout),
        DependencyAuditAdapter(
            command=config.audit_command,
            manifest=config.manifest_path,
            ok_exit_codes=config.audit_ok_exit_codes,
            timeout=config.adapter_timeout,
        ),
    ]
    if config.history:
        adapters.append(HistoryScanAdapter(max_commits=config.history_depth, timeout=config.adapter_timeout))
    return adapters


class Scanner:
    """Runs one scan per call; holds only read-only collaborators."""

    def __init__(
        self,
        source: ContentSource,
        adapters: Optional[Sequence[ExternalAdapter]] = None,
        config: Optional[ScannerConfig] = None,
        token: Optional[str] = None,
    ) -> None:
        self.source = source
        self.config = config or ScannerConfig()
        self.adapters = tuple(default_adapters(self.config) if adapters is None else adapters)
        self.token = token
        self.rules: Sequence[ignore_rules.IgnoreRule] = (
            ignore_rules.load_rules(self.config.ignore_file) if self.config.ignore_file else []
        )

    def scan(self, repository_url: str) -> ScanResult:
        return run_blocking(lambda: self.scan_async(repository_url))

    async def scan_async(self, repository_url: str) -> ScanResult:
        """Scan ``repository_url``; failures become a failed result, never an exception."""

        state = ScanState.PENDING
        try:
            owner, repo = parse_repository(repository_url)

            state = self._transition(state, ScanState.TRAVERSING, repository_url)
            findings: List[Finding] = await asyncio.to_thread(engine.scan_tree, self.source, owner, repo)

            state = self._transition(state, ScanState.DETECTING, repository_url)
            target = ScanTarget(owner=owner, repo=repo, url=repository_url)
            findings.extend(await self._run_adapters(target))

            state = self._transition(state, ScanState.POST_PROCESSING, repository_url)
            processed = postprocess.process(findings, self.rules)

            self._transition(state, ScanState.COMPLETED, repository_url)
            return ScanResult.completed(repository_url, tuple(processed))
        except Exception as exc:
            _LOG.warning("Scan of %s failed during %s: %s", repository_url, state.value, exc)
            self._transition(state, ScanState.FAILED, repository_url)
            return ScanResult.failed(repository_url, str(exc) or exc.__class__.__name__)

    async def _run_adapters(self, target: ScanTarget) -> List[Finding]:
        if not self.adapters:
            return []
        async with self._checkout(target) as workdir:
            scoped = replace(target, checkout=workdir)
            # Each adapter absorbs its own failures, so the join never raises.
            results = await asyncio.gather(*(adapter.collect(scoped) for adapter in self.adapters))
        merged: List[Finding] = []
        for partition in results:
            merged.extend(partition)
        return merged

    @contextlib.asynccontextmanager
    async def _checkout(self, target: ScanTarget) -> AsyncIterator[Optional[Path]]:
        if not self.config.clone or not any(adapter.requires_checkout for adapter in self.adapters):
            yield None
            return
        depth = self.config.history_depth if self.config.history else 1
        async with git_io.checkout(
            target.owner, target.repo, token=self.token, depth=depth, timeout=self.config.clone_timeout
        ) as workdir:
            yield workdir

    @staticmethod
    def _transition(current: ScanState, new: ScanState, repository_url: str) -> ScanState:
        _LOG.debug("%s: %s -> %s", repository_url, current.value, new.value)
        return new


async def scan_async(
    repository_url: str,
    credentials: Optional[str] = None,
    config: Optional[ScannerConfig] = None,
) -> ScanResult:
    try:
        config = config or load_config()
        source = GitHubContentSource(token=credentials)
    except Exception as exc:
        _LOG.warning("Could not set up scan of %s: %s", repository_url, exc)
        return ScanResult.failed(repository_url, str(exc) or exc.__class__.__name__)
    try:
        scanner = Scanner(source, config=config, token=credentials)
        return await scanner.scan_async(repository_url)
    except Exception as exc:
        _LOG.warning("Could not set up scan of %s: %s", repository_url, exc)
        return ScanResult.failed(repository_url, str(exc) or exc.__class__.__name__)
    finally:
        source.close()


def scan(
    repository_url: str,
    credentials: Optional[str] = None,
    config: Optional[ScannerConfig] = None,
) -> ScanResult:
    """Scan a GitHub repository and return its :class:`ScanResult`."""

    return run_blocking(lambda: scan_async(repository_url, credentials, config))


def run_blocking(factory: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """Run the coroutine built by ``factory`` to completion from synchronous code.

    When the caller already runs an event loop, the coroutine gets its own
    loop on a worker thread; ``factory`` is only called on that thread.
    """

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(factory())
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(lambda: asyncio.run(factory())).result()
