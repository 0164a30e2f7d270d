"""GitHub-backed content source built on PyGithub."""

from __future__ import annotations

import base64
import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional

from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)

from .base import AuthenticationError, ContentSourceError, NotFoundError, RateLimitedError, TreeEntry

_LOG = logging.getLogger(__name__)


class GitHubContentSource:
    """Reads repository trees and file bodies through the GitHub contents API."""

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None, client: Any = None) -> None:
        if client is None:
            auth = Auth.Token(token) if token else None
            client = Github(base_url=base_url, auth=auth) if base_url else Github(auth=auth)
        self._client = client
        self._repos: Dict[str, Any] = {}

    def list_tree(self, owner: str, repo: str, path: str = "") -> List[TreeEntry]:
        with _translate_errors(f"{owner}/{repo}:{path or '/'}"):
            contents = self._repo(owner, repo).get_contents(path)
        if not isinstance(contents, list):
            contents = [contents]
        return [TreeEntry(name=item.name, path=item.path, type=item.type) for item in contents]

    def get_file_content(self, owner: str, repo: str, path: str) -> str:
        with _translate_errors(f"{owner}/{repo}:{path}"):
            handle = self._repo(owner, repo)
            content_file = handle.get_contents(path)
            if isinstance(content_file, list):
                raise ContentSourceError(f"{path} is a directory, not a file")
            data = content_file.decoded_content if content_file.content else None
            if data is None and content_file.size:
                # Files over the contents API inline limit come back without a body.
                blob = handle.get_git_blob(content_file.sha)
                data = base64.b64decode(blob.content)
        return (data or b"").decode("utf-8", errors="replace")

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def _repo(self, owner: str, repo: str) -> Any:
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            with _translate_errors(full_name):
                self._repos[full_name] = self._client.get_repo(full_name)
        return self._repos[full_name]


@contextlib.contextmanager
def _translate_errors(subject: str) -> Iterator[None]:
    try:
        yield
    except RateLimitExceededException as exc:
        raise RateLimitedError(f"GitHub rate limit exceeded while reading {subject}") from exc
    except BadCredentialsException as exc:
        raise AuthenticationError(f"GitHub rejected the supplied credentials ({subject})") from exc
    except UnknownObjectException as exc:
        raise NotFoundError(f"Not found: {subject}") from exc
    except GithubException as exc:
        _LOG.debug("GitHub API error for %s: %s", subject, exc)
        raise ContentSourceError(f"GitHub API error ({exc.status}) for {subject}: {_message(exc)}") from exc


def _message(exc: GithubException) -> str:
    data = exc.data
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return str(exc)
