"""Repository content source contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable


class ContentSourceError(RuntimeError):
    """Raised when repository content cannot be retrieved."""


class NotFoundError(ContentSourceError):
    """The repository or path does not exist (or is not visible)."""


class RateLimitedError(ContentSourceError):
    """The hosting provider refused the request because of rate limiting."""


class AuthenticationError(ContentSourceError):
    """The supplied credentials were rejected."""


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single entry in a directory listing."""

    name: str
    path: str
    type: str  # "file" | "dir" | "symlink" | "submodule"

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@runtime_checkable
class ContentSource(Protocol):
    def list_tree(self, owner: str, repo: str, path: str = "") -> List[TreeEntry]:
        ...

    def get_file_content(self, owner: str, repo: str, path: str) -> str:
        ...
