"""File-type inference for repository paths."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class FileCategory(str, Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    STYLE = "style"
    CONFIG = "config"
    TEST = "test"


# Insertion order is the resolution order for ``classify``.
CATEGORY_EXTENSIONS: Dict[FileCategory, Tuple[str, ...]] = {
    FileCategory.TEST: (".test.js", ".spec.js", ".test.ts", ".spec.ts"),
    FileCategory.FRONTEND: (".html", ".js", ".jsx", ".ts", ".tsx", ".vue"),
    FileCategory.BACKEND: (".js", ".ts", ".py", ".rb", ".php", ".java"),
    FileCategory.STYLE: (".css", ".scss", ".less", ".sass"),
    FileCategory.CONFIG: (".json", ".yml", ".yaml", ".env", ".config"),
}

SKIP_EXTENSIONS: Tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".ico",
    ".ttf", ".woff", ".woff2", ".eot",
    ".pdf", ".zip", ".tar", ".gz",
    ".mp3", ".mp4", ".avi", ".mov",
)


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1].lower()


def should_skip(filename: str) -> bool:
    """Return ``True`` for known binary files that are never fetched or scanned."""

    return _basename(filename).endswith(SKIP_EXTENSIONS)


def categories(path: str) -> FrozenSet[FileCategory]:
    """Return every category whose extension table matches *path*.

    Test files resolve to the test category only.
    """

    name = _basename(path)
    if name.endswith(CATEGORY_EXTENSIONS[FileCategory.TEST]):
        return frozenset({FileCategory.TEST})
    return frozenset(
        category
        for category, extensions in CATEGORY_EXTENSIONS.items()
        if name.endswith(extensions)
    )


def classify(path: str) -> Optional[FileCategory]:
    """Map *path* to its primary category, or ``None`` when nothing matches."""

    name = _basename(path)
    for category, extensions in CATEGORY_EXTENSIONS.items():
        if name.endswith(extensions):
            return category
    return None
