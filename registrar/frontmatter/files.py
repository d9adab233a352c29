"""File system adapter: document discovery and reading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def read_file(path: str | Path, encoding: str = "utf-8") -> str:
    return Path(path).read_text(encoding=encoding)


def list_files(patterns: str | Iterable[str], root: str | Path = ".") -> list[Path]:
    """Files under *root* matching any glob pattern, sorted and de-duplicated.

    Patterns are relative to *root* (``**/*.md``); an absolute pattern or a
    plain file path is also accepted.
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    root = Path(root)

    found: set[Path] = set()
    for pattern in patterns:
        candidate = Path(pattern)
        if candidate.is_absolute():
            base, rel = Path(candidate.anchor), str(candidate.relative_to(candidate.anchor))
        else:
            base, rel = root, pattern
        if not any(ch in rel for ch in "*?["):
            path = base / rel
            if path.is_file():
                found.add(path)
            continue
        matches = [p for p in base.glob(rel) if p.is_file()]
        logger.debug("pattern %s matched %d files under %s", pattern, len(matches), base)
        found.update(matches)
    return sorted(found)
