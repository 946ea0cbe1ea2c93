"""File helpers for question banks, table files and the history log."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterator, List, Sequence

__all__ = [
    "iter_json_files",
    "read_json_file",
    "read_text_file",
    "write_json_atomic",
]


def iter_json_files(
    paths: Sequence[Path],
    *,
    level_limit: int = 1,
) -> Iterator[Path]:
    """Yield ``.json`` files from files or directories in input order.

    Directory entries are sorted by lowercase name. ``level_limit == 1``
    only looks at direct children; ``0`` walks the whole tree. Missing
    directories are skipped because bank folders are optional.
    """
    if level_limit < 0:
        raise ValueError("level_limit must be >= 0")

    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if _is_json(path):
                yield path
            continue
        if not path.is_dir():
            continue
        for candidate in _sorted_directory_files(path):
            if level_limit and not _within_level_limit(
                candidate, path, level_limit
            ):
                continue
            if _is_json(candidate):
                yield candidate


def _sorted_directory_files(root: Path) -> List[Path]:
    return sorted(
        (child for child in root.rglob("*") if child.is_file()),
        key=lambda p: p.name.lower(),
    )


def _within_level_limit(path: Path, root: Path, level_limit: int) -> bool:
    try:
        rel = path.relative_to(root)
    except ValueError:
        return False
    return len(rel.parts) <= level_limit


def _is_json(path: Path) -> bool:
    return path.suffix.lower() == ".json"


def read_text_file(path: Path) -> str:
    """Read a text file as UTF-8, replacing undecodable bytes."""
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


def read_json_file(path: Path) -> Any:
    """Decode the JSON document stored at ``path``."""
    return json.loads(read_text_file(path))


def write_json_atomic(path: Path, payload: Any) -> Path:
    """Serialize ``payload`` next to ``path`` and atomically swap it in."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
            fh.write("\n")
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target
