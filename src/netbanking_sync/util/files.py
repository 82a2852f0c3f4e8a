from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional


logger = logging.getLogger(__name__)


def cleanup_files(directory: Path, *, suffixes: Iterable[str]) -> int:
    """Delete files in `directory` with one of `suffixes` (creating the directory if needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    wanted = {s.lower() for s in suffixes}
    removed = 0
    for p in directory.iterdir():
        if p.is_file() and p.suffix.lower() in wanted:
            p.unlink()
            removed += 1
    if removed:
        logger.info("Removed %d old file(s) from %s", removed, directory)
    return removed


def latest_file(directory: Path, *, suffix: str) -> Optional[Path]:
    if not directory.exists():
        return None
    candidates = [p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == suffix.lower()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def delete_quietly(path: Path) -> bool:
    try:
        if path.exists():
            path.unlink()
            logger.info("Deleted file: %s", path.name)
            return True
    except Exception as e:
        logger.warning("Failed to delete file %s (%s)", path, e)
    return False
