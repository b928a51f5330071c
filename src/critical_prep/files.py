from __future__ import annotations

import glob
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterable

from .urls import is_remote, path_join

logger = logging.getLogger(__name__)

_GLOB_MAGIC = re.compile(r"[*?[]")


def find_up(name: str, cwd: str) -> str | None:
    """Return the nearest ``<ancestor>/<name>`` directory, starting at `cwd`."""

    directory = os.path.abspath(cwd)
    while True:
        candidate = os.path.join(directory, name)
        if os.path.isdir(candidate):
            return candidate
        parent = os.path.dirname(directory)
        if parent == directory:
            return None
        directory = parent


def expand_globs(patterns: str | Iterable[str], base: str | None = None) -> list[str]:
    """Expand glob patterns; literal entries pass through untouched.

    Glob patterns are evaluated under a local `base` first and then as given.
    """

    if isinstance(patterns, str):
        patterns = [patterns]

    files: dict[str, None] = {}
    for pattern in patterns:
        if is_remote(pattern) or not _GLOB_MAGIC.search(pattern):
            files.setdefault(pattern, None)
            continue

        candidates = [pattern]
        if base and not is_remote(base):
            candidates.insert(0, path_join(base, pattern))
        for candidate in candidates:
            for match in sorted(glob.glob(candidate, recursive=True)):
                files.setdefault(match, None)

    return list(files)


def output_file(path: Path, data: bytes | str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        path.write_text(data, encoding="utf-8", newline="\n")
    else:
        path.write_bytes(data)


def remove_quietly(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        logger.debug("%s was already deleted", path)
