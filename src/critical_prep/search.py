"""Candidate search paths and reference resolution.

Nobody tells us where the document root is, so for a reference that does not
exist verbatim we guess: configured base and rebase endpoints first, then
locations derived from the document, then filesystem ancestors, and the
process working directory last. Guessing wide is fine because
`resolve_reference` stops at the first candidate that exists.
"""

from __future__ import annotations

import logging
import os
import posixpath
from typing import Iterable, Sequence

from .assets import Asset, check_exists
from .config import LoadOptions
from .errors import AssetNotFoundError
from .files import find_up
from .urls import is_relative, is_remote, join_path, path_join, relative_path, url_resolve

logger = logging.getLogger(__name__)


def _unique(items: Iterable[str | None | bool]) -> list[str]:
    return [str(item) for item in dict.fromkeys(items) if item]


def _hops_and_first_segment(ref: str) -> tuple[int, str]:
    parts = os.path.normpath(ref).split(os.sep)
    hops = sum(1 for part in parts if part == "..")
    first = next((part for part in parts if part and part != ".."), "")
    return hops, first


def build_search_paths(
    document: Asset,
    ref: str | Asset,
    options: LoadOptions | None = None,
    strict: bool = True,
) -> list[str]:
    """Return the ordered, de-duplicated directories/URLs that may hold `ref`.

    This is comparatively expensive (existence checks, ancestor walks) and is
    recomputed on every call; use it only when `ref` does not exist as-is.
    """

    options = options or LoadOptions()
    if isinstance(ref, Asset):
        return []

    base = options.base or ""
    from_, to = options.rebase_endpoints()
    asset_paths = list(options.asset_paths or ())
    docurl = document.url or ""
    url_obj = document.url_obj
    url_path = url_obj.pathname if url_obj is not None else ""
    url_dir = posixpath.dirname(url_path) if url_path else ""
    docpath = document.history[0] if document.history else ""
    cwd = os.getcwd()

    hops, first = _hops_and_first_segment(ref)
    mapped_asset_paths = [join_path(base, a) for a in asset_paths] if base else []

    paths = _unique(
        [
            base,
            base and is_relative(base) and path_join(cwd, base),
            docurl,
            url_path and url_resolve(url_obj.href, url_dir),
            url_path
            and not url_dir.endswith("/")
            and url_resolve(url_obj.href, f"{url_dir}/"),
            docurl and url_resolve(docurl, ref),
            docpath and os.path.dirname(docpath),
            *asset_paths,
            *mapped_asset_paths,
            to,
            from_,
            base and docpath and path_join(base, os.path.dirname(docpath)),
            base and to and path_join(base, os.path.dirname(to)),
            base and from_ and path_join(base, os.path.dirname(from_)),
            # Temp-tree layouts nest the document one `tmpdir` per `../` hop.
            base
            and is_relative(ref)
            and hops
            and path_join(base, *(["tmpdir"] * hops), ref),
            cwd,
        ]
    )

    filtered = [
        p for p in paths if not strict or is_remote(p) or check_exists(p, options)
    ]

    found = list(filtered)
    for candidate in filtered:
        if is_remote(candidate) or not first:
            continue

        up = find_up(first, candidate)
        if not up:
            continue

        up_dir = os.path.dirname(up)
        found.append(up_dir)
        if hops:
            # Replay the reference's hops below the discovered ancestor.
            additional = relative_path(up_dir, candidate).split(os.sep)[:hops]
            found.append(path_join(up_dir, *additional))

    result = _unique(found)
    logger.debug('Search file "%s" in: %s', ref, result)
    return result


def resolve_reference(
    ref: str | Asset,
    search_paths: Sequence[str] = (),
    options: LoadOptions | None = None,
) -> str | Asset:
    """Return `ref` itself or the first ``join_path(candidate, ref)`` that exists."""

    options = options or LoadOptions()
    if check_exists(ref, options):
        return ref

    if isinstance(ref, Asset):
        raise AssetNotFoundError(ref, search_paths)

    for candidate in search_paths:
        check_path = join_path(candidate, ref)
        if check_exists(check_path, options):
            return check_path

    raise AssetNotFoundError(ref, search_paths)
