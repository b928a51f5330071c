from __future__ import annotations

import logging
import os
from dataclasses import replace

from .assets import Asset, check_exists, materialize
from .config import LoadOptions
from .diagnostics import BASE_WARNING
from .errors import AssetNotFoundError
from .rebase import RebaseContext, RebaseDirective, select_strategy
from .search import build_search_paths, resolve_reference
from .urls import (
    ParsedUrl,
    is_relative,
    is_remote,
    join_path,
    normalize_path,
    relative_path,
    strip_query,
    url_parse,
)

logger = logging.getLogger(__name__)


def remote_stylesheet_path(
    file_obj: ParsedUrl,
    document_obj: ParsedUrl | None,
    filename: str = "",
) -> str:
    """Path of a remote stylesheet as seen from the document.

    Same host and port as the document gives a root-relative path, anything
    else keeps the full URL. `filename` swaps the last path segment.
    """

    pathname = file_obj.pathname
    if filename:
        pathname = join_path(os.path.dirname(pathname), os.path.basename(filename))
        file_obj = replace(file_obj, pathname=normalize_path(pathname))

    if document_obj is not None and (file_obj.hostname, file_obj.port) == (
        document_obj.hostname,
        document_obj.port,
    ):
        return pathname

    return file_obj.href


def _same_name(href: str, path: str) -> bool:
    name = os.path.basename(strip_query(url_parse(href).pathname))
    return name == os.path.basename(strip_query(path))


def stylesheet_virtual_path(
    document: Asset,
    file: Asset,
    options: LoadOptions | None = None,
) -> str:
    options = options or LoadOptions()
    base = options.base
    doc_dir = os.path.dirname(document.virtual_path)

    if file.remote and file.url_obj is not None:
        return remote_stylesheet_path(file.url_obj, document.url_obj)

    if is_relative(file.path) and document.virtual_path:
        return normalize_path(join_path(doc_dir, file.path))

    if base and os.path.abspath(base) in os.path.abspath(file.path):
        rel = relative_path(os.path.abspath(base), os.path.abspath(file.path))
        return normalize_path(f"/{rel}")

    # A link tag with the same file name is most likely this stylesheet.
    stylesheet = next(
        (href for href in document.stylesheets if _same_name(href, file.path)),
        None,
    )
    if stylesheet and is_relative(stylesheet) and document.virtual_path:
        return normalize_path(join_path(doc_dir, stylesheet))
    if stylesheet and is_remote(stylesheet):
        return remote_stylesheet_path(url_parse(stylesheet), document.url_obj)
    if stylesheet:
        return stylesheet

    # Otherwise borrow the directory of the first link tag, local ones first.
    ordered = sorted(document.stylesheets, key=is_remote)
    unsafe = ordered[0] if ordered else None
    filename = os.path.basename(file.path)
    if unsafe and is_relative(unsafe) and document.virtual_path:
        return normalize_path(
            join_path(doc_dir, join_path(os.path.dirname(unsafe), filename))
        )
    if unsafe and is_remote(unsafe):
        return remote_stylesheet_path(url_parse(unsafe), document.url_obj, filename)

    options.diagnostics.warn(BASE_WARNING)
    if document.virtual_path and file.path:
        return normalize_path(join_path(doc_dir, filename))

    return ""


def load_stylesheet(
    document: Asset,
    filepath: str | Asset,
    options: LoadOptions | None = None,
) -> Asset:
    """Locate, read and rebase one stylesheet of `document`.

    A remote stylesheet that cannot be found yields an empty `Asset` unless
    `options.strict` is set; every other miss raises `AssetNotFoundError`.
    """

    options = options or LoadOptions()
    directive = RebaseDirective.from_option(options.rebase)
    original_path = filepath

    if not check_exists(filepath, options):
        search_paths = build_search_paths(document, filepath, options)
        try:
            filepath = resolve_reference(filepath, search_paths, options)
        except AssetNotFoundError:
            if not (isinstance(filepath, str) and is_remote(filepath)) or options.strict:
                raise
            logger.debug("Skipping unreachable stylesheet %s", filepath)
            return Asset()

    # Stylesheets passed via the css option are not relative to the document.
    if isinstance(filepath, str) and not is_remote(filepath) and options.css:
        filepath = os.path.abspath(filepath)

    file = materialize(filepath=filepath, options=options)

    # Keep the author's reference for document-linked local stylesheets so
    # the rebase math below starts from it.
    if (
        isinstance(original_path, str)
        and not is_remote(original_path)
        and not options.css
    ):
        file.relocate(original_path)

    stylepath = stylesheet_virtual_path(document, file, options)
    logger.debug("Virtual stylesheet path: %s", stylepath)
    if stylepath:
        file.virtual_path = stylepath

    ctx = RebaseContext(
        contents=file.contents or b"",
        stylepath=stylepath,
        document=document,
        directive=directive,
    )
    strategy = select_strategy(ctx)
    if strategy is None:
        options.diagnostics.warn(
            f'Not rebasing assets for {original_path}. Use "rebase" option'
        )
        return file

    logger.debug("Rebase strategy for %s: %s", original_path, strategy.name)
    file.contents = strategy.apply(ctx)
    return file
