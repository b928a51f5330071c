"""Document loading and temp-tree staging for the renderer."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import tempfile
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from .assets import Asset, materialize
from .config import LoadOptions
from .diagnostics import BASE_WARNING
from .errors import AssetNotFoundError
from .files import expand_globs, output_file, remove_quietly
from .parse import get_stylesheet_hrefs
from .search import build_search_paths, resolve_reference
from .stylesheet import load_stylesheet
from .urls import (
    file_uri,
    is_absolute_local,
    is_relative,
    is_remote,
    join_path,
    normalize_path,
    relative_path,
    strip_query,
)

logger = logging.getLogger(__name__)

_LEADING_HOPS = re.compile(r"^(\.\./)+")
_HEAD_TAG = re.compile(r"(<head(?:\s[^>]*)?>)", re.IGNORECASE)


def _deepest_hops(hrefs: Iterable[str]) -> str:
    """Longest leading ``../../`` run among `hrefs`, or ``./``."""

    deepest = "./"
    for href in hrefs:
        match = _LEADING_HOPS.match(href or "")
        if match and len(match.group(0)) > len(deepest):
            deepest = match.group(0)
    return deepest


def _relative_hrefs(hrefs: Iterable[str]) -> list[str]:
    """Relative hrefs without query strings, normalized and de-duplicated.

    ``x/../../a.css`` becomes ``../a.css`` so its hops count as leading ones.
    """

    normalized = (posixpath.normpath(strip_query(h)) for h in hrefs if is_relative(h))
    return list(
        dict.fromkeys(p for p in normalized if posixpath.basename(p) not in (".", ".."))
    )


def _cwd_relative(document: Asset, options: LoadOptions) -> str:
    options.diagnostics.warn(BASE_WARNING)
    return normalize_path(f"/{relative_path(os.getcwd(), document.path)}")


def document_virtual_path(document: Asset, options: LoadOptions | None = None) -> str:
    """Guess the document's path below its (unknown) project root."""

    options = options or LoadOptions()

    if document.remote and document.url_obj is not None:
        pathname = document.url_obj.pathname
        if pathname.endswith("/"):
            pathname += "index.html"
        return pathname

    if not document.path:
        return ""

    if options.base:
        base = os.path.abspath(options.base)
        return normalize_path(f"/{relative_path(base, document.path or base)}")

    relative_refs = [href for href in document.stylesheets if is_relative(href)]
    absolute_refs = [href for href in document.stylesheets if is_absolute_local(href)]

    if not relative_refs and not absolute_refs:
        return _cwd_relative(document, options)

    # Only root-relative links: the root is wherever the first one resolves.
    if not relative_refs:
        ref = absolute_refs[0]
        paths = build_search_paths(document, ref, options)
        try:
            filepath = resolve_reference(ref, paths, options)
        except AssetNotFoundError:
            return _cwd_relative(document, options)
        root = normalize_path(str(filepath)).replace(strip_query(ref), "", 1)
        return normalize_path(f"/{relative_path(root, document.path)}")

    dots = _deepest_hops(_relative_hrefs(relative_refs))
    tmp_base = os.path.abspath(os.path.join(os.path.dirname(document.path), dots))
    return normalize_path(f"/{relative_path(tmp_base, document.path)}")


def load_css(document: Asset, options: LoadOptions | None = None) -> str:
    """Load every stylesheet of `document` and concatenate them in order."""

    options = options or LoadOptions()

    if options.css:
        refs = expand_globs(options.css, options.base)
        logger.debug("css option set: %s", refs)
    else:
        refs = list(dict.fromkeys(document.stylesheets))
        logger.debug("Stylesheets from document: %s", refs)

    if not refs:
        return ""

    # One client for all workers.
    options.client()

    with ThreadPoolExecutor(max_workers=max(1, options.max_workers)) as pool:
        stylesheets = list(
            pool.map(lambda ref: load_stylesheet(document, ref, options), refs)
        )

    return os.linesep.join(
        sheet.text() for sheet in stylesheets if not sheet.is_null() and sheet.contents
    )


@dataclass
class RenderTree:
    """Temporary files staged for the renderer.

    Release with `cleanup()` or by using the tree as a context manager.
    """

    root: Path
    html_path: Path
    files: list[Path] = field(default_factory=list)
    closed: bool = False

    @property
    def file_uri(self) -> str:
        return file_uri(str(self.html_path))

    def cleanup(self) -> None:
        if self.closed:
            return
        self.closed = True
        for path in self.files:
            remove_quietly(path)
        remove_quietly(self.root)

    def __enter__(self) -> "RenderTree":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


def prepare_render_tree(document: Asset) -> RenderTree:
    """Stage the document HTML and its relative stylesheets on disk.

    The renderer loads the HTML from a `file://` URL and will try to fetch the
    relative `<link>` targets too, so those must exist next to it. The HTML
    sits ``sub/`` deep once per leading ``../`` of the deepest relative href;
    the first relative href receives the full CSS, the others stay empty.
    """

    relative = _relative_hrefs(document.stylesheets)
    subfolders = _deepest_hops(relative).replace("../", "sub/")

    root = Path(tempfile.mkdtemp(prefix="critical-prep-"))
    directory = root / subfolders
    tree = RenderTree(root=root, html_path=directory / f"{uuid.uuid4().hex}.html")

    css = document.css or ""
    # Inline everything; file:// pages do not load protocol-relative links.
    injected = _HEAD_TAG.sub(
        lambda m: f"{m.group(1)}<style>{css}</style>", document.text()
    )

    try:
        tree.files.append(tree.html_path)
        output_file(tree.html_path, injected)

        for index, href in enumerate(relative):
            target = Path(os.path.normpath(directory / href))
            if not target.resolve().is_relative_to(root.resolve()):
                logger.debug("Not staging %s outside %s", href, root)
                continue
            tree.files.append(target)
            # The first relative href receives the full CSS.
            output_file(target, css if index == 0 else "")
    except OSError:
        tree.cleanup()
        raise

    return tree


def _assemble(document: Asset, options: LoadOptions, *, from_source: bool) -> Asset:
    _, rebase_to = options.rebase_endpoints()

    document.stylesheets = get_stylesheet_hrefs(document)
    document.virtual_path = rebase_to or document_virtual_path(document, options)

    document.cwd = options.base or os.getcwd()
    if not from_source and not options.base and document.path:
        document.cwd = document.path.replace(document.virtual_path, "", 1)

    logger.debug(
        "Document: path=%r url=%r remote=%s virtual_path=%r stylesheets=%r cwd=%r",
        document.path,
        document.url,
        document.remote,
        document.virtual_path,
        document.stylesheets,
        document.cwd,
    )

    document.css = load_css(document, options)
    document.tree = prepare_render_tree(document)
    return document


def load_document(filepath: str | Asset, options: LoadOptions | None = None) -> Asset:
    """Load a document from a path or URL and stage it for rendering.

    The caller owns ``document.tree`` and must call ``document.cleanup()``;
    `open_document` does that automatically.
    """

    options = options or LoadOptions()

    if (
        isinstance(filepath, str)
        and not is_remote(filepath)
        and not os.path.exists(filepath)
        and options.base
    ):
        filepath = join_path(options.base, filepath)

    document = materialize(filepath=filepath, options=options)
    return _assemble(document, options, from_source=False)


def load_document_from_source(html: str, options: LoadOptions | None = None) -> Asset:
    options = options or LoadOptions()
    document = materialize(html=html, options=options)
    return _assemble(document, options, from_source=True)


@contextmanager
def open_document(
    filepath: str | Asset | None = None,
    *,
    html: str | None = None,
    options: LoadOptions | None = None,
) -> Iterator[Asset]:
    if html is not None:
        document = load_document_from_source(html, options)
    elif filepath is not None:
        document = load_document(filepath, options)
    else:
        raise ValueError("open_document needs a filepath or html")

    try:
        yield document
    finally:
        document.cleanup()
