"""critical-prep core library.

This package locates the stylesheets an HTML document depends on, rebases the
asset URLs inside them, and stages a self-contained temporary tree that a
headless renderer can load from disk.

The HTML/CSS extraction, HTTP and filesystem helpers are intentionally small;
the interesting part is the search-path and rebase logic.
"""

from __future__ import annotations

from .assets import Asset, check_exists, materialize
from .config import LoadOptions
from .document import (
    RenderTree,
    document_virtual_path,
    load_document,
    load_document_from_source,
    open_document,
)
from .errors import AssetNotFoundError
from .rebase import rebase_stylesheet
from .search import build_search_paths, resolve_reference
from .stylesheet import load_stylesheet, stylesheet_virtual_path

__all__ = [
    "__version__",
    "Asset",
    "AssetNotFoundError",
    "LoadOptions",
    "RenderTree",
    "build_search_paths",
    "check_exists",
    "document_virtual_path",
    "load_document",
    "load_document_from_source",
    "load_stylesheet",
    "materialize",
    "open_document",
    "rebase_stylesheet",
    "resolve_reference",
    "stylesheet_virtual_path",
]

__version__ = "0.1.0"
