from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from requests import exceptions as req_exc

from .config import LoadOptions
from .errors import AssetNotFoundError
from .urls import ParsedUrl, is_remote, strip_query, url_parse

if TYPE_CHECKING:
    from .document import RenderTree

logger = logging.getLogger(__name__)


@dataclass
class Asset:
    """A document or stylesheet resolved from disk, the network or memory.

    `virtual_path` is the anchor for all relative URL arithmetic and may not
    exist anywhere on disk. `contents` of ``None`` marks an empty
    placeholder (for example a remote stylesheet that could not be found).
    """

    contents: bytes | None = None
    path: str = ""
    virtual_path: str = ""
    url: str = ""
    url_obj: ParsedUrl | None = None
    remote: bool = False
    cwd: str = "/"
    history: list[str] = field(default_factory=list)
    stylesheets: list[str] = field(default_factory=list)
    css: str = ""
    tree: RenderTree | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.path and not self.history:
            self.history.append(self.path)

    def is_null(self) -> bool:
        return self.contents is None

    def relocate(self, path: str) -> None:
        if path and path != self.path:
            self.history.append(path)
        self.path = path

    def text(self) -> str:
        return (self.contents or b"").decode("utf-8", errors="replace")

    def cleanup(self) -> None:
        if self.tree is not None:
            self.tree.cleanup()


def _local_exists(ref: str) -> bool:
    try:
        return os.path.exists(ref) or os.path.exists(strip_query(ref))
    except (OSError, ValueError):
        return False


def check_exists(ref: str | Asset, options: LoadOptions | None = None) -> bool:
    """Return True if `ref` can be read; never raises."""

    options = options or LoadOptions()

    if isinstance(ref, Asset):
        return not ref.is_null()

    if not ref:
        return False

    if is_remote(ref):
        method = str((options.request or {}).get("method") or "head").lower()
        try:
            response = options.client().fetch(ref, options, method=method)
        except (req_exc.RequestException, OSError, ValueError):
            return False
        if response is None:
            return False
        if method == "head":
            return response.status_code < 400
        return True

    return _local_exists(ref)


def materialize(
    *,
    filepath: str | Asset | None = None,
    html: str | None = None,
    options: LoadOptions | None = None,
) -> Asset:
    options = options or LoadOptions()

    if html:
        _, to = options.rebase_endpoints()
        return Asset(contents=html.encode("utf-8"), path=to, virtual_path=to)

    if isinstance(filepath, Asset):
        return filepath

    if filepath and is_remote(filepath):
        url_obj = url_parse(filepath)
        return Asset(
            contents=options.client().get_body(filepath, options),
            url=filepath,
            url_obj=url_obj,
            remote=True,
            virtual_path=url_obj.pathname,
        )

    if filepath:
        # `style.css?v=2` is read from `style.css`.
        for candidate in dict.fromkeys([filepath, strip_query(filepath)]):
            if os.path.isfile(candidate):
                return Asset(
                    contents=Path(candidate).read_bytes(),
                    path=filepath,
                    virtual_path=filepath,
                )

    raise AssetNotFoundError(filepath)
