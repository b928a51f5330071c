"""Rewrite ``url()`` references inside stylesheets.

Two layers live here:

- `rebase_stylesheet` rewrites every rewritable URL of a stylesheet, given the
  stylesheet location (`from_`) and the location it will be used from (`to`).
- `STRATEGIES` decides *how* a loaded stylesheet is rebased. It is an ordered
  table; the first entry whose predicate matches wins.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlsplit

from .assets import Asset
from .parse import CSS_URL_PATTERNS, mask_comments
from .urls import is_remote, normalize_path, path_join, relative_path, url_parse, url_resolve

logger = logging.getLogger(__name__)

_SCHEME_URL = re.compile(r"^[a-z]+://", re.IGNORECASE)


@dataclass(frozen=True)
class RebaseDirs:
    from_: str
    to: str
    file: str


@dataclass(frozen=True)
class AssetRef:
    url: str
    origin_url: str
    pathname: str
    absolute_path: str
    relative_path: str
    search: str
    hash: str


UrlMethod = Callable[[AssetRef, RebaseDirs], Optional[str]]


def _has_no_pathname(url: str) -> bool:
    return (
        url.startswith("#")
        or url.startswith("%23")
        or url.startswith("data:")
        or bool(_SCHEME_URL.match(url))
        or url.startswith("//")
    )


def _is_ignored(url: str) -> bool:
    return _has_no_pathname(url) or url.startswith("/") or url.startswith("~")


def _prepare_asset(url: str, dirs: RebaseDirs) -> AssetRef:
    parts = urlsplit(url)
    absolute = os.path.abspath(path_join(dirs.file, parts.path))
    return AssetRef(
        url=url,
        origin_url=url,
        pathname=parts.path,
        absolute_path=absolute,
        relative_path=relative_path(dirs.from_, absolute),
        search=f"?{parts.query}" if parts.query else "",
        hash=f"#{parts.fragment}" if parts.fragment else "",
    )


def _rebase_method(asset: AssetRef, dirs: RebaseDirs) -> str:
    rebased = relative_path(dirs.to, asset.absolute_path).replace(os.sep, "/")
    return f"{rebased}{asset.search}{asset.hash}"


_METHODS: dict[str, UrlMethod] = {"rebase": _rebase_method}


def _rewrite_urls(css: str, from_: str, to: str, method: UrlMethod) -> str:
    from_dir = os.path.dirname(from_) if from_ else "."
    dirs = RebaseDirs(
        from_=from_dir,
        to=os.path.dirname(to) if to else from_dir,
        file=os.path.dirname(os.path.abspath(from_)) if from_ else os.getcwd(),
    )

    for pattern in CSS_URL_PATTERNS:
        masked = mask_comments(css)
        pieces: list[str] = []
        last = 0
        for m in pattern.finditer(masked):
            url = m.group(2).strip()
            if not url or _is_ignored(url):
                continue
            new_url = method(_prepare_asset(url, dirs), dirs)
            if not new_url:
                continue
            pieces.append(css[last : m.start(2)])
            pieces.append(new_url)
            last = m.end(2)
        if pieces:
            css = "".join(pieces) + css[last:]

    return css


def rebase_stylesheet(
    css: bytes | str,
    from_: str,
    to: str,
    method: str | UrlMethod = "rebase",
) -> bytes:
    """Rebase image/font URLs in `css` from `from_` to `to`.

    `method` is ``"rebase"`` or a callable ``(asset, dirs) -> str | None``.
    Callables receive forward-slash `absolute_path`/`relative_path` values
    and run even without a `from_`/`to` pair; returning a falsy value keeps
    the URL unchanged.
    """

    rebased = css.decode("utf-8", errors="replace") if isinstance(css, bytes) else css
    from_ = from_ or ""
    to = to or ""

    logger.debug("Rebase assets from=%r to=%r", from_, to)

    if to.endswith("/"):
        to += "temp.html"

    if from_.endswith("/"):
        from_ += "temp.css"

    if is_remote(from_):
        from_ = url_parse(from_).pathname

    if callable(method):
        user_method = method

        def transform(asset: AssetRef, dirs: RebaseDirs) -> str | None:
            normalized = replace(
                asset,
                absolute_path=normalize_path(asset.absolute_path),
                relative_path=normalize_path(asset.relative_path),
            )
            return user_method(normalized, dirs)

        rebased = _rewrite_urls(rebased, from_, to, transform)
    elif from_ and to:
        try:
            builtin = _METHODS[method]
        except KeyError:
            raise ValueError(f"Unknown rebase method: {method!r}") from None
        rebased = _rewrite_urls(rebased, from_, to, builtin)

    return rebased.encode("utf-8")


class RebaseKind(str, Enum):
    DISABLED = "disabled"
    EXPLICIT = "explicit"
    TRANSFORM = "transform"
    INFER = "infer"


@dataclass(frozen=True)
class RebaseDirective:
    kind: RebaseKind
    from_: str = ""
    to: str = ""
    transform: UrlMethod | None = None

    @classmethod
    def from_option(cls, value: Any) -> "RebaseDirective":
        if value is False:
            return cls(RebaseKind.DISABLED)
        if value is None or value is True:
            return cls(RebaseKind.INFER)
        if callable(value):
            return cls(RebaseKind.TRANSFORM, transform=value)
        if isinstance(value, Mapping):
            from_ = str(value.get("from") or "")
            to = str(value.get("to") or "")
            if from_ and to:
                return cls(RebaseKind.EXPLICIT, from_=from_, to=to)
            return cls(RebaseKind.INFER, from_=from_, to=to)
        raise TypeError(f"Unsupported rebase option: {value!r}")


@dataclass(frozen=True)
class RebaseContext:
    contents: bytes
    stylepath: str
    document: Asset
    directive: RebaseDirective


@dataclass(frozen=True)
class RebaseStrategy:
    name: str
    applies: Callable[[RebaseContext], bool]
    apply: Callable[[RebaseContext], bytes]


def _keep(ctx: RebaseContext) -> bytes:
    return ctx.contents


def _explicit(ctx: RebaseContext) -> bytes:
    return rebase_stylesheet(ctx.contents, ctx.directive.from_, ctx.directive.to)


def _transform(ctx: RebaseContext) -> bytes:
    return rebase_stylesheet(
        ctx.contents,
        ctx.stylepath,
        ctx.document.virtual_path,
        ctx.directive.transform or _rebase_method,
    )


def _to_remote(ctx: RebaseContext) -> bytes:
    from_ = ctx.directive.from_ or ctx.stylepath
    to = ctx.directive.to or ctx.stylepath

    def method(asset: AssetRef, dirs: RebaseDirs) -> str:
        if is_remote(asset.origin_url):
            return asset.origin_url
        return url_resolve(to, asset.relative_path)

    return rebase_stylesheet(ctx.contents, from_, to, method)


def _to_document(ctx: RebaseContext) -> bytes:
    return rebase_stylesheet(
        ctx.contents,
        ctx.directive.from_ or ctx.stylepath,
        ctx.directive.to or ctx.document.virtual_path,
    )


def _to_remote_document(ctx: RebaseContext) -> bytes:
    pathname = ctx.document.url_obj.pathname if ctx.document.url_obj else ""
    return rebase_stylesheet(
        ctx.contents,
        ctx.directive.from_ or ctx.stylepath,
        ctx.directive.to or pathname,
    )


def _to_absolute(ctx: RebaseContext) -> bytes:
    return rebase_stylesheet(
        ctx.contents,
        ctx.directive.from_ or ctx.stylepath,
        ctx.directive.to or "/index.html",
        lambda asset, dirs: normalize_path(asset.absolute_path),
    )


STRATEGIES: tuple[RebaseStrategy, ...] = (
    RebaseStrategy(
        "disabled", lambda ctx: ctx.directive.kind is RebaseKind.DISABLED, _keep
    ),
    RebaseStrategy(
        "explicit", lambda ctx: ctx.directive.kind is RebaseKind.EXPLICIT, _explicit
    ),
    RebaseStrategy(
        "transform",
        lambda ctx: ctx.directive.kind is RebaseKind.TRANSFORM,
        _transform,
    ),
    RebaseStrategy(
        "remote",
        lambda ctx: is_remote(ctx.directive.to or ctx.stylepath),
        _to_remote,
    ),
    RebaseStrategy(
        "document", lambda ctx: bool(ctx.document.virtual_path), _to_document
    ),
    RebaseStrategy(
        "remote-document", lambda ctx: ctx.document.remote, _to_remote_document
    ),
    RebaseStrategy(
        "absolute", lambda ctx: os.path.isabs(ctx.stylepath), _to_absolute
    ),
)


def select_strategy(ctx: RebaseContext) -> RebaseStrategy | None:
    for strategy in STRATEGIES:
        if strategy.applies(ctx):
            return strategy
    return None
