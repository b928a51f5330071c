from __future__ import annotations

import base64
import os
import re
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urljoin, urlsplit, urlunsplit

# Protocol-relative references are parsed against this origin so that the
# usual URL arithmetic works on them.
PLACEHOLDER_ORIGIN = "https://ba.se"

_SCHEME_URL = re.compile(r"^\w+://")
_REMOTE_MARKER = re.compile(r"(^//)|(://)")
_QUERY = re.compile(r"\?.*$")
_DRIVE_LETTER = re.compile(r"^[a-zA-Z]:")
_LAST_SEGMENT = re.compile(r"[^/]+$")

_DEFAULT_PORTS = {"http": 80, "https": 443}


class RefKind(str, Enum):
    LOCAL_ABSOLUTE = "local-absolute"
    LOCAL_RELATIVE = "local-relative"
    REMOTE = "remote"
    PROTOCOL_RELATIVE = "protocol-relative"

    @property
    def remote(self) -> bool:
        return self in (RefKind.REMOTE, RefKind.PROTOCOL_RELATIVE)


def classify(ref: str) -> RefKind:
    """Classify a reference string.

    - `//host/x` and anything containing `scheme://` is remote,
      except `file:` URIs which stay local.
    - Local references are absolute or relative by platform rules.
    """

    if _REMOTE_MARKER.search(ref) and not ref.startswith("file:"):
        if ref.startswith("//"):
            return RefKind.PROTOCOL_RELATIVE
        return RefKind.REMOTE
    if os.path.isabs(ref):
        return RefKind.LOCAL_ABSOLUTE
    return RefKind.LOCAL_RELATIVE


def is_remote(ref: str) -> bool:
    return classify(ref).remote


def is_relative(ref: str) -> bool:
    return classify(ref) is RefKind.LOCAL_RELATIVE


def is_absolute_local(ref: str) -> bool:
    return classify(ref) is RefKind.LOCAL_ABSOLUTE


def normalize_path(text: str) -> str:
    """Use forward slashes and drop the volume prefix on Windows."""

    if sys.platform == "win32":
        return _DRIVE_LETTER.sub("", text).replace("\\", "/")
    return text


def strip_query(ref: str) -> str:
    return _QUERY.sub("", ref)


@dataclass(frozen=True)
class ParsedUrl:
    pathname: str = ""
    scheme: str = ""
    netloc: str = ""
    hostname: str = ""
    port: str = ""
    search: str = ""
    hash: str = ""

    @property
    def href(self) -> str:
        if not self.scheme:
            return f"{self.pathname}{self.search}{self.hash}"
        return urlunsplit(
            (
                self.scheme,
                self.netloc,
                self.pathname,
                self.search.lstrip("?"),
                self.hash.lstrip("#"),
            )
        )


def _split_url(raw_url: str) -> ParsedUrl:
    parts = urlsplit(raw_url)
    scheme = (parts.scheme or "").lower()
    pathname = parts.path
    if not pathname and parts.netloc:
        pathname = "/"

    try:
        port_num = parts.port
    except ValueError:
        port_num = None
    port = ""
    if port_num is not None and _DEFAULT_PORTS.get(scheme) != port_num:
        port = str(port_num)

    return ParsedUrl(
        pathname=pathname,
        scheme=scheme,
        netloc=parts.netloc,
        hostname=(parts.hostname or "").lower(),
        port=port,
        search=f"?{parts.query}" if parts.query else "",
        hash=f"#{parts.fragment}" if parts.fragment else "",
    )


def url_parse(ref: str = "") -> ParsedUrl:
    if _SCHEME_URL.match(ref):
        return _split_url(ref)
    if ref.startswith("//"):
        return _split_url(urljoin(PLACEHOLDER_ORIGIN, ref))
    return ParsedUrl(pathname=ref)


def path_join(*parts: str) -> str:
    """Join path segments the way the search-path math expects.

    Later absolute segments are appended instead of replacing the result,
    so `path_join("/a", "/b")` is `/a/b`.
    """

    segments = [p for p in parts if p]
    if not segments:
        return "."
    seps = "/\\" if os.sep == "\\" else "/"
    head, *rest = segments
    joined = os.path.join(head, *(p.lstrip(seps) for p in rest))
    return os.path.normpath(joined)


def relative_path(from_: str, to: str) -> str:
    rel = os.path.relpath(os.path.abspath(to or "."), os.path.abspath(from_ or "."))
    return "" if rel == "." else rel


def url_resolve(from_: str = "", to: str = "") -> str:
    if is_remote(from_):
        return urljoin(url_parse(from_).href, to)

    if os.path.isabs(to):
        return to

    return path_join(_LAST_SEGMENT.sub("", from_), to)


def join_path(base: str, part: str) -> str:
    if not part:
        return base

    if is_remote(base):
        return url_resolve(base, part)

    return path_join(base, strip_query(part))


def file_uri(path: str) -> str:
    if not os.path.isabs(path):
        raise ValueError(f"Path must be absolute to compute file uri: {path}")
    return Path(path).as_uri()


def basic_auth_token(user: str, password: str) -> str:
    raw = ":".join([user, password]).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")
