from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .assets import Asset

CSS_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"""(url\(\s*['"]?)([^"')]+)(["']?\s*\))""", re.IGNORECASE),
    re.compile(r"""(AlphaImageLoader\(\s*src=['"]?)([^"')]+)(["'])""", re.IGNORECASE),
)
_CSS_IMPORT = re.compile(r"""@import\s+['"]([^'"]+)['"]""", re.IGNORECASE)
_CSS_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


def _attr_text(val: object) -> str:
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val or "")


def mask_comments(css: str) -> str:
    """Blank out comment bodies so match offsets still line up with `css`."""

    return _CSS_COMMENT.sub(lambda m: " " * (m.end() - m.start()), css)


def _require_asset(asset: object) -> Asset:
    if not isinstance(asset, Asset):
        raise TypeError("Parameter asset needs to be an Asset")
    return asset


def get_stylesheet_hrefs(asset: Asset) -> list[str]:
    """Return stylesheet hrefs.

    ``<link rel="stylesheet">`` hrefs come first, in document order, followed
    by ``<link rel="preload" as="style">`` hrefs. Print-only stylesheets are
    skipped.
    """

    soup = BeautifulSoup(_require_asset(asset).text(), "html.parser")

    stylesheets: list[str] = []
    preloads: list[str] = []
    for link in soup.find_all("link"):
        if _attr_text(link.get("media")).strip().lower() == "print":
            continue
        href = _attr_text(link.get("href")).strip()
        if not href:
            continue
        rel = _attr_text(link.get("rel")).lower().split()
        if "stylesheet" in rel:
            stylesheets.append(href)
        elif "preload" in rel and _attr_text(link.get("as")).lower() == "style":
            preloads.append(href)
    return stylesheets + preloads


def find_css_urls(css: str) -> list[str]:
    masked = mask_comments(css)
    found: list[str] = []
    for pattern in CSS_URL_PATTERNS:
        found.extend(m.group(2).strip() for m in pattern.finditer(masked))
    found.extend(m.group(1).strip() for m in _CSS_IMPORT.finditer(masked))
    return list(dict.fromkeys(u for u in found if u))


def get_assets(asset: Asset) -> list[str]:
    """Return the asset URLs referenced from a stylesheet."""

    return find_css_urls(_require_asset(asset).text())
