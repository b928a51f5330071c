"""Tests for url() rebasing and the rebase strategy table."""

from __future__ import annotations

import pytest

from critical_prep.assets import Asset
from critical_prep.rebase import (
    STRATEGIES,
    RebaseContext,
    RebaseDirective,
    RebaseKind,
    rebase_stylesheet,
    select_strategy,
)
from critical_prep.urls import url_parse


class TestRebaseStylesheet:
    """Test rebase_stylesheet."""

    def test_moves_up_and_back(self) -> None:
        css = ".a{background:url(img.png)}"

        up = rebase_stylesheet(css, "/a/b/style.css", "/a/style.css")
        back = rebase_stylesheet(up, "/a/style.css", "/a/b/style.css")

        assert up == b".a{background:url(b/img.png)}"
        assert back == css.encode()

    def test_quotes_are_preserved(self) -> None:
        css = ".a{background:url('img.png')}.b{background:url(\"x.png\")}"

        out = rebase_stylesheet(css, "/a/b/s.css", "/a/index.html")

        assert out == b".a{background:url('b/img.png')}.b{background:url(\"b/x.png\")}"

    def test_search_and_hash_are_kept(self) -> None:
        css = "@font-face{src:url(font.woff?v=1#iefix)}"

        out = rebase_stylesheet(css, "/a/b/s.css", "/a/index.html")

        assert out == b"@font-face{src:url(b/font.woff?v=1#iefix)}"

    @pytest.mark.parametrize(
        "url",
        [
            "data:image/png;base64,AAAA",
            "/abs/img.png",
            "//cdn.test/img.png",
            "https://cdn.test/img.png",
            "#mask",
            "~pkg/img.png",
        ],
    )
    def test_ignored_urls(self, url: str) -> None:
        css = f".a{{background:url({url})}}"

        assert rebase_stylesheet(css, "/a/b/s.css", "/a/index.html") == css.encode()

    def test_comments_are_untouched(self) -> None:
        css = "/* url(a.png) */ .x{background:url(a.png)}"

        out = rebase_stylesheet(css, "/a/b/s.css", "/a/index.html")

        assert out == b"/* url(a.png) */ .x{background:url(b/a.png)}"

    def test_alpha_image_loader(self) -> None:
        css = ".ie{filter:progid:DXImageTransform.Microsoft.AlphaImageLoader(src='img.png')}"

        out = rebase_stylesheet(css, "/a/b/s.css", "/a/index.html")

        assert b"AlphaImageLoader(src='b/img.png')" in out

    def test_trailing_slash_target(self) -> None:
        out = rebase_stylesheet("a{b:url(img.png)}", "/a/b/style.css", "/a/")
        assert out == b"a{b:url(b/img.png)}"

    def test_remote_source_uses_pathname(self) -> None:
        out = rebase_stylesheet(
            "a{b:url(img.png)}", "https://cdn.test/a/b/style.css", "/a/index.html"
        )
        assert out == b"a{b:url(b/img.png)}"

    def test_missing_endpoint_is_noop(self) -> None:
        css = "a{b:url(img.png)}"
        assert rebase_stylesheet(css, "/a/b/style.css", "") == css.encode()
        assert rebase_stylesheet(css, "", "/a/index.html") == css.encode()

    def test_callable_runs_without_endpoints(self) -> None:
        seen = []

        def method(asset, dirs):
            seen.append(asset.absolute_path)
            return "X/" + asset.url

        out = rebase_stylesheet("a{b:url(img.png)}", "/a/b/style.css", "", method)

        assert out == b"a{b:url(X/img.png)}"
        assert seen == ["/a/b/img.png"]

    def test_callable_returning_none_keeps_url(self) -> None:
        css = "a{b:url(img.png)}"
        assert rebase_stylesheet(css, "/a/s.css", "/b/i.html", lambda a, d: None) == css.encode()

    def test_unknown_method(self) -> None:
        with pytest.raises(ValueError):
            rebase_stylesheet("a{}", "/a.css", "/b.html", "inline")


class TestRebaseDirective:
    """Test RebaseDirective.from_option."""

    def test_kinds(self) -> None:
        assert RebaseDirective.from_option(False).kind is RebaseKind.DISABLED
        assert RebaseDirective.from_option(None).kind is RebaseKind.INFER
        assert RebaseDirective.from_option(True).kind is RebaseKind.INFER
        assert RebaseDirective.from_option(lambda a, d: None).kind is RebaseKind.TRANSFORM

    def test_mapping(self) -> None:
        full = RebaseDirective.from_option({"from": "/a.css", "to": "/b.html"})
        partial = RebaseDirective.from_option({"to": "/b.html"})

        assert (full.kind, full.from_, full.to) == (RebaseKind.EXPLICIT, "/a.css", "/b.html")
        assert (partial.kind, partial.from_, partial.to) == (RebaseKind.INFER, "", "/b.html")

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError):
            RebaseDirective.from_option(42)


def _context(stylepath: str, document: Asset, rebase=None, css: bytes = b"") -> RebaseContext:
    return RebaseContext(
        contents=css,
        stylepath=stylepath,
        document=document,
        directive=RebaseDirective.from_option(rebase),
    )


class TestStrategies:
    """Test strategy selection and application."""

    def test_table_order(self) -> None:
        assert [s.name for s in STRATEGIES] == [
            "disabled",
            "explicit",
            "transform",
            "remote",
            "document",
            "remote-document",
            "absolute",
        ]

    @pytest.mark.parametrize(
        ("stylepath", "document", "rebase", "expected"),
        [
            ("/css/a.css", Asset(virtual_path="/index.html"), False, "disabled"),
            ("/css/a.css", Asset(), {"from": "/a.css", "to": "/b.html"}, "explicit"),
            ("/css/a.css", Asset(), lambda a, d: None, "transform"),
            ("https://cdn.test/a.css", Asset(virtual_path="/index.html"), None, "remote"),
            ("/css/a.css", Asset(virtual_path="/index.html"), None, "document"),
            ("css/a.css", Asset(remote=True), None, "remote-document"),
            ("/srv/css/a.css", Asset(), None, "absolute"),
        ],
    )
    def test_selection(self, stylepath, document, rebase, expected) -> None:
        strategy = select_strategy(_context(stylepath, document, rebase))
        assert strategy is not None
        assert strategy.name == expected

    def test_no_strategy(self) -> None:
        assert select_strategy(_context("css/a.css", Asset())) is None

    def test_disabled_keeps_bytes(self) -> None:
        css = b"a{b:url(img.png)}"
        ctx = _context("/css/a.css", Asset(virtual_path="/index.html"), False, css)

        assert select_strategy(ctx).apply(ctx) is css

    def test_remote_stylesheet_urls_become_absolute(self) -> None:
        css = b"a{b:url(../img/a.png)}c{d:url(https://other.test/x.png)}"
        ctx = _context("https://cdn.test/css/site.css", Asset(), None, css)

        out = select_strategy(ctx).apply(ctx)

        assert out == b"a{b:url(https://cdn.test/img/a.png)}c{d:url(https://other.test/x.png)}"

    def test_document_relative(self) -> None:
        css = b"a{b:url(../img/a.png)}"
        ctx = _context("/css/a.css", Asset(virtual_path="/pages/index.html"), None, css)

        assert select_strategy(ctx).apply(ctx) == b"a{b:url(../img/a.png)}"

    def test_remote_document_pathname(self) -> None:
        doc = Asset(remote=True, url_obj=url_parse("https://site.test/blog/post.html"))
        ctx = _context("/css/a.css", doc, None, b"a{b:url(../img/a.png)}")

        assert select_strategy(ctx).apply(ctx) == b"a{b:url(../img/a.png)}"

    def test_absolute_stylesheet_gets_absolute_urls(self) -> None:
        ctx = _context("/srv/site/css/a.css", Asset(), None, b"a{b:url(../img/x.png)}")

        assert select_strategy(ctx).apply(ctx) == b"a{b:url(/srv/site/img/x.png)}"
