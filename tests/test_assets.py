"""Tests for the Asset descriptor, existence checks and materialize."""

from __future__ import annotations

from pathlib import Path

import pytest

from critical_prep.assets import Asset, check_exists, materialize
from critical_prep.config import LoadOptions
from critical_prep.errors import AssetNotFoundError


class TestAsset:
    """Test the Asset dataclass."""

    def test_empty_asset_is_null(self) -> None:
        assert Asset().is_null()
        assert not Asset(contents=b"").is_null()

    def test_relocate_records_history(self) -> None:
        asset = Asset(contents=b"", path="/abs/a.css")
        asset.relocate("css/a.css")

        assert asset.path == "css/a.css"
        assert asset.history == ["/abs/a.css", "css/a.css"]

    def test_cleanup_without_tree_is_noop(self) -> None:
        Asset().cleanup()


class TestCheckExists:
    """Test check_exists."""

    def test_asset_with_contents_exists(self, options: LoadOptions) -> None:
        assert check_exists(Asset(contents=b"a{}"), options)
        assert not check_exists(Asset(), options)

    def test_local_file(self, tmp_path: Path, options: LoadOptions) -> None:
        css = tmp_path / "style.css"
        css.write_text("a{}")

        assert check_exists(str(css), options)
        assert not check_exists(str(tmp_path / "other.css"), options)

    def test_local_file_with_query(self, tmp_path: Path, options: LoadOptions) -> None:
        """A trailing query string is ignored for local files."""
        (tmp_path / "style.css").write_text("a{}")

        assert check_exists(str(tmp_path / "style.css?v=2"), options)

    def test_invalid_path_does_not_raise(self, options: LoadOptions) -> None:
        assert not check_exists("bad\x00path.css", options)

    def test_empty_reference(self, options: LoadOptions) -> None:
        assert not check_exists("", options)

    def test_remote_head_ok(self, session, options: LoadOptions) -> None:
        session.add("https://x.test/a.css", "a{}")

        assert check_exists("https://x.test/a.css", options)
        assert session.calls[0][0] == "HEAD"

    def test_remote_not_found(self, options: LoadOptions) -> None:
        assert not check_exists("https://x.test/missing.css", options)

    def test_remote_transport_error(self, session, options: LoadOptions) -> None:
        session.broken.add("https://down.test/a.css")

        assert not check_exists("https://down.test/a.css", options)


class TestMaterialize:
    """Test materialize."""

    def test_html_source(self, options: LoadOptions) -> None:
        asset = materialize(html="<html></html>", options=options)

        assert asset.contents == b"<html></html>"
        assert asset.path == ""
        assert asset.virtual_path == ""
        assert asset.remote is False

    def test_html_source_uses_rebase_target(self) -> None:
        opts = LoadOptions(rebase={"from": "/css/a.css", "to": "/pages/index.html"})
        asset = materialize(html="<html></html>", options=opts)

        assert asset.virtual_path == "/pages/index.html"

    def test_asset_passes_through(self, options: LoadOptions) -> None:
        asset = Asset(contents=b"x")
        assert materialize(filepath=asset, options=options) is asset

    def test_remote(self, session, options: LoadOptions) -> None:
        session.add("https://x.test/blog/post.html", "<html></html>")

        asset = materialize(filepath="https://x.test/blog/post.html", options=options)

        assert asset.remote is True
        assert asset.contents == b"<html></html>"
        assert asset.url == "https://x.test/blog/post.html"
        assert asset.url_obj is not None
        assert asset.virtual_path == "/blog/post.html"

    def test_local(self, tmp_path: Path, options: LoadOptions) -> None:
        page = tmp_path / "index.html"
        page.write_bytes(b"<html></html>")

        asset = materialize(filepath=str(page), options=options)

        assert asset.contents == b"<html></html>"
        assert asset.path == str(page)
        assert asset.virtual_path == str(page)
        assert asset.history == [str(page)]

    def test_local_with_query(self, tmp_path: Path, options: LoadOptions) -> None:
        (tmp_path / "a.css").write_text("a{}")

        asset = materialize(filepath=str(tmp_path / "a.css?v=1"), options=options)

        assert asset.contents == b"a{}"

    def test_missing(self, tmp_path: Path, options: LoadOptions) -> None:
        with pytest.raises(AssetNotFoundError) as excinfo:
            materialize(filepath=str(tmp_path / "nope.html"), options=options)
        assert excinfo.value.ref == str(tmp_path / "nope.html")
