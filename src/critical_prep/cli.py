from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import requests

from .assets import Asset, materialize
from .config import LoadOptions
from .document import load_document, load_document_from_source
from .errors import AssetNotFoundError
from .http_client import HttpClient
from .parse import get_stylesheet_hrefs
from .search import build_search_paths, resolve_reference


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--base", default=None, help="Project root of the document")
    p.add_argument(
        "--asset-path",
        dest="asset_paths",
        action="append",
        default=[],
        help="Repeatable; extra directory or URL to search for stylesheets",
    )
    p.add_argument("--rebase-from", default=None)
    p.add_argument("--rebase-to", default=None)
    p.add_argument(
        "--no-rebase",
        action="store_true",
        help="Keep url() references in stylesheets untouched",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Fail if a remote stylesheet cannot be found",
    )
    p.add_argument("--user", default=None)
    p.add_argument("--pass", dest="password", default=None)
    p.add_argument("--user-agent", default=None)
    p.add_argument("--timeout", type=int, default=45)
    p.add_argument("-v", "--verbose", action="store_true")


def _options_from_args(args: argparse.Namespace) -> LoadOptions:
    rebase: object = None
    if bool(args.no_rebase):
        rebase = False
    elif args.rebase_from or args.rebase_to:
        rebase = {"from": args.rebase_from or "", "to": args.rebase_to or ""}

    return LoadOptions(
        base=args.base,
        css=list(getattr(args, "css", None) or []) or None,
        rebase=rebase,
        asset_paths=tuple(args.asset_paths),
        strict=bool(args.strict),
        user=args.user,
        password=args.password,
        user_agent=args.user_agent,
        http=HttpClient(requests.Session(), timeout_s=int(args.timeout)),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="critical-prep")
    sub = parser.add_subparsers(dest="cmd", required=True)

    prepare_p = sub.add_parser(
        "prepare",
        help=(
            "Load a document, resolve + rebase its stylesheets and stage a "
            "temporary tree for rendering"
        ),
    )
    prepare_p.add_argument("src", help="Path or URL of the HTML document")
    prepare_p.add_argument(
        "--html",
        action="store_true",
        help="Treat SRC as a file holding raw HTML source (no path context)",
    )
    prepare_p.add_argument(
        "--css",
        action="append",
        default=None,
        help="Repeatable; stylesheet path or glob used instead of <link> tags",
    )
    prepare_p.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the combined CSS here instead of stdout",
    )
    prepare_p.add_argument(
        "--keep",
        action="store_true",
        help="Leave the temporary render tree on disk",
    )
    prepare_p.add_argument(
        "--json",
        action="store_true",
        help="Print a machine-readable summary instead of the CSS",
    )
    _add_common_args(prepare_p)

    resolve_p = sub.add_parser(
        "resolve",
        help="Show where a stylesheet reference resolves for a document",
    )
    resolve_p.add_argument("ref", help="Stylesheet reference as written in the HTML")
    resolve_p.add_argument("--document", required=True, help="Path or URL")
    resolve_p.add_argument(
        "--show-search-paths",
        action="store_true",
        help="List every candidate location that was considered",
    )
    _add_common_args(resolve_p)

    args = parser.parse_args(argv)
    _setup_logging(bool(args.verbose))
    options = _options_from_args(args)

    if args.cmd == "prepare":
        try:
            if bool(args.html):
                source = Path(args.src).read_text(encoding="utf-8")
                document = load_document_from_source(source, options)
            else:
                document = load_document(args.src, options)
        except (OSError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 2

        try:
            tree = document.tree
            if bool(args.json):
                summary = {
                    "path": document.path,
                    "url": document.url,
                    "remote": document.remote,
                    "virtual_path": document.virtual_path,
                    "cwd": document.cwd,
                    "stylesheets": document.stylesheets,
                    "css_chars": len(document.css),
                    "render_url": tree.file_uri if tree else None,
                    "warnings": list(options.diagnostics.messages),
                }
                print(json.dumps(summary, indent=2))
            elif args.out is not None:
                args.out.parent.mkdir(parents=True, exist_ok=True)
                args.out.write_text(document.css, encoding="utf-8", newline="\n")
                print(
                    "prepare: "
                    f"stylesheets={len(document.stylesheets)} "
                    f"css_chars={len(document.css)} out={args.out}"
                )
            else:
                sys.stdout.write(document.css)

            if tree is not None and bool(args.keep):
                print(f"prepare: render_url={tree.file_uri}", file=sys.stderr)
        finally:
            if not bool(args.keep):
                document.cleanup()
        return 0

    if args.cmd == "resolve":
        try:
            doc: Asset = materialize(filepath=args.document, options=options)
            doc.stylesheets = get_stylesheet_hrefs(doc)
            search_paths = build_search_paths(doc, args.ref, options)
            if bool(args.show_search_paths):
                for p in search_paths:
                    print(f"- {p}", file=sys.stderr)
            found = resolve_reference(args.ref, search_paths, options)
        except AssetNotFoundError as e:
            print(str(e), file=sys.stderr)
            return 3
        except (OSError, requests.RequestException) as e:
            print(str(e), file=sys.stderr)
            return 2
        print(str(found))
        return 0

    return 2
