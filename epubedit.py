#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from epubmeta.book import EPub
from epubmeta.config import Settings
from epubmeta.errors import EpubError
from epubmeta.report import book_summary, render_report

FIELD_OPTIONS = (
    ("title", "title"),
    ("language", "language"),
    ("publisher", "publisher"),
    ("copyright", "copyright"),
    ("description", "description"),
    ("isbn", "isbn"),
    ("series", "series"),
    ("series_index", "series_index"),
)


def split_book_name(stem: str) -> tuple[str, str]:
    """Split an ``Author-Title`` style file name into (author, title)."""
    text = stem.replace("_", " ").replace(",", ", ")
    author, sep, title = text.partition("-")
    if not sep or not title.strip():
        return "", " ".join(text.split())
    return " ".join(author.split()), " ".join(title.split())


def resolve_book(name: str, settings: Settings) -> Path:
    candidate = Path(name)
    if candidate.exists():
        return candidate
    # no upper dirs when looking inside the book directory
    safe = name.replace("..", "").lstrip("/\\")
    return settings.book_dir / f"{safe}.epub"


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read and edit the metadata of EPUB files.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List the books in the book directory")

    show = sub.add_parser("show", help="Print the metadata of a book")
    show.add_argument("book", help="EPUB file path or name inside the book directory")
    show.add_argument("--json", action="store_true", help="Print JSON instead of text")

    toc = sub.add_parser("toc", help="Print the table of contents of a book")
    toc.add_argument("book", help="EPUB file path or name inside the book directory")

    edit = sub.add_parser("set", help="Change the metadata of a book")
    edit.add_argument("book", help="EPUB file path or name inside the book directory")
    for option, _ in FIELD_OPTIONS:
        edit.add_argument(f"--{option.replace('_', '-')}", dest=option, help=f"New {option.replace('_', ' ')} (empty removes it)")
    edit.add_argument("--authors", help="Comma separated author names (empty removes them)")
    edit.add_argument("--subjects", help="Comma separated subjects (empty removes them)")
    edit.add_argument("--cover", help="Image file to use as cover")
    edit.add_argument("--cover-mime", help="MIME type of the cover image")
    edit.add_argument("--clear-cover", action="store_true", help="Remove the cover")
    edit.add_argument("--kepub", action="store_true", help="Mark the cover item for Kobo readers")
    edit.add_argument("--clean-itunes", action="store_true", help="Remove iTunes metadata files")
    edit.add_argument("-o", "--output", help="Write the result to this file instead of in place")
    return parser.parse_args(argv)


def _list_books(settings: Settings) -> int:
    for path in sorted(settings.book_dir.glob("*.epub")):
        author, title = split_book_name(path.stem)
        print(f"{path.stem}\t{title}\t{author}")
    return 0


def _show(book: EPub, as_json: bool) -> int:
    if as_json:
        print(json.dumps(book_summary(book), ensure_ascii=False, indent=2))
    else:
        print(render_report(book), end="")
    return 0


def _toc(book: EPub) -> int:
    for index, entry in enumerate(book.get_toc(), start=1):
        print(f"{index}\t{entry.title}\t{entry.path}")
    return 0


def _apply(book: EPub, args: argparse.Namespace) -> None:
    for option, accessor in FIELD_OPTIONS:
        value = getattr(args, option)
        if value is not None:
            getattr(book, accessor)(value)
    if args.authors is not None:
        book.authors(args.authors)
    if args.subjects is not None:
        book.subjects(args.subjects)
    if args.clear_cover:
        book.clear_cover()
    if args.cover:
        book.set_cover_file(Path(args.cover), args.cover_mime)
    if args.kepub:
        book.update_for_kepub()
    if args.clean_itunes:
        book.clean_itunes_files()


def main(argv: list[str], settings: Optional[Settings] = None) -> int:
    args = parse_args(argv)
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "list":
        return _list_books(settings)

    book_path = resolve_book(args.book, settings)
    try:
        book = EPub(book_path, pretty_print=settings.pretty_print)
    except EpubError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "show":
            return _show(book, args.json)
        if args.command == "toc":
            return _toc(book)
        _apply(book, args)
        if args.output:
            target = book.download(Path(args.output))
            print(f"EPUB saved to: {target}")
        else:
            book.save()
            print(f"EPUB saved to: {book_path}")
        return 0
    except (EpubError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        book.close()


def _console_main() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(_console_main())
