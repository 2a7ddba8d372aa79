from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .book import EPub
from .errors import TocCorrupt, TocMissing
from .models import manifest_item_to_dict, toc_entry_to_dict

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@lru_cache(maxsize=1)
def _template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(
            enabled_extensions=("xml", "xhtml", "html"),
            default_for_string=False,
        ),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def book_summary(book: EPub, *, include_toc: bool = True) -> dict:
    cover = book.get_cover_file()
    toc = []
    if include_toc:
        try:
            toc = [toc_entry_to_dict(entry) for entry in book.get_toc()]
        except (TocMissing, TocCorrupt):
            toc = []
    return {
        "file": str(book.get_epub_location()),
        "title": book.title(),
        "authors": book.authors(),
        "language": book.language(),
        "publisher": book.publisher(),
        "copyright": book.copyright(),
        "description": book.description(),
        "uuid": book.uuid(),
        "isbn": book.isbn(),
        "google": book.google(),
        "amazon": book.amazon(),
        "calibre": book.calibre(),
        "uri": book.uri(),
        "creation_date": book.creation_date(),
        "modification_date": book.modification_date(),
        "series": book.series(),
        "series_index": book.series_index(),
        "subjects": book.subjects(),
        "cover": manifest_item_to_dict(cover) if cover is not None else None,
        "toc": toc,
    }


def render_report(book: EPub) -> str:
    return _template_env().get_template("report.txt.j2").render(**book_summary(book))
