from __future__ import annotations

from lxml import etree as LXML_ET

from .dom import EpubElement, parse_xml, xml_parser
from .errors import TocCorrupt, TocMissing
from .models import TocEntry
from .package import PackageDocument
from .xpath import XPathAccessor


def _toc_path(package: PackageDocument) -> str:
    spine = package.first("//opf:spine")
    toc_id = spine.attr("toc") if spine is not None else ""
    if not toc_id:
        raise TocMissing(f"No toc declared in the spine of {package.path}")
    item = package.first("//opf:manifest/opf:item[@id=$item_id]", item_id=toc_id)
    href = item.attr("opf:href") if item is not None else ""
    if not href:
        raise TocMissing(f"Manifest of {package.path} has no item {toc_id!r}")
    return package.resolve_relative_path(href)


def _toc_entry(package: PackageDocument, xpath: XPathAccessor, node: EpubElement) -> TocEntry:
    label = xpath.first("ncx:navLabel/ncx:text", node)
    content = xpath.first("ncx:content", node)
    src = content.attr("src") if content is not None else ""
    info = package.get_file_info(package.resolve_relative_path(src))
    return TocEntry(
        title=label.value if label is not None else "",
        src=src,
        id=info.id,
        mime=info.mime,
        exists=info.exists,
        path=info.path,
    )


def read_toc(package: PackageDocument) -> list[TocEntry]:
    """Read the NCX table of contents: top-level nav points and their direct children.

    Nav points nested deeper than one level are not returned.
    """
    toc_path = _toc_path(package)
    if not package.archive.exists(toc_path):
        raise TocMissing(f"Unable to find {toc_path}")
    try:
        root = parse_xml(package.archive.read(toc_path), xml_parser(package.namespaces))
    except LXML_ET.XMLSyntaxError as exc:
        raise TocCorrupt(f"Invalid table of contents {toc_path}: {exc}") from exc
    xpath = XPathAccessor(root, package.namespaces)

    contents: list[TocEntry] = []
    for node in xpath.query("//ncx:ncx/ncx:navMap/ncx:navPoint"):
        contents.append(_toc_entry(package, xpath, node))
        for inside in xpath.query("ncx:navPoint", node):
            contents.append(_toc_entry(package, xpath, inside))
    return contents
