from __future__ import annotations

import logging
import posixpath
from typing import Mapping, Optional

from lxml import etree as LXML_ET

from .archive import Archive
from .dom import EpubElement, parse_xml, xml_parser
from .errors import FileNotFound, InvalidIdentifierUsage, PackageCorrupt, PackageMissing
from .models import ManifestItem, missing_manifest_item
from .namespaces import namespace_table
from .xpath import XPathAccessor

logger = logging.getLogger("epubmeta.package")


def combine_paths(base: str, relative: str) -> str:
    """Join two path parts, collapsing ``.`` and ``..`` segments.

    >>> combine_paths("OPS/text", "../images/cover.png")
    'OPS/images/cover.png'
    """
    if relative.startswith("/"):
        raise InvalidIdentifierUsage(f"Second path part must not start with /: {relative}")
    absolute = base.startswith("/")
    parts: list[str] = []
    for part in f"{base}/{relative}".split("/"):
        if part in {"", "."}:
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    path = "/".join(parts)
    return f"/{path}" if absolute else path


class PackageDocument:
    """The parsed OPF package document of one EPUB.

    Any change that adds, removes or reorders nodes must be followed by
    ``reparse()`` before the next read. ``reparse()`` also drops the manifest
    index, which is rebuilt on demand.
    """

    def __init__(
        self,
        archive: Archive,
        path: str,
        *,
        namespaces: Optional[Mapping[str, str]] = None,
        pretty_print: bool = True,
    ) -> None:
        self.archive = archive
        self.path = path
        self.namespaces = namespace_table(namespaces)
        self.pretty_print = pretty_print
        self._parser = xml_parser(self.namespaces)
        self._manifest: Optional[dict[str, ManifestItem]] = None

        if not archive.exists(path):
            raise PackageMissing(f"Unable to find {path}")
        try:
            raw = archive.read(path)
        except FileNotFound as exc:
            raise PackageMissing(f"Failed to access epub metadata: {exc}") from exc
        if not raw:
            raise PackageMissing(f"Failed to access epub metadata: {path} is empty")
        try:
            self.root: EpubElement = parse_xml(raw, self._parser)
        except LXML_ET.XMLSyntaxError as exc:
            raise PackageCorrupt(f"Invalid package document {path}: {exc}") from exc
        self.xpath = XPathAccessor(self.root, self.namespaces)

    def query(self, expression: str, context: Optional[EpubElement] = None, **variables: object) -> list:
        return self.xpath.query(expression, context, **variables)

    def first(self, expression: str, context: Optional[EpubElement] = None, **variables: object):
        return self.xpath.first(expression, context, **variables)

    def serialize(self) -> bytes:
        return LXML_ET.tostring(
            self.root.getroottree(),
            encoding="utf-8",
            xml_declaration=True,
            pretty_print=self.pretty_print,
        )

    def reparse(self) -> None:
        self.root = parse_xml(self.serialize(), self._parser)
        self.xpath = XPathAccessor(self.root, self.namespaces)
        self.invalidate_manifest()
        logger.debug("reparsed %s", self.path)

    def metadata_node(self) -> EpubElement:
        node = self.first("//opf:metadata")
        if node is None:
            raise PackageCorrupt(f"No metadata element in {self.path}")
        return node

    def manifest_node(self) -> EpubElement:
        node = self.first("//opf:manifest")
        if node is None:
            raise PackageCorrupt(f"No manifest element in {self.path}")
        return node

    def resolve_relative_path(self, href: str, context: Optional[str] = None) -> str:
        """Map an href from the package document to a path inside the archive.

        The href is relative to the directory holding the package document;
        ``#fragment`` suffixes are dropped.
        """
        target = (href or "").split("#", 1)[0].replace("\\", "/").lstrip("/")
        path = combine_paths(posixpath.dirname(self.path), target)
        if context:
            path = combine_paths(posixpath.dirname(path), context)
        return path

    def invalidate_manifest(self) -> None:
        self._manifest = None

    def _read_manifest(self) -> dict[str, ManifestItem]:
        manifest: dict[str, ManifestItem] = {}
        for node in self.query("//opf:manifest/opf:item"):
            href = node.attr("opf:href")
            if not href:
                continue
            path = self.resolve_relative_path(href)
            manifest[path] = ManifestItem(
                id=node.attr("id"),
                mime=node.attr("opf:media-type"),
                exists=self.archive.exists(path),
                path=path,
            )
        return manifest

    def manifest(self) -> dict[str, ManifestItem]:
        if self._manifest is None:
            self._manifest = self._read_manifest()
        return dict(self._manifest)

    def get_file_info(self, path: str) -> ManifestItem:
        item = self.manifest().get(path)
        if item is None:
            return missing_manifest_item(path)
        return item
