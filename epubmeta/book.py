from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Union

from .archive import Archive, ZipArchive
from .container import resolve_package_path
from .cover import (
    COVER_POINTER_XPATH,
    GENERATED_COVER_HREF,
    GENERATED_COVER_ID,
    CoverFound,
    CoverPointerWithoutItem,
    CoverLookup,
    guess_image_media_type,
    no_cover,
    resolve_cover,
)
from .dom import xml_safe
from .errors import FileNotFound, PackageCorrupt
from .models import CoverData, ManifestItem, TocEntry
from .package import PackageDocument
from .toc import read_toc

logger = logging.getLogger("epubmeta.book")

ITUNES_MEMBERS = ("iTunesMetadata.plist", "iTunesArtwork")

AuthorsValue = Union[str, Mapping[str, str], Sequence[str]]
SubjectsValue = Union[str, Sequence[str]]


def _split_list(value: str) -> list[str]:
    if value == "":
        return []
    return [part.strip() for part in value.split(",")]


class EPub:
    """Read and edit the metadata of one EPUB file.

    Field accessors follow one convention: called without a value they read,
    called with a value they write and return what is stored afterwards. An
    empty string removes the field. Nothing reaches the file until ``save()``
    or ``download()``; ``close()`` discards all changes.
    """

    def __init__(
        self,
        file: Union[str, Path],
        *,
        archive_factory: Callable[[Path], Archive] = ZipArchive,
        namespaces: Optional[Mapping[str, str]] = None,
        pretty_print: bool = True,
    ) -> None:
        self.file = Path(file)
        self.archive = archive_factory(self.file)
        try:
            package_path = resolve_package_path(self.archive, namespaces)
            self.package = PackageDocument(
                self.archive,
                package_path,
                namespaces=namespaces,
                pretty_print=pretty_print,
            )
        except Exception:
            self.archive.close()
            raise
        self._staged: dict[str, Optional[bytes]] = {}

    def __enter__(self) -> "EPub":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_epub_location(self) -> Path:
        return self.file

    # -- generic field access ------------------------------------------------

    def getset(
        self,
        item: str,
        value: Optional[str] = None,
        att: Optional[str] = None,
        aval: Optional[str] = None,
        datt: Optional[str] = None,
    ) -> str:
        """Get or set a metadata node expected to be unique.

        ``item`` is the element name below ``opf:metadata``; ``att``/``aval``
        narrow the match; ``datt`` stores the value in that attribute instead
        of the node text. Duplicate matches are collapsed into one node on write.
        """
        xpath = f"//opf:metadata/{item}"
        if att:
            xpath += f'[@{att}="{aval}"]' if aval else f"[@{att}]"

        if value is not None:
            value = xml_safe(value)
            nodes = self.package.query(xpath)
            if len(nodes) == 1:
                node = nodes[0]
                if value == "":
                    node.delete()
                elif datt:
                    node.attr(datt, value)
                else:
                    node.value = value
            else:
                for node in nodes:
                    node.delete()
                if value:
                    node = self.package.metadata_node().new_child(item)
                    if att:
                        node.attr(att, aval or "")
                    if datt:
                        node.attr(datt, value)
                    else:
                        node.value = value
            self.package.reparse()

        node = self.package.first(xpath)
        if node is None:
            return ""
        return node.attr(datt) if datt else node.value

    def title(self, value: Optional[str] = None) -> str:
        return self.getset("dc:title", value)

    def language(self, value: Optional[str] = None) -> str:
        return self.getset("dc:language", value)

    def publisher(self, value: Optional[str] = None) -> str:
        return self.getset("dc:publisher", value)

    def copyright(self, value: Optional[str] = None) -> str:
        return self.getset("dc:rights", value)

    def description(self, value: Optional[str] = None) -> str:
        return self.getset("dc:description", value)

    def identifier(self, scheme: str, value: Optional[str] = None) -> str:
        return self.getset("dc:identifier", value, "opf:scheme", scheme)

    def isbn(self, value: Optional[str] = None) -> str:
        return self.identifier("ISBN", value)

    def uri(self, value: Optional[str] = None) -> str:
        return self.identifier("URI", value)

    def google(self, value: Optional[str] = None) -> str:
        return self.identifier("GOOGLE", value)

    def amazon(self, value: Optional[str] = None) -> str:
        return self.identifier("AMAZON", value)

    def calibre(self, value: Optional[str] = None) -> str:
        return self.identifier("calibre", value)

    def date(self, event: str, value: Optional[str] = None) -> str:
        return self.getset("dc:date", value, "opf:event", event)

    def creation_date(self, value: Optional[str] = None) -> str:
        return self.date("creation", value)

    def modification_date(self, value: Optional[str] = None) -> str:
        return self.date("modification", value)

    def series(self, value: Optional[str] = None) -> str:
        return self.getset("opf:meta", value, "name", "calibre:series", "content")

    def series_index(self, value: Optional[str] = None) -> str:
        return self.getset("opf:meta", value, "name", "calibre:series_index", "content")

    def uuid(self, value: Optional[str] = None) -> str:
        packages = self.package.query("/opf:package")
        if len(packages) != 1:
            raise PackageCorrupt("Cannot find ebook identifier")
        identifier = packages[0].attr("unique-identifier")
        return self.getset("dc:identifier", value, "id", identifier)

    # -- authors and subjects ----------------------------------------------

    def authors(self, value: Optional[AuthorsValue] = None) -> dict[str, str]:
        """Get or set the authors as an ordered ``{file-as: display name}`` mapping.

        Accepts a comma separated string, a list of names or a mapping from
        sort key to name. Reading repairs creators that lack ``opf:file-as``
        (and, for documents without any ``aut`` role, ``opf:role``).
        """
        if value is not None:
            if isinstance(value, str):
                value = _split_list(value)
            if isinstance(value, Mapping):
                pairs = list(value.items())
            else:
                pairs = [(name, name) for name in value]

            for node in self.package.query('//opf:metadata/dc:creator[@opf:role="aut"]'):
                node.delete()
            if pairs:
                parent = self.package.metadata_node()
                for file_as, name in pairs:
                    node = parent.new_child("dc:creator", name)
                    node.attr("opf:role", "aut")
                    node.attr("opf:file-as", file_as)
            self.package.reparse()

        role_fix = False
        nodes = self.package.query('//opf:metadata/dc:creator[@opf:role="aut"]')
        if not nodes:
            nodes = self.package.query("//opf:metadata/dc:creator")
            role_fix = bool(nodes)
            if role_fix:
                logger.warning("%s: creators carry no author role, marking them as authors", self.file.name)

        authors: dict[str, str] = {}
        for node in nodes:
            name = node.value
            file_as = node.attr("opf:file-as")
            if not file_as:
                file_as = name
                node.attr("opf:file-as", file_as)
            if role_fix:
                node.attr("opf:role", "aut")
            authors[file_as] = name
        return authors

    def subjects(self, value: Optional[SubjectsValue] = None) -> list[str]:
        if value is not None:
            if isinstance(value, str):
                value = _split_list(value)
            for node in self.package.query("//opf:metadata/dc:subject"):
                node.delete()
            subjects = list(value)
            if subjects:
                parent = self.package.metadata_node()
                for subject in subjects:
                    parent.new_child("dc:subject", subject)
            self.package.reparse()

        return [node.value for node in self.package.query("//opf:metadata/dc:subject")]

    # -- cover ---------------------------------------------------------------

    def resolve_cover(self) -> CoverLookup:
        return resolve_cover(self.package)

    def get_cover_file(self) -> Optional[ManifestItem]:
        lookup = self.resolve_cover()
        if not isinstance(lookup, CoverFound):
            return None
        return self.package.get_file_info(lookup.path)

    def set_cover_file(self, local_data: Union[bytes, str, Path], mime: Optional[str] = None) -> None:
        """Replace the cover with the given image (bytes or a local file path).

        The image is written into the archive on ``save()``; until then
        ``get_cover_file()`` reports it with ``exists=False``.
        """
        if isinstance(local_data, (bytes, bytearray)):
            data = bytes(local_data)
        else:
            source = Path(local_data)
            data = source.read_bytes()
            mime = mime or guess_image_media_type(source.name)
        mime = mime or "image/jpeg"

        self.clear_cover()

        pointer = self.package.metadata_node().new_child("opf:meta")
        pointer.attr("opf:name", "cover")
        pointer.attr("opf:content", GENERATED_COVER_ID)

        item = self.package.manifest_node().new_child("opf:item")
        item.attr("id", GENERATED_COVER_ID)
        item.attr("opf:href", GENERATED_COVER_HREF)
        item.attr("opf:media-type", mime)
        item.attr("opf:properties", "cover-image")

        cover_path = self.package.resolve_relative_path(GENERATED_COVER_HREF)
        self._staged[cover_path] = data
        logger.debug("staged cover image %s (%s, %d bytes)", cover_path, mime, len(data))
        self.package.reparse()

    def clear_cover(self) -> None:
        """Remove the cover pointer.

        A manifest item and image this library created are removed as well;
        a cover added by another tool keeps its manifest item and file.
        """
        lookup = self.resolve_cover()
        if not isinstance(lookup, (CoverFound, CoverPointerWithoutItem)):
            return

        for pointer in self.package.query(COVER_POINTER_XPATH):
            pointer.delete()
        if isinstance(lookup, CoverFound) and lookup.item.attr("id") == GENERATED_COVER_ID:
            lookup.item.delete()
            self._staged[lookup.path] = None
            self.package.invalidate_manifest()
        self.package.reparse()

    def update_for_kepub(self) -> None:
        lookup = self.resolve_cover()
        if isinstance(lookup, CoverFound):
            lookup.item.attr("opf:properties", "cover-image")

    def cover(self) -> CoverData:
        """Return the cover image, or a transparent GIF pixel when there is none."""
        lookup = self.resolve_cover()
        if not isinstance(lookup, CoverFound):
            return no_cover()
        data = self._staged.get(lookup.path)
        if data is None:
            data = self.archive.read(lookup.path) if self.archive.exists(lookup.path) else b""
        return CoverData(data=data, mime=lookup.item.attr("opf:media-type"), found=lookup.path)

    # -- manifest, toc and files ---------------------------------------------

    def manifest(self) -> dict[str, ManifestItem]:
        return self.package.manifest()

    def get_file_info(self, path: str) -> ManifestItem:
        return self.package.get_file_info(path)

    def get_toc(self) -> list[TocEntry]:
        return read_toc(self.package)

    def get_file(self, path: str) -> bytes:
        if not self.archive.exists(path):
            raise FileNotFound(f"No such file: {path}")
        return self.archive.read(path)

    def clean_itunes_files(self) -> list[str]:
        removed = [name for name in self.archive.names() if name in ITUNES_MEMBERS]
        for name in removed:
            self._staged[name] = None
        return removed

    # -- persistence ---------------------------------------------------------

    def _stage_changes(self) -> None:
        self.archive.replace(self.package.path, self.package.serialize())
        for path, data in self._staged.items():
            # removal also drops bytes queued by an earlier download()
            if data is None:
                self.archive.replace(path, None)
            elif self.archive.exists(path):
                self.archive.replace(path, data)
            else:
                self.archive.add(path, data)
        self._staged.clear()

    def save(self) -> None:
        """Write all changes back into the EPUB file and close it."""
        self._stage_changes()
        self.archive.flush()
        logger.info("saved %s", self.file)
        self.archive.close()

    def download(self, target: Union[str, Path]) -> Path:
        """Write the changed EPUB to ``target``, leaving the original file untouched."""
        self._stage_changes()
        return self.archive.flush(target)

    def close(self) -> None:
        self._staged.clear()
        self.archive.close()
