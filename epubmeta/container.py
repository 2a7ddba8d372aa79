from __future__ import annotations

from typing import Mapping, Optional

from lxml import etree as LXML_ET

from .archive import Archive, canonical_member
from .dom import parse_xml, xml_parser
from .errors import ContainerCorrupt, ContainerMissing, FileNotFound, PackageNotDeclared
from .xpath import XPathAccessor

CONTAINER_PATH = "META-INF/container.xml"
PACKAGE_MEDIA_TYPE = "application/oebps-package+xml"


def resolve_package_path(archive: Archive, namespaces: Optional[Mapping[str, str]] = None) -> str:
    """Return the archive path of the first OEBPS package declared in the container."""
    if not archive.exists(CONTAINER_PATH):
        raise ContainerMissing(f"Unable to find {CONTAINER_PATH}")
    try:
        raw = archive.read(CONTAINER_PATH)
    except FileNotFound as exc:
        raise ContainerMissing(f"Failed to access epub container data: {exc}") from exc
    if not raw:
        raise ContainerMissing("Failed to access epub container data")

    try:
        root = parse_xml(raw, xml_parser(namespaces))
    except LXML_ET.XMLSyntaxError as exc:
        raise ContainerCorrupt(f"Invalid {CONTAINER_PATH}: {exc}") from exc

    xpath = XPathAccessor(root, namespaces)
    rootfile = xpath.first(
        "//n:rootfiles/n:rootfile[@media-type=$media_type]",
        media_type=PACKAGE_MEDIA_TYPE,
    )
    full_path = canonical_member(rootfile.attr("full-path")) if rootfile is not None else ""
    if not full_path:
        raise PackageNotDeclared(f"No {PACKAGE_MEDIA_TYPE} rootfile in {CONTAINER_PATH}")
    return full_path
