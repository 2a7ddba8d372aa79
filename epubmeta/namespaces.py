from __future__ import annotations

from typing import Mapping, Optional

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"

NAMESPACES: dict[str, str] = {
    "n": CONTAINER_NS,
    "opf": OPF_NS,
    "dc": DC_NS,
    "ncx": NCX_NS,
}


def namespace_table(namespaces: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    return dict(NAMESPACES if namespaces is None else namespaces)
