from __future__ import annotations

import re
from typing import Mapping, Optional, Union

from lxml import etree as LXML_ET

from .errors import InvalidState, UnknownNamespacePrefix
from .namespaces import NAMESPACES


class _Delete:
    def __repr__(self) -> str:
        return "DELETE"


DELETE = _Delete()

# XML 1.0 Char production; lxml refuses anything outside of it.
_XML_INCOMPATIBLE_RE = re.compile("[^\u0009\u000a\u000d -\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_safe(value: object) -> str:
    """Make a value embeddable as XML text or attribute content.

    Markup characters (``&``, ``<``, quotes) are left alone: lxml escapes them
    once on serialization and hands them back verbatim on read.
    """
    return _XML_INCOMPATIBLE_RE.sub("", str(value))


def split_name(name: str) -> tuple[str, str]:
    prefix, sep, local = name.partition(":")
    if not sep:
        return "", name
    return prefix, local


class EpubElement(LXML_ET.ElementBase):
    """Element with attribute and child helpers that understand ``prefix:local`` names."""

    namespaces: Mapping[str, str] = NAMESPACES

    def namespace_uri(self, prefix: str) -> str:
        if not prefix:
            return ""
        try:
            return self.namespaces[prefix]
        except KeyError as exc:
            raise UnknownNamespacePrefix(f"Unknown namespace prefix: {prefix}") from exc

    def _attribute_key(self, name: str) -> str:
        prefix, local = split_name(name)
        nsuri = self.namespace_uri(prefix)
        if nsuri:
            own = LXML_ET.QName(self).namespace
            if own is None:
                if self.nsmap.get(None) == nsuri:
                    nsuri = ""
            elif own == nsuri:
                nsuri = ""
        return f"{{{nsuri}}}{local}" if nsuri else local

    def attr(self, name: str, value: Union[str, _Delete, None] = None) -> str:
        """Get, set or (with ``DELETE``) remove an attribute.

        Attributes in the element's own namespace are stored unprefixed.
        """
        key = self._attribute_key(name)
        if value is None:
            return self.get(key) or ""
        if value is DELETE:
            self.attrib.pop(key, None)
            return ""
        text = xml_safe(value)
        self.set(key, text)
        return text

    def new_child(self, name: str, value: str = "") -> "EpubElement":
        """Append a ``prefix:local`` child; one in the default namespace is written unprefixed."""
        prefix, local = split_name(name)
        nsuri = self.namespace_uri(prefix)
        tag = f"{{{nsuri}}}{local}" if nsuri else local
        scope = self.nsmap
        # lxml would pick a prefixed declaration of the default namespace when one is in scope
        if nsuri and scope.get(None) == nsuri and any(p is not None and uri == nsuri for p, uri in scope.items()):
            child = LXML_ET.SubElement(self, tag, nsmap={None: nsuri})
        else:
            child = LXML_ET.SubElement(self, tag)
        if value:
            child.text = xml_safe(value)
        return child

    @property
    def value(self) -> str:
        return "".join(self.itertext())

    @value.setter
    def value(self, text: str) -> None:
        for child in list(self):
            self.remove(child)
        self.text = xml_safe(text) if text else None

    def delete(self) -> None:
        parent = self.getparent()
        if parent is None:
            raise InvalidState(f"Cannot delete <{LXML_ET.QName(self).localname}> without a parent")
        parent.remove(self)


def element_class(namespaces: Optional[Mapping[str, str]] = None) -> type[EpubElement]:
    if namespaces is None:
        return EpubElement
    return type("EpubElement", (EpubElement,), {"namespaces": dict(namespaces)})


def xml_parser(namespaces: Optional[Mapping[str, str]] = None) -> LXML_ET.XMLParser:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)
    parser.set_element_class_lookup(LXML_ET.ElementDefaultClassLookup(element=element_class(namespaces)))
    return parser


def parse_xml(raw: bytes, parser: LXML_ET.XMLParser) -> EpubElement:
    """Parse bytes into an ``EpubElement`` tree; raises ``lxml.etree.XMLSyntaxError``."""
    return LXML_ET.fromstring(raw, parser=parser)
