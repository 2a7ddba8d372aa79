import unittest

from lxml import etree

from epubmeta.dom import DELETE, EpubElement, parse_xml, split_name, xml_parser, xml_safe
from epubmeta.errors import InvalidState, UnknownNamespacePrefix
from epubmeta.namespaces import DC_NS, OPF_NS
from epubmeta.xpath import XPathAccessor

PACKAGE = (
    b"<package xmlns=\"http://www.idpf.org/2007/opf\">"
    b"<metadata xmlns:dc=\"http://purl.org/dc/elements/1.1/\" xmlns:opf=\"http://www.idpf.org/2007/opf\">"
    b"<dc:creator opf:role=\"aut\">William Shakespeare</dc:creator>"
    b"<meta name=\"cover\" content=\"book-cover\"/>"
    b"</metadata>"
    b"<manifest/>"
    b"</package>"
)


class EpubElementTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = parse_xml(PACKAGE, xml_parser())
        self.xpath = XPathAccessor(self.root)

    def test_parsed_nodes_use_epub_element_class(self) -> None:
        creator = self.xpath.first("//dc:creator")
        self.assertIsInstance(self.root, EpubElement)
        self.assertIsInstance(creator, EpubElement)

    def test_split_name(self) -> None:
        self.assertEqual(split_name("dc:title"), ("dc", "title"))
        self.assertEqual(split_name("full-path"), ("", "full-path"))

    def test_attr_reads_foreign_namespace_attribute(self) -> None:
        creator = self.xpath.first("//dc:creator")
        self.assertEqual(creator.attr("opf:role"), "aut")
        self.assertEqual(creator.attr("opf:file-as"), "")

    def test_attr_sets_foreign_namespace_attribute_with_namespace(self) -> None:
        creator = self.xpath.first("//dc:creator")
        creator.attr("opf:file-as", "Shakespeare, William")
        self.assertEqual(creator.get(f"{{{OPF_NS}}}file-as"), "Shakespeare, William")
        self.assertIn(b'opf:file-as="Shakespeare, William"', etree.tostring(self.root))

    def test_attr_in_own_namespace_is_written_unprefixed(self) -> None:
        meta = self.xpath.first("//opf:meta")
        self.assertEqual(meta.attr("opf:name"), "cover")
        meta.attr("opf:content", "other-cover")
        self.assertEqual(meta.get("content"), "other-cover")
        self.assertIsNone(meta.get(f"{{{OPF_NS}}}content"))

    def test_attr_delete_sentinel_removes_attribute(self) -> None:
        creator = self.xpath.first("//dc:creator")
        creator.attr("opf:role", DELETE)
        self.assertEqual(creator.attr("opf:role"), "")
        self.assertNotIn(b"role", etree.tostring(self.root))
        # deleting a missing attribute is harmless
        creator.attr("opf:role", DELETE)

    def test_unknown_prefix_raises(self) -> None:
        creator = self.xpath.first("//dc:creator")
        with self.assertRaises(UnknownNamespacePrefix):
            creator.attr("calibre:series")

    def test_new_child_resolves_prefix(self) -> None:
        metadata = self.xpath.first("//opf:metadata")
        child = metadata.new_child("dc:subject", "Drama")
        self.assertEqual(child.tag, f"{{{DC_NS}}}subject")
        self.assertEqual(child.value, "Drama")
        self.assertIsInstance(child, EpubElement)
        self.assertEqual(len(self.xpath.query("//dc:subject")), 1)

    def test_new_child_in_default_namespace_has_no_prefix(self) -> None:
        root = parse_xml(b"<package xmlns=\"http://www.idpf.org/2007/opf\"><manifest/></package>", xml_parser())
        manifest = XPathAccessor(root).first("//opf:manifest")
        item = manifest.new_child("opf:item")
        item.attr("id", "x")
        serialized = etree.tostring(root)
        self.assertIn(b'<item id="x"/>', serialized)
        self.assertEqual(serialized.count(b"xmlns"), 1)

    def test_new_child_prefers_default_namespace_over_prefix(self) -> None:
        metadata = self.xpath.first("//opf:metadata")
        meta = metadata.new_child("opf:meta")
        meta.attr("opf:name", "calibre:series")
        meta.attr("opf:content", "Plays")
        self.assertIsNone(meta.prefix)
        serialized = etree.tostring(self.root)
        self.assertNotIn(b"<opf:meta", serialized)

        reparsed = parse_xml(serialized, xml_parser())
        found = XPathAccessor(reparsed).first('//opf:metadata/opf:meta[@name="calibre:series"]')
        self.assertEqual(found.attr("opf:content"), "Plays")

        # prefixed namespaces other than the default keep their prefix
        creator = metadata.new_child("dc:creator", "Jane")
        self.assertEqual(creator.prefix, "dc")

    def test_value_setter_replaces_content(self) -> None:
        creator = self.xpath.first("//dc:creator")
        creator.value = "John & Jane"
        self.assertEqual(creator.value, "John & Jane")
        self.assertIn(b"John &amp; Jane", etree.tostring(self.root))

    def test_delete_detaches_node(self) -> None:
        self.xpath.first("//dc:creator").delete()
        self.assertEqual(self.xpath.query("//dc:creator"), [])

    def test_delete_without_parent_raises(self) -> None:
        with self.assertRaises(InvalidState):
            self.root.delete()

    def test_xml_safe_drops_control_characters(self) -> None:
        self.assertEqual(xml_safe("Foo\x00Bar\x0b&amp;"), "FooBar&amp;")
        self.assertEqual(xml_safe("tab\tnew\nline"), "tab\tnew\nline")


class XPathAccessorTests(unittest.TestCase):
    def test_query_returns_document_order(self) -> None:
        root = parse_xml(
            b"<package xmlns=\"http://www.idpf.org/2007/opf\" xmlns:dc=\"http://purl.org/dc/elements/1.1/\">"
            b"<metadata><dc:subject>A</dc:subject><dc:subject>B</dc:subject></metadata></package>",
            xml_parser(),
        )
        xpath = XPathAccessor(root)
        self.assertEqual([node.value for node in xpath.query("//opf:metadata/dc:subject")], ["A", "B"])
        self.assertEqual(xpath.query("//opf:manifest"), [])
        self.assertIsNone(xpath.first("//opf:manifest"))

    def test_query_supports_context_and_variables(self) -> None:
        root = parse_xml(
            b"<ncx xmlns=\"http://www.daisy.org/z3986/2005/ncx/\"><navMap>"
            b"<navPoint id=\"a\"><navPoint id=\"b\"/></navPoint></navMap></ncx>",
            xml_parser(),
        )
        xpath = XPathAccessor(root)
        outer = xpath.first("//ncx:navPoint[@id=$point]", point="a")
        self.assertEqual([node.get("id") for node in xpath.query("ncx:navPoint", outer)], ["b"])

    def test_injected_namespace_table(self) -> None:
        namespaces = {"x": "urn:example"}
        root = parse_xml(b"<r xmlns=\"urn:example\"><a/></r>", xml_parser(namespaces))
        xpath = XPathAccessor(root, namespaces)
        self.assertEqual(len(xpath.query("//x:a")), 1)
        child = root.new_child("x:b")
        self.assertEqual(child.tag, "{urn:example}b")
        with self.assertRaises(UnknownNamespacePrefix):
            root.new_child("dc:title")


if __name__ == "__main__":
    unittest.main()
