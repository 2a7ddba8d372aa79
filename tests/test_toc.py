import tempfile
import unittest
from pathlib import Path

from epubmeta.book import EPub
from epubmeta.errors import TocCorrupt, TocMissing
from epubmeta.models import TocEntry

from epub_fixtures import package_xml, write_epub


class TocTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name)

    def _open(self, **kwargs) -> EPub:
        book = EPub(write_epub(self.tmp / "book.epub", **kwargs))
        self.addCleanup(book.close)
        return book

    def test_reads_two_levels(self) -> None:
        toc = self._open().get_toc()
        self.assertEqual(
            [entry.title for entry in toc],
            ["Cover", "Act 1", "Prologue", "Scene 1", "Missing chapter"],
        )

    def test_entries_resolved_against_manifest(self) -> None:
        toc = self._open().get_toc()
        self.assertEqual(
            toc[2],
            TocEntry(
                title="Prologue",
                src="main0.xml#section_77304",
                id="main0",
                mime="application/xhtml+xml",
                exists=True,
                path="OPS/main0.xml",
            ),
        )
        self.assertEqual(toc[3].path, "OPS/text/main1.xml")
        self.assertEqual(toc[3].id, "main1")
        self.assertEqual(toc[4].id, "ghost")
        self.assertFalse(toc[4].exists)

    def test_missing_ncx_file(self) -> None:
        with self.assertRaises(TocMissing):
            self._open(ncx=None).get_toc()

    def test_spine_without_toc(self) -> None:
        opf = package_xml(spine="<spine><itemref idref=\"main0\"/></spine>")
        with self.assertRaises(TocMissing):
            self._open(opf=opf).get_toc()

    def test_spine_pointing_to_unknown_item(self) -> None:
        opf = package_xml(spine="<spine toc=\"nope\"><itemref idref=\"main0\"/></spine>")
        with self.assertRaises(TocMissing):
            self._open(opf=opf).get_toc()

    def test_corrupt_ncx(self) -> None:
        with self.assertRaises(TocCorrupt):
            self._open(ncx="<ncx><navMap>").get_toc()

    def test_empty_nav_map(self) -> None:
        ncx = "<ncx xmlns=\"http://www.daisy.org/z3986/2005/ncx/\"><navMap/></ncx>"
        self.assertEqual(self._open(ncx=ncx).get_toc(), [])


if __name__ == "__main__":
    unittest.main()
