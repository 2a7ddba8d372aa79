import io
import json
import logging
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import epubedit
from epubmeta.book import EPub
from epubmeta.config import Settings

from epub_fixtures import PNG_1X1, write_epub


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.book_dir = Path(tmp.name)
        self.settings = Settings(book_dir=self.book_dir, log_level=logging.WARNING)
        self.epub_file = write_epub(self.book_dir / "Shakespeare, William-Romeo and Juliet.epub")

    def _run(self, *argv: str) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = epubedit.main(list(argv), self.settings)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_split_book_name(self) -> None:
        self.assertEqual(
            epubedit.split_book_name("Shakespeare,William-Romeo_and_Juliet"),
            ("Shakespeare, William", "Romeo and Juliet"),
        )
        self.assertEqual(epubedit.split_book_name("Untitled"), ("", "Untitled"))

    def test_resolve_book_stays_inside_book_dir(self) -> None:
        self.assertEqual(
            epubedit.resolve_book("../secret", self.settings),
            self.book_dir / "secret.epub",
        )
        self.assertEqual(epubedit.resolve_book(str(self.epub_file), self.settings), self.epub_file)

    def test_list(self) -> None:
        code, out, _ = self._run("list")
        self.assertEqual(code, 0)
        self.assertEqual(
            out,
            "Shakespeare, William-Romeo and Juliet\tRomeo and Juliet\tShakespeare, William\n",
        )

    def test_show_by_name(self) -> None:
        code, out, _ = self._run("show", "Shakespeare, William-Romeo and Juliet")
        self.assertEqual(code, 0)
        self.assertIn("Title:        Romeo and Juliet\n", out)

    def test_show_json(self) -> None:
        code, out, _ = self._run("show", str(self.epub_file), "--json")
        self.assertEqual(code, 0)
        summary = json.loads(out)
        self.assertEqual(summary["isbn"], "9780000000001")
        self.assertEqual(summary["cover"]["id"], "book-cover")

    def test_toc(self) -> None:
        code, out, _ = self._run("toc", str(self.epub_file))
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines()[2], "3\tPrologue\tOPS/main0.xml")

    def test_set_fields_in_place(self) -> None:
        cover = self.book_dir / "cover.png"
        cover.write_bytes(PNG_1X1)
        code, out, _ = self._run(
            "set",
            str(self.epub_file),
            "--title",
            "Hamlet",
            "--authors",
            "John Doe, Jane Smith",
            "--subjects",
            "",
            "--series-index",
            "3",
            "--cover",
            str(cover),
        )
        self.assertEqual(code, 0)
        self.assertEqual(out, f"EPUB saved to: {self.epub_file}\n")

        with EPub(self.epub_file) as book:
            self.assertEqual(book.title(), "Hamlet")
            self.assertEqual(list(book.authors()), ["John Doe", "Jane Smith"])
            self.assertEqual(book.subjects(), [])
            self.assertEqual(book.series_index(), "3")
            self.assertEqual(book.get_cover_file().mime, "image/png")
            self.assertTrue(book.get_cover_file().exists)

    def test_set_with_output_keeps_original(self) -> None:
        before = self.epub_file.read_bytes()
        target = self.book_dir / "out" / "copy.epub"
        target.parent.mkdir()
        code, out, _ = self._run("set", str(self.epub_file), "--clear-cover", "-o", str(target))
        self.assertEqual(code, 0)
        self.assertEqual(out, f"EPUB saved to: {target}\n")
        self.assertEqual(self.epub_file.read_bytes(), before)
        with EPub(target) as book:
            self.assertIsNone(book.get_cover_file())

    def test_clean_itunes(self) -> None:
        path = write_epub(
            self.book_dir / "itunes.epub",
            extra={"iTunesMetadata.plist": b"<plist/>", "iTunesArtwork": b"art"},
        )
        code, _, _ = self._run("set", str(path), "--clean-itunes")
        self.assertEqual(code, 0)
        with EPub(path) as book:
            self.assertFalse(book.archive.exists("iTunesMetadata.plist"))
            self.assertFalse(book.archive.exists("iTunesArtwork"))

    def test_errors_are_reported(self) -> None:
        broken = self.book_dir / "broken.epub"
        broken.write_bytes(b"not a zip")
        code, out, err = self._run("show", str(broken))
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertTrue(err.startswith("Error: Failed to read epub file"))

        code, _, err = self._run("toc", "missing-book")
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_toc_error_is_reported(self) -> None:
        path = write_epub(self.book_dir / "nontoc.epub", ncx=None)
        code, _, err = self._run("toc", str(path))
        self.assertEqual(code, 1)
        self.assertIn("Unable to find OPS/toc.ncx", err)


if __name__ == "__main__":
    unittest.main()
