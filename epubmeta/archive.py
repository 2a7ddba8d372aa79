from __future__ import annotations

import logging
import posixpath
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Protocol, Union

from .errors import ArchiveUnreadable, FileNotFound, InvalidState

logger = logging.getLogger("epubmeta.archive")

MIMETYPE_MEMBER = "mimetype"


class Archive(Protocol):
    def names(self) -> list[str]: ...

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> bytes: ...

    def replace(self, path: str, data: Optional[bytes]) -> None: ...

    def add(self, path: str, data: bytes) -> None: ...

    def flush(self, target: Optional[Union[str, Path]] = None) -> Path: ...

    def close(self) -> None: ...


def canonical_member(name: str) -> str:
    normalized = posixpath.normpath((name or "").replace("\\", "/")).lstrip("/")
    while normalized.startswith("../"):
        normalized = normalized[3:]
    return "" if normalized in {"", ".", ".."} else normalized


def _member_index(zf: zipfile.ZipFile) -> dict[str, zipfile.ZipInfo]:
    mapping: dict[str, zipfile.ZipInfo] = {}
    for info in zf.infolist():
        canonical = canonical_member(info.filename)
        if canonical and canonical not in mapping:
            mapping[canonical] = info
    return mapping


def _clone_zip_info(info: zipfile.ZipInfo, *, filename: Optional[str] = None) -> zipfile.ZipInfo:
    cloned = zipfile.ZipInfo(filename or info.filename, date_time=info.date_time)
    cloned.compress_type = info.compress_type
    cloned.comment = info.comment
    cloned.extra = info.extra
    cloned.internal_attr = info.internal_attr
    cloned.external_attr = info.external_attr
    cloned.create_system = info.create_system
    return cloned


def _copy_member_stream(
    src: zipfile.ZipFile,
    dst: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    *,
    chunk_size: int = 1024 * 1024,
) -> None:
    if canonical_member(info.filename) == MIMETYPE_MEMBER:
        dst.writestr(MIMETYPE_MEMBER, src.read(info.filename), compress_type=zipfile.ZIP_STORED)
        return
    zinfo = _clone_zip_info(info)
    with src.open(info.filename, "r") as src_stream:
        with dst.open(zinfo, "w") as dst_stream:
            shutil.copyfileobj(src_stream, dst_stream, chunk_size)


class ZipArchive:
    """EPUB zip file with staged writes.

    ``exists`` and ``read`` always see the archive as it is on disk. ``replace``
    and ``add`` only record changes; ``flush`` writes them out and ``close``
    throws away whatever was not flushed.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._zip: Optional[zipfile.ZipFile] = None
        self._index: dict[str, zipfile.ZipInfo] = {}
        self._pending: dict[str, Optional[bytes]] = {}
        self._open()

    def _open(self) -> None:
        try:
            self._zip = zipfile.ZipFile(self.path, "r")
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveUnreadable(f"Failed to read epub file: {self.path}: {exc}") from exc
        self._index = _member_index(self._zip)

    def _require_open(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise InvalidState(f"Archive already closed: {self.path}")
        return self._zip

    def __enter__(self) -> "ZipArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def pending(self) -> dict[str, Optional[bytes]]:
        return dict(self._pending)

    def names(self) -> list[str]:
        self._require_open()
        return list(self._index)

    def exists(self, path: str) -> bool:
        self._require_open()
        return canonical_member(path) in self._index

    def read(self, path: str) -> bytes:
        zf = self._require_open()
        info = self._index.get(canonical_member(path))
        if info is None:
            raise FileNotFound(f"No such file in {self.path.name}: {path}")
        return zf.read(info.filename)

    def replace(self, path: str, data: Optional[bytes]) -> None:
        """Stage new content for ``path``; ``None`` stages its removal."""
        self._require_open()
        canonical = canonical_member(path)
        if not canonical:
            raise FileNotFound(f"Invalid archive path: {path!r}")
        logger.debug("staged %s for %s", "removal" if data is None else "replacement", canonical)
        self._pending[canonical] = data

    def add(self, path: str, data: bytes) -> None:
        self.replace(path, data)

    def cancel(self, path: Optional[str] = None) -> None:
        if path is None:
            self._pending.clear()
            return
        self._pending.pop(canonical_member(path), None)

    def flush(self, target: Optional[Union[str, Path]] = None) -> Path:
        """Write the archive with all staged changes to ``target`` (default: in place).

        The result is built in a temporary file next to the target and moved over
        it, so the target is either fully rewritten or left untouched.
        """
        src = self._require_open()
        destination = Path(target) if target is not None else self.path
        in_place = destination.resolve() == self.path.resolve()

        tmp_handle = tempfile.NamedTemporaryFile(
            prefix=f"{destination.stem}.",
            suffix=".epub",
            dir=str(destination.parent),
            delete=False,
        )
        tmp_path = Path(tmp_handle.name)
        tmp_handle.close()

        written: set[str] = set()
        try:
            with zipfile.ZipFile(tmp_path, "w") as dst:
                # EPUB readers expect mimetype first and uncompressed.
                if MIMETYPE_MEMBER in self._pending:
                    content = self._pending[MIMETYPE_MEMBER]
                    if content is not None:
                        dst.writestr(MIMETYPE_MEMBER, content, compress_type=zipfile.ZIP_STORED)
                    written.add(MIMETYPE_MEMBER)
                elif MIMETYPE_MEMBER in self._index:
                    _copy_member_stream(src, dst, self._index[MIMETYPE_MEMBER])
                    written.add(MIMETYPE_MEMBER)

                for canonical, info in self._index.items():
                    if canonical in written:
                        continue
                    written.add(canonical)
                    if canonical in self._pending:
                        content = self._pending[canonical]
                        if content is not None:
                            dst.writestr(_clone_zip_info(info), content)
                        continue
                    _copy_member_stream(src, dst, info)

                for canonical, content in self._pending.items():
                    if canonical in written or content is None:
                        continue
                    zinfo = zipfile.ZipInfo(canonical)
                    zinfo.compress_type = zipfile.ZIP_DEFLATED
                    dst.writestr(zinfo, content)

            if in_place:
                src.close()
                self._zip = None
            tmp_path.replace(destination)
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            if in_place and self._zip is None:
                self._open()

        logger.info("wrote %s (%d staged change(s))", destination, len(self._pending))
        if in_place:
            self._pending.clear()
        return destination

    def close(self) -> None:
        if self._pending:
            logger.debug("discarding %d staged change(s) for %s", len(self._pending), self.path)
        self._pending.clear()
        if self._zip is not None:
            self._zip.close()
            self._zip = None
