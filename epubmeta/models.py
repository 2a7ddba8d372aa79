from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ManifestItem:
    id: str
    mime: str
    exists: bool
    path: str


@dataclass
class TocEntry:
    title: str
    src: str
    id: str
    mime: str
    exists: bool
    path: str


@dataclass
class CoverData:
    data: bytes
    mime: str
    found: Optional[str] = None


def missing_manifest_item(path: str) -> ManifestItem:
    return ManifestItem(id="", mime="", exists=False, path=path)


def manifest_item_to_dict(item: ManifestItem) -> dict:
    return {
        "id": item.id,
        "mime": item.mime,
        "exists": item.exists,
        "path": item.path,
    }


def toc_entry_to_dict(entry: TocEntry) -> dict:
    return {
        "title": entry.title,
        "src": entry.src,
        "id": entry.id,
        "mime": entry.mime,
        "exists": entry.exists,
        "path": entry.path,
    }
