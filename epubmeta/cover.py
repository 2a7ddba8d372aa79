from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .dom import EpubElement
from .models import CoverData
from .package import PackageDocument

GENERATED_COVER_ID = "generated-cover"
GENERATED_COVER_HREF = "generated-cover.img"
NO_COVER_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAEALAAAAAABAAEAAAIBTAA7")
NO_COVER_MIME = "image/gif"

COVER_POINTER_XPATH = '//opf:metadata/opf:meta[@name="cover"]'
MANIFEST_ITEM_XPATH = "//opf:manifest/opf:item[@id=$item_id]"


@dataclass
class NoCoverPointer:
    pass


@dataclass
class CoverPointerWithoutItem:
    item_id: str


@dataclass
class CoverFound:
    pointer: EpubElement
    item: EpubElement
    path: str


CoverLookup = Union[NoCoverPointer, CoverPointerWithoutItem, CoverFound]


def resolve_cover(package: PackageDocument) -> CoverLookup:
    pointer = package.first(COVER_POINTER_XPATH)
    if pointer is None:
        return NoCoverPointer()
    item_id = pointer.attr("opf:content")
    if not item_id:
        return NoCoverPointer()
    item = package.first(MANIFEST_ITEM_XPATH, item_id=item_id)
    if item is None:
        return CoverPointerWithoutItem(item_id=item_id)
    return CoverFound(pointer=pointer, item=item, path=package.resolve_relative_path(item.attr("opf:href")))


def no_cover() -> CoverData:
    return CoverData(data=NO_COVER_GIF, mime=NO_COVER_MIME, found=None)


def guess_image_media_type(name: str) -> str:
    suffix = Path(name).suffix.lower()
    return {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
        ".svg": "image/svg+xml",
    }.get(suffix, "image/jpeg")
