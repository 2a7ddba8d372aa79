from .archive import Archive, ZipArchive
from .book import EPub
from .container import resolve_package_path
from .cover import CoverFound, CoverPointerWithoutItem, NoCoverPointer
from .dom import DELETE, EpubElement
from .errors import (
    ArchiveUnreadable,
    ContainerCorrupt,
    ContainerMissing,
    EpubError,
    FileNotFound,
    InvalidIdentifierUsage,
    InvalidState,
    PackageCorrupt,
    PackageMissing,
    PackageNotDeclared,
    TocCorrupt,
    TocMissing,
    UnknownNamespacePrefix,
)
from .models import CoverData, ManifestItem, TocEntry
from .namespaces import NAMESPACES
from .package import PackageDocument, combine_paths
from .xpath import XPathAccessor

__all__ = [
    "Archive",
    "ArchiveUnreadable",
    "ContainerCorrupt",
    "ContainerMissing",
    "CoverData",
    "CoverFound",
    "CoverPointerWithoutItem",
    "DELETE",
    "EPub",
    "EpubElement",
    "EpubError",
    "FileNotFound",
    "InvalidIdentifierUsage",
    "InvalidState",
    "ManifestItem",
    "NAMESPACES",
    "NoCoverPointer",
    "PackageCorrupt",
    "PackageDocument",
    "PackageMissing",
    "PackageNotDeclared",
    "TocCorrupt",
    "TocEntry",
    "TocMissing",
    "UnknownNamespacePrefix",
    "XPathAccessor",
    "ZipArchive",
    "combine_paths",
    "resolve_package_path",
]
