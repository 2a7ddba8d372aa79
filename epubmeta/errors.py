from __future__ import annotations


class EpubError(Exception):
    """Base class for every failure raised while working on an EPUB."""


class ArchiveUnreadable(EpubError):
    pass


class ContainerMissing(EpubError):
    pass


class ContainerCorrupt(EpubError):
    pass


class PackageNotDeclared(EpubError):
    pass


class PackageMissing(EpubError):
    pass


class PackageCorrupt(EpubError):
    pass


class TocMissing(EpubError):
    pass


class TocCorrupt(EpubError):
    pass


class FileNotFound(EpubError, FileNotFoundError):
    pass


class InvalidIdentifierUsage(EpubError, ValueError):
    """Raised when two path parts cannot be combined."""


class InvalidState(EpubError, RuntimeError):
    pass


class UnknownNamespacePrefix(EpubError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
