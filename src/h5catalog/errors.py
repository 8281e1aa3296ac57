"""Exceptions raised by h5catalog.

Every error derives from `H5CatalogError` and from the builtin exception a
caller would naturally catch for it (`OSError` for anything touching the file,
`ValueError` for malformed types or requests, ...).
"""

from __future__ import annotations

from typing import Sequence


class H5CatalogError(Exception):
    """Base class for all h5catalog errors."""


class OpenError(H5CatalogError, OSError):
    """The container could not be acquired (missing, unreadable, fetch failed)."""


class WalkError(H5CatalogError, OSError):
    """Traversal of the container namespace failed inside the library."""


class ResolutionError(H5CatalogError, ValueError):
    """An on-disk type has no canonical counterpart."""


class UnsupportedEnumEncoding(ResolutionError):
    """An enum type does not encode a boolean as `{FALSE: 0, TRUE: 1}`."""

    def __init__(self, names: Sequence[str], path: str = "") -> None:
        self.names = list(names)
        self.path = path
        where = f" for {path}" if path else ""
        super().__init__(
            f"unsupported data class for enum{where}: [{', '.join(self.names)}]"
        )


class NotFoundError(H5CatalogError, LookupError):
    """No dataset with the requested path exists in the catalog."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"dataset {path} not found")


class RankMismatch(H5CatalogError, ValueError):
    """A slice request does not have one entry per dataset dimension."""

    def __init__(self, path: str, rank: int, requested: int) -> None:
        self.path = path
        self.rank = rank
        self.requested = requested
        super().__init__(
            f"rank does not match for {path}: {rank} vs. {requested}"
        )


class OutOfBounds(H5CatalogError, IndexError):
    """A slice request reaches outside the dataset extent."""

    def __init__(self, path: str, dim: int, start: int, extent: int, bound: int):
        self.path = path
        self.dim = dim
        self.start = start
        self.extent = extent
        self.bound = bound
        super().__init__(
            f"dimension [{dim}] of {path} out of boundary: "
            f"start={start}, slice={extent}, boundary={bound}"
        )


class UnsupportedPadding(H5CatalogError, ValueError):
    """A fixed-length string uses a padding mode that cannot be decoded."""


class DatasetIOError(H5CatalogError, OSError):
    """The library failed while reading raw bytes of a dataset."""

    def __init__(self, locator: str, path: str, detail: str) -> None:
        self.locator = locator
        self.path = path
        self.detail = detail
        super().__init__(
            f"unable to process dataset {path} in file {locator}: {detail}"
        )
