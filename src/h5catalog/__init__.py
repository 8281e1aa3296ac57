"""h5catalog: typed, random-access reading of datasets in HDF5 files."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"

__all__ = [
    "__version__",
    "CanonicalType",
    "DatasetInfo",
    "DatasetIOError",
    "DatasetSpec",
    "H5Catalog",
    "H5CatalogError",
    "HDF5_LOCK",
    "LibraryLock",
    "NotFoundError",
    "OpenError",
    "OutOfBounds",
    "RankMismatch",
    "ResolutionError",
    "SliceRequest",
    "UnsupportedEnumEncoding",
    "UnsupportedPadding",
    "WalkError",
    "dataset_info",
    "imread",
    "is_supported_file",
    "open_catalog",
    "read_range",
]

from ._catalog import H5Catalog
from ._entrypoints import dataset_info, imread, open_catalog, read_range
from ._lock import HDF5_LOCK, LibraryLock
from ._types import CanonicalType
from ._util import is_supported_file
from .errors import (
    DatasetIOError,
    H5CatalogError,
    NotFoundError,
    OpenError,
    OutOfBounds,
    RankMismatch,
    ResolutionError,
    UnsupportedEnumEncoding,
    UnsupportedPadding,
    WalkError,
)
from .structures import DatasetInfo, DatasetSpec, SliceRequest
