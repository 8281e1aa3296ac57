from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ._catalog import H5Catalog
from .structures import DatasetInfo, SliceRequest

if TYPE_CHECKING:
    from typing import Any, Sequence

    from ._image import Buffer
    from ._util import StrOrPath


def open_catalog(
    locator: StrOrPath, memory: Buffer | None = None, **kwargs: Any
) -> H5Catalog:
    """Open `locator` (or the HDF5 image in `memory`) and build its catalog.

    Keyword arguments are passed to `H5Catalog`.

    Raises
    ------
    OpenError
        If the file cannot be acquired or is not an HDF5 file.
    WalkError
        If the namespace cannot be traversed.
    ResolutionError
        In strict mode, if any dataset has an unsupported type.
    """
    return H5Catalog(locator, memory, **kwargs)


def dataset_info(catalog: H5Catalog) -> DatasetInfo:
    """Return paths, padded shapes and type codes of every dataset in `catalog`.

    Examples
    --------
    >>> info = dataset_info(cat)
    >>> info.paths
    ['/a', '/g/b']
    >>> info.shapes
    array([[ 3, -1],
           [ 2,  4]])
    >>> info.dtypes
    array([ 9, 1])
    """
    specs = catalog.specs()
    rank = max((spec.ndim for spec in specs), default=0)
    shapes = np.full((len(specs), rank), -1, dtype=np.int64)
    for row, spec in enumerate(specs):
        shapes[row, : spec.ndim] = spec.shape
    dtypes = np.array([spec.type_code for spec in specs], dtype=np.int64)
    return DatasetInfo([spec.path for spec in specs], shapes, dtypes)


def read_range(
    catalog: H5Catalog,
    path: str,
    start: Sequence[int] | None = None,
    stop: Sequence[int] | None = None,
) -> np.ndarray:
    """Read `[start, stop)` of dataset `path` into a new array.

    `start` and `stop` may be shorter than the dataset rank; see
    `SliceRequest.from_bounds` for how missing and out-of-range entries are
    filled in and clamped.
    """
    request = SliceRequest.from_bounds(catalog.spec(path), start, stop)
    return catalog.read(request.path, request.start, request.shape)


def imread(
    locator: StrOrPath,
    dataset: str,
    start: Sequence[int] | None = None,
    stop: Sequence[int] | None = None,
    *,
    memory: Buffer | None = None,
    **kwargs: Any,
) -> np.ndarray:
    """Open `locator`, read `[start, stop)` of `dataset`, and close the file."""
    with H5Catalog(locator, memory, **kwargs) as catalog:
        return read_range(catalog, dataset, start, stop)
