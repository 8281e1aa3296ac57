from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from ._types import CanonicalType
from .errors import RankMismatch

if TYPE_CHECKING:
    from typing import Sequence

    import numpy as np

SLOTS = {}
if sys.version_info >= (3, 10):
    SLOTS["slots"] = True


@dataclass(frozen=True, **SLOTS)
class DatasetSpec:
    """Canonical type and shape of one dataset in a container.

    Attributes
    ----------
    path : str
        Absolute path of the dataset inside the container, e.g. `/group/data`.
    dtype : CanonicalType
        The canonical type values of this dataset are decoded to.
    shape : tuple[int, ...]
        Extent of each dimension.  Scalar datasets have shape `()`.
    """

    path: str
    dtype: CanonicalType
    shape: tuple[int, ...]

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        """Number of elements in the dataset."""
        size = 1
        for extent in self.shape:
            size *= extent
        return size

    @property
    def type_code(self) -> int:
        """Integer code identifying `dtype`."""
        return int(self.dtype)

    @property
    def numpy_dtype(self) -> np.dtype:
        return self.dtype.dtype


@dataclass(frozen=True, **SLOTS)
class SliceRequest:
    """A rectangular region `[start, start + shape)` of one dataset.

    An empty `shape` requests the whole dataset.
    """

    path: str
    start: tuple[int, ...] = ()
    shape: tuple[int, ...] = ()

    @classmethod
    def from_bounds(
        cls,
        spec: DatasetSpec,
        start: Sequence[int] | None = None,
        stop: Sequence[int] | None = None,
    ) -> SliceRequest:
        """Build a request from an inclusive `start` and exclusive `stop`.

        Either vector may be shorter than the dataset rank: missing `start`
        entries are `0` and missing `stop` entries are the full extent.  A
        `stop` that is negative or past the extent is clamped to the extent,
        and a `start` past its `stop` is clamped to the `stop`.

        Examples
        --------
        >>> spec = DatasetSpec("/d", CanonicalType.INT32, (10, 4))
        >>> SliceRequest.from_bounds(spec, start=[2], stop=[-1, 3])
        SliceRequest(path='/d', start=(2, 0), shape=(8, 3))
        """
        start = [] if start is None else [int(x) for x in start]
        stop = [] if stop is None else [int(x) for x in stop]
        for vector in (start, stop):
            if len(vector) > spec.ndim:
                raise RankMismatch(spec.path, spec.ndim, len(vector))

        start += [0] * (spec.ndim - len(start))
        stop += spec.shape[len(stop) :]
        for i, extent in enumerate(spec.shape):
            if stop[i] < 0 or stop[i] > extent:
                stop[i] = extent
            if start[i] > stop[i]:
                start[i] = stop[i]
        shape = tuple(int(b - a) for a, b in zip(start, stop))
        return cls(spec.path, tuple(int(a) for a in start), shape)


class DatasetInfo(NamedTuple):
    """Listing of every dataset in a catalog.

    Attributes
    ----------
    paths : list[str]
        Dataset paths in catalog order.
    shapes : numpy.ndarray
        `int64` array of shape `(N, max_rank)`.  Row `i` holds the shape of
        `paths[i]`, padded with `-1` past that dataset's rank.
    dtypes : numpy.ndarray
        `int64` array of `CanonicalType` codes.
    """

    paths: list[str]
    shapes: np.ndarray
    dtypes: np.ndarray
