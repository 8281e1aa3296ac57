"""Bounded hyperslab reads, decoded to canonical types."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

import numpy as np
from h5py import h5s, h5t

from ._types import CanonicalType, check_bool_enum, class_name
from ._util import DEFAULT_COMPLEX_NAMES
from .errors import (
    DatasetIOError,
    OutOfBounds,
    RankMismatch,
    UnsupportedEnumEncoding,
    UnsupportedPadding,
)

if TYPE_CHECKING:
    from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

    import h5py

    from .structures import DatasetSpec

    Allocator = Callable[[Tuple[int, ...], np.dtype], np.ndarray]
    Selection = Tuple[Optional[Tuple[int, ...]], Optional[Tuple[int, ...]]]

logger = logging.getLogger(__name__)

# exceptions h5py raises for failures inside the library
LIBRARY_ERRORS = (OSError, RuntimeError, ValueError, TypeError, KeyError)

_PADDING_NAMES = {
    h5t.STR_NULLTERM: "NULLTERM",
    h5t.STR_NULLPAD: "NULLPAD",
    h5t.STR_SPACEPAD: "SPACEPAD",
}


def validate_request(
    spec: DatasetSpec, start: Sequence[int] = (), shape: Sequence[int] = ()
) -> Selection:
    """Check a `[start, start + shape)` request against the extent of `spec`.

    Returns `(start, count)` as tuples of ints, or `(None, None)` when `shape`
    is empty, meaning the whole dataset.

    Raises
    ------
    RankMismatch
        If `start` or `shape` do not have one entry per dimension.
    OutOfBounds
        If the region reaches outside the dataset in any dimension.
    """
    if not len(shape):
        return None, None
    if len(shape) != spec.ndim:
        raise RankMismatch(spec.path, spec.ndim, len(shape))
    if len(start) != spec.ndim:
        raise RankMismatch(spec.path, spec.ndim, len(start))

    start = tuple(int(x) for x in start)
    count = tuple(int(x) for x in shape)
    for dim, (first, extent, bound) in enumerate(zip(start, count, spec.shape)):
        if first < 0 or extent < 0 or first > bound or first + extent > bound:
            raise OutOfBounds(spec.path, dim, first, extent, bound)
    return start, count


def _empty(shape: tuple[int, ...], dtype: np.dtype) -> np.ndarray:
    return np.empty(shape, dtype=dtype)


class SliceReader:
    """Reads regions of datasets from an open file into canonical-typed arrays.

    Parameters
    ----------
    file : h5py.File
        The open container.
    locator : str
        Name of the container, used in error messages.
    complex_names : Sequence[str]
        Member names of the real and imaginary parts of complex compounds.
    """

    def __init__(
        self,
        file: h5py.File,
        locator: str = "",
        complex_names: Sequence[str] = DEFAULT_COMPLEX_NAMES,
    ) -> None:
        self._file = file
        self._locator = locator or file.filename
        self._complex_names = tuple(complex_names)

    def read(
        self,
        spec: DatasetSpec,
        start: Sequence[int] = (),
        shape: Sequence[int] = (),
        allocate: Allocator | None = None,
    ) -> np.ndarray:
        """Read `[start, start + shape)` of the dataset described by `spec`.

        Parameters
        ----------
        spec : DatasetSpec
            The dataset to read.
        start, shape : Sequence[int]
            Offset and extent of the region, one entry per dimension.  An empty
            `shape` reads the whole dataset.
        allocate : Callable[[tuple[int, ...], numpy.dtype], numpy.ndarray]
            Output sink, called with the shape and dtype of the result to obtain
            a C-contiguous destination array.  Defaults to `numpy.empty`.  It is
            never called if the request is invalid.  If decoding or the library
            read fails after it was called, the contents of the array it
            returned are undefined.

        Returns
        -------
        numpy.ndarray
            The array returned by `allocate`, populated.
        """
        first, count = validate_request(spec, start, shape)
        out_shape = spec.shape if count is None else count
        allocate = allocate or _empty

        if 0 in out_shape:
            return self._allocate(allocate, out_shape, spec.numpy_dtype)

        logger.debug(f"Reading {spec.path} start={first} count={count}")
        dset = self._io(spec.path, self._file.__getitem__, spec.path)
        file_type = dset.id.get_type()

        if spec.dtype.is_text:
            values = self._read_text(dset, file_type, spec.path, first, count)
            out = self._allocate(allocate, out_shape, spec.numpy_dtype)
            out[...] = values.reshape(out_shape)
            return out

        mspace, fspace = self._spaces(dset, first, count)
        if spec.dtype is CanonicalType.BOOL:
            if file_type.get_class() != h5t.ENUM:
                raise RuntimeError(
                    f"bool dataset {spec.path} has data class "
                    f"{class_name(file_type.get_class())}"
                )
            names = check_bool_enum(file_type)
            if names is not None:
                raise UnsupportedEnumEncoding(names, spec.path)
            out = self._allocate(allocate, out_shape, spec.numpy_dtype)
            # stored values 0/1 are already the bytes of False/True
            self._io(spec.path, dset.id.read, mspace, fspace, out, file_type)
            return out

        out = self._allocate(allocate, out_shape, spec.numpy_dtype)
        target = self._complex_view(out) if spec.dtype.is_complex else out
        self._io(spec.path, dset.id.read, mspace, fspace, target)
        return out

    def _allocate(
        self, allocate: Allocator, shape: tuple[int, ...], dtype: np.dtype
    ) -> np.ndarray:
        out = allocate(tuple(shape), dtype)
        if out.shape != tuple(shape) or out.dtype != dtype:
            raise ValueError(
                f"allocated buffer has shape {out.shape} and dtype {out.dtype}, "
                f"expected {tuple(shape)} and {dtype}"
            )
        if not out.flags.c_contiguous:
            raise ValueError("allocated buffer must be C-contiguous")
        return out

    def _complex_view(self, out: np.ndarray) -> np.ndarray:
        part = np.dtype(f"f{out.dtype.itemsize // 2}")
        real, imag = self._complex_names
        return out.view(np.dtype([(real, part), (imag, part)]))

    def _spaces(
        self,
        dset: h5py.Dataset,
        start: tuple[int, ...] | None,
        count: tuple[int, ...] | None,
    ) -> tuple[h5s.SpaceID, h5s.SpaceID]:
        if count is None:
            return h5s.ALL, h5s.ALL
        fspace = dset.id.get_space()
        self._io(dset.name, fspace.select_hyperslab, start, count)
        return h5s.create_simple(count), fspace

    def _io(self, path: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except LIBRARY_ERRORS as e:
            raise DatasetIOError(self._locator, path, str(e)) from e

    # text decoding

    def _read_text(
        self,
        dset: h5py.Dataset,
        file_type: h5t.TypeID,
        path: str,
        start: tuple[int, ...] | None,
        count: tuple[int, ...] | None,
    ) -> np.ndarray:
        type_class = file_type.get_class()
        if type_class == h5t.VLEN or (
            type_class == h5t.STRING and file_type.is_variable_str()
        ):
            with _vlen_scratch(self, dset, path, _slices(start, count)) as scratch:
                return _as_objects([_to_bytes(v) for v in scratch.flat])
        if type_class != h5t.STRING:
            raise RuntimeError(
                f"text dataset {path} has data class {class_name(type_class)}"
            )
        return self._read_fixed_text(dset, file_type, path, start, count)

    def _read_fixed_text(
        self,
        dset: h5py.Dataset,
        file_type: h5t.TypeStringID,
        path: str,
        start: tuple[int, ...] | None,
        count: tuple[int, ...] | None,
    ) -> np.ndarray:
        padding = file_type.get_strpad()
        if padding not in (h5t.STR_NULLTERM, h5t.STR_NULLPAD):
            raise UnsupportedPadding(
                f"string pad type not supported for {path}: "
                f"{_PADDING_NAMES.get(padding, padding)}"
            )

        width = file_type.get_size()
        shape = dset.shape if count is None else count
        raw = np.empty(shape, dtype=f"S{width}")
        mspace, fspace = self._spaces(dset, start, count)
        # the file type as memory type copies the stored bytes unconverted
        self._io(path, dset.id.read, mspace, fspace, raw, file_type)

        data = raw.tobytes()
        items = (data[i : i + width] for i in range(0, len(data), width))
        if padding == h5t.STR_NULLTERM:
            return _as_objects([item.split(b"\x00", 1)[0] for item in items])
        return _as_objects([item.rstrip(b"\x00") for item in items])


@contextmanager
def _vlen_scratch(
    reader: SliceReader, dset: h5py.Dataset, path: str, selection: tuple
) -> Iterator[np.ndarray]:
    """Read variable-length elements into a scratch array, released on exit."""
    raw = reader._io(path, dset.__getitem__, selection)
    if isinstance(raw, np.ndarray) and raw.dtype == object:
        scratch = raw
    else:
        scratch = np.empty((), dtype=object)
        scratch[()] = raw
    try:
        yield scratch
    finally:
        scratch[...] = None


def _to_bytes(value: bytes | str | np.ndarray) -> bytes:
    if isinstance(value, np.ndarray):
        return value.tobytes()
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _as_objects(values: list[bytes]) -> np.ndarray:
    out = np.empty(len(values), dtype=object)
    out[:] = values
    return out


def _slices(start: tuple[int, ...] | None, count: tuple[int, ...] | None) -> tuple:
    if start is None or count is None:
        return ()
    return tuple(slice(a, a + n) for a, n in zip(start, count))
