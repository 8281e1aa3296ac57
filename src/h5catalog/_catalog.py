from __future__ import annotations

import logging
import threading
import warnings
from functools import partial
from typing import TYPE_CHECKING

import numpy as np

from ._image import FileImage
from ._lock import HDF5_LOCK
from ._slice import LIBRARY_ERRORS, SliceReader
from ._types import resolve_type
from ._util import DEFAULT_BLOCK_SIZE, DEFAULT_COMPLEX_NAMES, normalize_path
from ._walk import walk_datasets
from .errors import NotFoundError, ResolutionError, WalkError
from .structures import DatasetSpec

if TYPE_CHECKING:
    from typing import Any, Iterator, Sequence

    import dask.array as da
    import h5py

    from ._image import Buffer
    from ._lock import LibraryLock
    from ._slice import Allocator
    from ._util import StrOrPath

logger = logging.getLogger(__name__)


class H5Catalog:
    """Read-only, typed, random-access view of the datasets in an HDF5 file.

    Opening a catalog walks the whole namespace of the file once, resolving
    the canonical type and shape of every dataset.  Reads then go straight to
    the open file.

    Parameters
    ----------
    locator : str | PathLike
        Local path, or remote URL (e.g. `s3://bucket/file.h5`, requires fsspec).
    memory : bytes | bytearray | memoryview, optional
        Raw bytes of an HDF5 file to open instead of `locator`.
    complex_names : Sequence[str]
        Names of the two members of a compound type read as a complex number.
        By default `("r", "i")`.
    strict : bool
        If `True` (the default), opening fails with `ResolutionError` on the first
        dataset whose type cannot be resolved.  If `False`, such datasets are left
        out of the catalog (with a warning) and listed in `unresolved`.
    library_lock : LibraryLock, optional
        Lock serializing calls into the HDF5 library, shared by every catalog in
        the process by default.
    block_size : int
        Block size used when fetching a remote file.

    Examples
    --------
    >>> with H5Catalog("data.h5") as cat:
    ...     cat.datasets
    ...     cat.read("/group/images", start=(0, 0, 0), shape=(1, 64, 64))
    """

    def __init__(
        self,
        locator: StrOrPath,
        memory: Buffer | None = None,
        *,
        complex_names: Sequence[str] = DEFAULT_COMPLEX_NAMES,
        strict: bool = True,
        library_lock: LibraryLock | None = None,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ) -> None:
        if len(complex_names) != 2:
            raise ValueError(
                f"complex_names must have exactly 2 entries, got {complex_names!r}"
            )
        self._lock = threading.RLock()
        self._library_lock = library_lock or HDF5_LOCK
        self._complex_names = tuple(complex_names)
        self._strict = strict

        self._index: dict[str, int] = {}
        self._specs: list[DatasetSpec] = []
        self._unresolved: dict[str, ResolutionError] = {}

        self._image = FileImage(
            locator, memory, block_size=block_size, library_lock=self._library_lock
        )
        try:
            self._build()
        except BaseException:
            self._image.close()
            raise

    # -------------------------------------------------------------------------
    # catalog construction
    # -------------------------------------------------------------------------

    def _build(self) -> None:
        with self._lock, self._library_lock:
            file = self._image.file
            for path in walk_datasets(file):
                try:
                    spec = self._resolve(file, path)
                except ResolutionError as e:
                    if self._strict:
                        raise
                    warnings.warn(
                        f"Skipping dataset that cannot be read: {e}", stacklevel=3
                    )
                    self._unresolved[path] = e
                    continue
                self._index[path] = len(self._specs)
                self._specs.append(spec)
        logger.debug(
            f"Catalog of {self.locator} built: {len(self._specs)} datasets, "
            f"{len(self._unresolved)} unresolved"
        )

    def _resolve(self, file: h5py.File, path: str) -> DatasetSpec:
        try:
            dset = file[path]
            shape = dset.shape
            type_id = dset.id.get_type()
        except LIBRARY_ERRORS as e:
            raise WalkError(f"unable to open dataset {path}: {e}") from e
        if shape is None:
            raise ResolutionError(f"unsupported null dataspace for {path}")
        dtype = resolve_type(type_id, self._complex_names, path)
        return DatasetSpec(path, dtype, tuple(int(x) for x in shape))

    # -------------------------------------------------------------------------
    # properties
    # -------------------------------------------------------------------------

    @property
    def locator(self) -> str:
        """Path or URL the catalog was opened from."""
        return self._image.locator

    @property
    def is_remote(self) -> bool:
        return self._image.is_remote

    @property
    def complex_names(self) -> tuple[str, ...]:
        return self._complex_names

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def closed(self) -> bool:
        """Whether the underlying file is closed."""
        return self._image.closed

    @property
    def datasets(self) -> list[str]:
        """Paths of all readable datasets, in catalog order (not sorted)."""
        return self.list_datasets()

    @property
    def unresolved(self) -> dict[str, ResolutionError]:
        """Datasets left out of a non-strict catalog, with the reason."""
        with self._lock:
            return dict(self._unresolved)

    # -------------------------------------------------------------------------
    # queries
    # -------------------------------------------------------------------------

    def list_datasets(self) -> list[str]:
        """Return the paths of all readable datasets, in catalog order."""
        with self._lock:
            return [spec.path for spec in self._specs]

    def specs(self) -> list[DatasetSpec]:
        """Return the `DatasetSpec` of every readable dataset, in catalog order."""
        with self._lock:
            return list(self._specs)

    def index(self, path: str) -> int:
        """Return the position of dataset `path` in the catalog."""
        path = normalize_path(path)
        with self._lock:
            if path in self._index:
                return self._index[path]
            if path in self._unresolved:
                raise self._unresolved[path]
            raise NotFoundError(path)

    def spec(self, path: str) -> DatasetSpec:
        """Return the canonical type and shape of dataset `path`.

        Raises
        ------
        NotFoundError
            If there is no dataset at `path`.
        ResolutionError
            If `path` was left out of a non-strict catalog.
        """
        with self._lock:
            return self._specs[self.index(path)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._specs)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        with self._lock:
            return normalize_path(path) in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_datasets())

    # -------------------------------------------------------------------------
    # reading
    # -------------------------------------------------------------------------

    def read(
        self,
        path: str,
        start: Sequence[int] = (),
        shape: Sequence[int] = (),
        *,
        allocate: Allocator | None = None,
    ) -> np.ndarray:
        """Read the region `[start, start + shape)` of dataset `path`.

        Parameters
        ----------
        path : str
            Dataset path, e.g. `/group/data`.
        start : Sequence[int]
            Offset of the region in each dimension.
        shape : Sequence[int]
            Extent of the region in each dimension.  If empty (the default), the
            whole dataset is read.
        allocate : Callable[[tuple[int, ...], numpy.dtype], numpy.ndarray]
            Called with the result shape and dtype to obtain the destination
            array.  Defaults to `numpy.empty`.  If the read fails after
            allocation, the contents of that array are undefined.

        Returns
        -------
        numpy.ndarray
            Array of `spec(path).dtype.dtype`.  Text is returned as an object
            array of `bytes`.

        Raises
        ------
        RankMismatch, OutOfBounds
            If the region does not fit the dataset.
        UnsupportedPadding, UnsupportedEnumEncoding
            If stored values cannot be decoded.
        DatasetIOError
            If the library fails to read the data.
        """
        with self._lock:
            self._check_open()
            spec = self.spec(path)
            with self._library_lock:
                reader = SliceReader(
                    self._image.file, self.locator, self._complex_names
                )
                return reader.read(spec, start, shape, allocate)

    def asarray(self, path: str) -> np.ndarray:
        """Read all of dataset `path` into memory."""
        return self.read(path)

    def to_dask(
        self, path: str, chunks: int | Sequence[int] | None = None
    ) -> da.Array:
        """Create a lazy dask array backed by hyperslab reads of dataset `path`.

        Parameters
        ----------
        path : str
            Dataset path.
        chunks : int | Sequence[int], optional
            Chunk shape, in any form accepted by `dask.array.normalize_chunks`.
            By default, the whole dataset is a single chunk.

        Returns
        -------
        ResourceBackedDaskArray
            A dask array that reopens this catalog (if closed) when computed.
        """
        import dask
        import dask.array as da
        from resource_backed_dask_array import ResourceBackedDaskArray

        spec = self.spec(path)
        dtype = spec.numpy_dtype
        if spec.ndim == 0:
            darr = da.from_delayed(
                dask.delayed(self.read)(spec.path), shape=(), dtype=dtype
            )
        else:
            normalized = da.core.normalize_chunks(
                spec.shape if chunks is None else chunks, spec.shape, dtype=dtype
            )
            darr = da.map_blocks(
                partial(self._dask_block, spec.path, normalized),
                chunks=normalized,
                dtype=dtype,
                meta=np.empty((0,) * spec.ndim, dtype=dtype),
            )
        return ResourceBackedDaskArray.from_array(darr, self)

    def _dask_block(
        self, path: str, chunks: tuple[tuple[int, ...], ...], block_id: tuple[int, ...]
    ) -> np.ndarray:
        start = tuple(sum(c[:i]) for c, i in zip(chunks, block_id))
        shape = tuple(c[i] for c, i in zip(chunks, block_id))
        return self.read(path, start, shape)

    # -------------------------------------------------------------------------
    # lifecycle
    # -------------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._image.closed:
            raise ValueError(f"Attempt to read from closed catalog {self.locator}")

    def open(self) -> None:
        """Reopen the file (the catalog itself is not rebuilt)."""
        with self._lock:
            self._image.open()

    def close(self) -> None:
        """Close the file and release any buffer backing it."""
        with self._lock:
            self._image.close()

    def __enter__(self) -> H5Catalog:
        self.open()
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    def __dask_tokenize__(self) -> tuple[str, str, int]:
        return (type(self).__name__, self.locator, id(self))

    def __repr__(self) -> str:
        status = "closed" if self.closed else "open"
        return f"<H5Catalog {self.locator!r} ({status}): {len(self)} datasets>"
