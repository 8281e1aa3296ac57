"""Acquisition of a readable HDF5 handle from a path, a remote URL or bytes."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import h5py

from ._lock import HDF5_LOCK
from ._util import DEFAULT_BLOCK_SIZE, is_remote_path
from .errors import OpenError

if TYPE_CHECKING:
    from typing import Any, Union

    from ._lock import LibraryLock
    from ._util import StrOrPath

    Buffer = Union[bytes, bytearray, memoryview]

logger = logging.getLogger(__name__)


def _fetch_remote(locator: str, block_size: int = DEFAULT_BLOCK_SIZE) -> bytearray:
    """Read the whole remote object at `locator` into a new buffer."""
    try:
        import fsspec
    except ImportError as e:
        raise ImportError(
            "fsspec is required for remote file access. "
            "Install with: pip install fsspec"
        ) from e

    try:
        fs, fs_path = fsspec.core.url_to_fs(locator)
        size = int(fs.size(fs_path))
    except Exception as e:
        raise OpenError(f"unable to get size of hdf5 file {locator}: {e}") from e

    buffer = bytearray(size)
    try:
        with fs.open(fs_path, mode="rb", block_size=block_size) as fh:
            nread = fh.readinto(memoryview(buffer))
    except Exception as e:
        raise OpenError(f"unable to read hdf5 file {locator}: {e}") from e
    if nread != size:
        raise OpenError(
            f"unable to read hdf5 file {locator}: expected {size} bytes, got {nread}"
        )
    logger.debug(f"Fetched {size} bytes from {locator}")
    return buffer


class FileImage:
    """An open, read-only HDF5 container.

    The container comes from (in order of precedence):

    1. `memory`, a caller-owned buffer holding the whole file;
    2. a local path;
    3. a remote locator (anything with a `://` scheme separator), which is
       fetched in full through fsspec into a buffer owned by this image.

    Parameters
    ----------
    locator : str | PathLike
        Local path or remote URL.  When `memory` is given, it is only used to
        name the container in messages.
    memory : bytes | bytearray | memoryview, optional
        The raw bytes of an HDF5 file.  The caller keeps ownership and must
        keep the buffer alive while the image is open.
    block_size : int
        Block size used for the remote fetch.
    library_lock : LibraryLock, optional
        Lock serializing calls into HDF5.  Defaults to the process-wide lock.
    """

    def __init__(
        self,
        locator: StrOrPath,
        memory: Buffer | None = None,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        library_lock: LibraryLock | None = None,
    ) -> None:
        self._locator = str(locator)
        self._memory = memory if memory is not None and len(memory) else None
        self._is_remote = self._memory is None and is_remote_path(self._locator)
        self._block_size = block_size
        self._library_lock = library_lock or HDF5_LOCK

        self._file: h5py.File | None = None
        self._buffer: io.BytesIO | None = None
        self.open()

    @property
    def locator(self) -> str:
        return self._locator

    @property
    def is_remote(self) -> bool:
        """Whether the container was fetched from a remote locator."""
        return self._is_remote

    @property
    def in_memory(self) -> bool:
        """Whether the container was opened from a caller-supplied buffer."""
        return self._memory is not None

    @property
    def closed(self) -> bool:
        return self._file is None

    @property
    def file(self) -> h5py.File:
        """The open `h5py.File`."""
        if self._file is None:
            raise ValueError(f"hdf5 file {self._locator} is closed")
        return self._file

    def open(self) -> None:
        """Open the container, if not already open."""
        if self._file is not None:
            return
        if self._is_remote:
            logger.debug(f"Fetching remote hdf5 file via fsspec: {self._locator}")
            buffer = _fetch_remote(self._locator, self._block_size)
        with self._library_lock:
            if self._memory is not None:
                logger.debug(f"Opening in-memory hdf5 image for {self._locator}")
                self._open_image(io.BytesIO(self._memory))
            elif not self._is_remote:
                logger.debug(f"Opening local hdf5 file: {self._locator}")
                self._file = self._open_h5(Path(self._locator).expanduser())
            else:
                self._open_image(io.BytesIO(buffer))

    def _open_image(self, fh: io.BytesIO) -> None:
        try:
            self._file = self._open_h5(fh)
        except OpenError:
            fh.close()
            raise
        self._buffer = fh

    def _open_h5(self, name: Any) -> h5py.File:
        try:
            return h5py.File(name, "r")
        except (OSError, ValueError) as e:
            raise OpenError(f"unable to open hdf5 file: {self._locator}: {e}") from e

    def close(self) -> None:
        """Close the handle, then release any buffer backing it."""
        with self._library_lock:
            if self._file is not None:
                self._file.close()
                self._file = None
            if self._buffer is not None:
                self._buffer.close()
                self._buffer = None

    def __enter__(self) -> FileImage:
        self.open()
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "closed" if self.closed else "open"
        kind = "memory" if self.in_memory else "remote" if self._is_remote else "local"
        return f"<FileImage {self._locator!r} ({kind}, {status})>"
