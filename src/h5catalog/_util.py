from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, cast

if TYPE_CHECKING:
    from os import PathLike
    from typing import Callable, Union

    StrOrPath = Union[str, PathLike]
    FileOrBinaryIO = Union[StrOrPath, BinaryIO]

HDF5_SIGNATURE = b"\x89HDF\r\n\x1a\n"
# the superblock may sit at 0, 512, 1024, 2048, ... when a user block is present
_MAX_SIGNATURE_OFFSET = 1 << 20

SCHEME_SEPARATOR = "://"
DEFAULT_COMPLEX_NAMES = ("r", "i")
DEFAULT_BLOCK_SIZE = 8 * 1024 * 1024


def is_remote_path(path: object) -> bool:
    """Return `True` if `path` is a locator with a scheme, like `s3://...`."""
    return isinstance(path, str) and SCHEME_SEPARATOR in path


def normalize_path(path: str) -> str:
    """Return the absolute, slash-normalized form of a dataset path.

    Examples
    --------
    >>> normalize_path("group//data/")
    '/group/data'
    """
    parts = [p for p in str(path).split("/") if p]
    return "/" + "/".join(parts)


def _open_binary(path: StrOrPath) -> BinaryIO:
    return open(path, "rb")


def is_supported_file(
    path: FileOrBinaryIO,
    open_: Callable[[StrOrPath], BinaryIO] = _open_binary,
) -> bool:
    """Return `True` if `path` can be opened as an HDF5 container.

    Parameters
    ----------
    path : Union[str, PathLike, BinaryIO]
        A path (or binary file handle) to query
    open_ : Callable[[StrOrPath], BinaryIO]
        Filesystem opener, by default `builtins.open`

    Returns
    -------
    bool
        Whether the HDF5 signature was found at a valid superblock offset.
    """
    if hasattr(path, "read"):
        return _find_signature(cast("BinaryIO", path))
    with open_(cast("StrOrPath", path)) as fh:
        return _find_signature(fh)


def _find_signature(fh: BinaryIO) -> bool:
    offset = 0
    while offset <= _MAX_SIGNATURE_OFFSET:
        fh.seek(offset)
        magic = fh.read(len(HDF5_SIGNATURE))
        if magic == HDF5_SIGNATURE:
            return True
        if len(magic) < len(HDF5_SIGNATURE):
            return False
        offset = 512 if offset == 0 else offset * 2
    return False
