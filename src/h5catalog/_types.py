"""Mapping of on-disk HDF5 types onto the small set of canonical types."""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np
from h5py import h5t

from ._util import DEFAULT_COMPLEX_NAMES
from .errors import ResolutionError, UnsupportedEnumEncoding

if TYPE_CHECKING:
    from typing import Sequence


class CanonicalType(IntEnum):
    """Types exposed to callers.  Values are the stable codes reported in listings."""

    FLOAT32 = 1
    FLOAT64 = 2
    INT32 = 3
    UINT8 = 4
    INT16 = 5
    INT8 = 6
    TEXT = 7
    COMPLEX64 = 8
    INT64 = 9
    BOOL = 10
    UINT16 = 17
    COMPLEX128 = 18
    UINT32 = 22
    UINT64 = 23

    @property
    def dtype(self) -> np.dtype:
        """Numpy dtype of a buffer holding this type (`object` for text)."""
        return np.dtype(_NUMPY_TYPES[self])

    @property
    def is_text(self) -> bool:
        return self is CanonicalType.TEXT

    @property
    def is_complex(self) -> bool:
        return self in (CanonicalType.COMPLEX64, CanonicalType.COMPLEX128)


_NUMPY_TYPES: dict[CanonicalType, str] = {
    CanonicalType.INT8: "int8",
    CanonicalType.INT16: "int16",
    CanonicalType.INT32: "int32",
    CanonicalType.INT64: "int64",
    CanonicalType.UINT8: "uint8",
    CanonicalType.UINT16: "uint16",
    CanonicalType.UINT32: "uint32",
    CanonicalType.UINT64: "uint64",
    CanonicalType.FLOAT32: "float32",
    CanonicalType.FLOAT64: "float64",
    CanonicalType.COMPLEX64: "complex64",
    CanonicalType.COMPLEX128: "complex128",
    CanonicalType.BOOL: "bool",
    CanonicalType.TEXT: "object",
}

# (size, signed) -> type
_INTEGERS = {
    (1, True): CanonicalType.INT8,
    (2, True): CanonicalType.INT16,
    (4, True): CanonicalType.INT32,
    (8, True): CanonicalType.INT64,
    (1, False): CanonicalType.UINT8,
    (2, False): CanonicalType.UINT16,
    (4, False): CanonicalType.UINT32,
    (8, False): CanonicalType.UINT64,
}
_FLOATS = {4: CanonicalType.FLOAT32, 8: CanonicalType.FLOAT64}
_COMPLEX = {4: CanonicalType.COMPLEX64, 8: CanonicalType.COMPLEX128}

CLASS_NAMES = {
    h5t.INTEGER: "INTEGER",
    h5t.FLOAT: "FLOAT",
    h5t.TIME: "TIME",
    h5t.STRING: "STRING",
    h5t.BITFIELD: "BITFIELD",
    h5t.OPAQUE: "OPAQUE",
    h5t.COMPOUND: "COMPOUND",
    h5t.REFERENCE: "REFERENCE",
    h5t.ENUM: "ENUM",
    h5t.VLEN: "VLEN",
    h5t.ARRAY: "ARRAY",
}

FALSE_NAME, TRUE_NAME = "FALSE", "TRUE"


def class_name(type_class: int) -> str:
    return CLASS_NAMES.get(type_class, str(type_class))


def _for(path: str) -> str:
    return f" for {path}" if path else ""


def _member_names(type_id: h5t.TypeCompositeID) -> list[str]:
    return [
        type_id.get_member_name(i).decode("utf-8", "replace")
        for i in range(type_id.get_nmembers())
    ]


def _find(names: Sequence[str], name: str) -> int | None:
    return names.index(name) if name in names else None


def check_bool_enum(type_id: h5t.TypeEnumID) -> list[str] | None:
    """Return `None` if `type_id` is the `{FALSE: 0, TRUE: 1}` boolean enum.

    Otherwise return the member names found, for diagnostics.
    """
    names = _member_names(type_id)
    if (
        type_id.get_size() == 1
        and type_id.get_size() == np.dtype(bool).itemsize
        and len(names) == 2
        and _find(names, FALSE_NAME) == 0
        and _find(names, TRUE_NAME) == 1
        and type_id.get_member_value(0) == 0
        and type_id.get_member_value(1) == 1
    ):
        return None
    return names


def resolve_type(
    type_id: h5t.TypeID,
    complex_names: Sequence[str] = DEFAULT_COMPLEX_NAMES,
    path: str = "",
) -> CanonicalType:
    """Resolve an on-disk type to its `CanonicalType`.

    Parameters
    ----------
    type_id : h5py.h5t.TypeID
        The on-disk type of a dataset, e.g. `dataset.id.get_type()`.
    complex_names : Sequence[str]
        The two member names a compound type must have, in order, to be read
        as a complex number.  By default `("r", "i")`.
    path : str
        Dataset path, only used in error messages.

    Raises
    ------
    ResolutionError
        If the type has no canonical counterpart.  Enum types that are not
        boolean raise the `UnsupportedEnumEncoding` subclass.
    """
    type_class = type_id.get_class()
    size = type_id.get_size()

    if type_class == h5t.INTEGER:
        signed = type_id.get_sign() != h5t.SGN_NONE
        if (size, signed) not in _INTEGERS:
            raise ResolutionError(f"unsupported data type size{_for(path)}: {size}")
        return _INTEGERS[(size, signed)]

    if type_class == h5t.FLOAT:
        if size not in _FLOATS:
            raise ResolutionError(f"unsupported data type size{_for(path)}: {size}")
        return _FLOATS[size]

    if type_class == h5t.STRING:
        return CanonicalType.TEXT

    if type_class == h5t.VLEN:
        base = type_id.get_super()
        if base.get_class() == h5t.INTEGER and base.get_size() == 1:
            return CanonicalType.TEXT
        raise ResolutionError(
            f"unsupported variable-length base type{_for(path)}: "
            f"{class_name(base.get_class())} of size {base.get_size()}"
        )

    if type_class == h5t.COMPOUND:
        return _resolve_complex(type_id, complex_names, path)

    if type_class == h5t.ENUM:
        names = check_bool_enum(type_id)
        if names is not None:
            raise UnsupportedEnumEncoding(names, path)
        return CanonicalType.BOOL

    raise ResolutionError(
        f"unsupported data class{_for(path)}: {class_name(type_class)}"
    )


def _resolve_complex(
    type_id: h5t.TypeCompoundID, complex_names: Sequence[str], path: str
) -> CanonicalType:
    nmembers = type_id.get_nmembers()
    if nmembers != 2:
        raise ResolutionError(
            f"unsupported compound members{_for(path)}: {nmembers}"
        )
    names = _member_names(type_id)
    if tuple(names) != tuple(complex_names):
        raise ResolutionError(
            f"unsupported compound member names{_for(path)}: {', '.join(names)} "
            f"(expected {', '.join(complex_names)})"
        )
    real, imag = type_id.get_member_type(0), type_id.get_member_type(1)
    if not real.equal(imag):
        raise ResolutionError(
            f"unsupported compound with different data type{_for(path)}: "
            f"{class_name(real.get_class())} of size {real.get_size()}, "
            f"{class_name(imag.get_class())} of size {imag.get_size()}"
        )
    if real.get_class() != h5t.FLOAT:
        raise ResolutionError(
            f"unsupported compound with non-float data class{_for(path)}: "
            f"{class_name(real.get_class())}"
        )
    if real.get_size() not in _COMPLEX:
        raise ResolutionError(
            f"unsupported data type size for compound{_for(path)}: "
            f"{real.get_size()}"
        )
    return _COMPLEX[real.get_size()]
