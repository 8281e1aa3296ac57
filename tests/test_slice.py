from unittest.mock import MagicMock

import h5py
import numpy as np
import pytest
from h5catalog import (
    CanonicalType,
    DatasetIOError,
    DatasetSpec,
    H5Catalog,
    OutOfBounds,
    RankMismatch,
    UnsupportedEnumEncoding,
    UnsupportedPadding,
)
from h5catalog._slice import SliceReader, validate_request

from conftest import int_data


def test_read_ints(sample: H5Catalog, int_name):
    data = sample.read(f"/ints/{int_name}")
    expected = int_data(int_name)
    assert data.dtype == expected.dtype
    np.testing.assert_array_equal(data, expected)


def test_read_floats(sample: H5Catalog):
    f32 = sample.read("/floats/f32")
    assert f32.dtype == np.float32
    np.testing.assert_array_equal(
        f32, np.linspace(-1, 1, 24, dtype="float32").reshape(2, 3, 4)
    )
    f64 = sample.read("/floats/f64")
    assert f64.tobytes() == np.array([0.5, -1.25, np.pi, 1e300, -0.0]).tobytes()


def test_read_scalar(sample: H5Catalog):
    data = sample.read("/scalar")
    assert data.shape == ()
    assert data[()] == 3.5


def test_read_complex(sample: H5Catalog):
    c64 = sample.read("/complex/c64")
    assert c64.dtype == np.complex64
    np.testing.assert_array_equal(c64, [1 + 2j, -3.5j, 4, 0])
    c128 = sample.read("/complex/c128", (1, 0), (1, 2))
    assert c128.dtype == np.complex128
    np.testing.assert_array_equal(c128, [[3j, -4]])


def test_read_bools(sample: H5Catalog):
    data = sample.read("/bools")
    assert data.dtype == bool
    np.testing.assert_array_equal(data, [True, False, False, True, True, False])
    np.testing.assert_array_equal(sample.read("/bools", (3,), (2,)), [True, True])


@pytest.mark.parametrize(
    "start, shape",
    [
        ((0, 0, 0), (2, 3, 4)),
        ((1, 0, 0), (1, 3, 4)),
        ((0, 1, 2), (2, 2, 2)),
        ((1, 2, 3), (1, 1, 1)),
        ((0, 3, 0), (2, 0, 4)),
    ],
)
def test_partial_read_matches_full(sample: H5Catalog, start, shape):
    full = sample.read("/floats/f32")
    part = sample.read("/floats/f32", start, shape)
    selection = tuple(slice(a, a + n) for a, n in zip(start, shape))
    assert part.shape == shape
    np.testing.assert_array_equal(part, full[selection])


def test_zero_extent(sample: H5Catalog):
    data = sample.read("/text/vlen", (4,), (0,))
    assert data.shape == (0,)
    assert data.dtype == object


@pytest.mark.parametrize(
    "start, shape, dim",
    [
        ((0, 0), (4, 4), 0),
        ((0, 1), (3, 4), 1),
        ((-1, 0), (1, 1), 0),
        ((0, 0), (1, -1), 1),
        ((0, 5), (0, 0), 1),
    ],
)
def test_out_of_bounds(sample: H5Catalog, start, shape, dim):
    allocate = MagicMock()
    with pytest.raises(OutOfBounds) as e:
        sample.read("/ints/i32", start, shape, allocate=allocate)
    assert e.value.dim == dim
    assert e.value.start == start[dim]
    assert e.value.extent == shape[dim]
    assert e.value.bound == (3, 4)[dim]
    assert f"dimension [{dim}] of /ints/i32 out of boundary" in str(e.value)
    assert isinstance(e.value, IndexError)
    allocate.assert_not_called()


def test_edge_of_extent(sample: H5Catalog):
    # start == extent is allowed when nothing is read
    assert sample.read("/ints/i32", (3, 4), (0, 0)).shape == (0, 0)


@pytest.mark.parametrize("start, shape", [((0,), (3,)), ((0, 0), (3,)), ((0,), (3, 4))])
def test_rank_mismatch(sample: H5Catalog, start, shape):
    with pytest.raises(RankMismatch, match="rank does not match for /ints/i32: 2"):
        sample.read("/ints/i32", start, shape)


def test_allocator(sample: H5Catalog):
    buffers = []

    def allocate(shape, dtype):
        buffers.append(np.full(shape, -1, dtype=dtype))
        return buffers[-1]

    data = sample.read("/ints/i16", (1, 1), (2, 2), allocate=allocate)
    assert data is buffers[0]
    np.testing.assert_array_equal(data, int_data("i16")[1:3, 1:3])


@pytest.mark.parametrize(
    "buffer",
    [
        np.empty((2, 2), dtype="int32"),
        np.empty((3, 2), dtype="int16"),
        np.empty((2, 4), dtype="int16")[:, ::2],
    ],
)
def test_bad_allocator(sample: H5Catalog, buffer):
    with pytest.raises(ValueError, match="allocated buffer"):
        sample.read("/ints/i16", (0, 0), (2, 2), allocate=lambda *_: buffer)


# text


def test_vlen_strings(sample: H5Catalog):
    data = sample.read("/text/vlen")
    assert data.dtype == object
    assert data.tolist() == [b"a", b"bc", b"", "déjà".encode()]
    assert sample.read("/text/vlen", (1,), (2,)).tolist() == [b"bc", b""]


def test_vlen_bytes(sample: H5Catalog):
    assert sample.read("/text/vlen_bytes").tolist() == [b"xyz", b"\x00\x01"]


def test_fixed_nullterm(sample: H5Catalog):
    data = sample.read("/text/fixed_nullterm")
    assert data.tolist() == [b"ab", b"abcd", b"ab", b""]
    assert sample.read("/text/fixed_nullterm", (1,), (2,)).tolist() == [
        b"abcd",
        b"ab",
    ]


def test_fixed_nullpad(sample: H5Catalog):
    data = sample.read("/text/fixed_nullpad")
    assert data.tolist() == [b"ab  ", b"ab", b"a\x00b", b"abcd"]


def test_fixed_spacepad(sample: H5Catalog):
    with pytest.raises(UnsupportedPadding, match="SPACEPAD"):
        sample.read("/text/fixed_spacepad")


# library failures


def test_io_error_wraps_library_failure():
    file = MagicMock()
    file.__getitem__.side_effect = KeyError("object vanished")
    reader = SliceReader(file, "broken.h5")
    spec = DatasetSpec("/x", CanonicalType.INT32, (3,))
    with pytest.raises(DatasetIOError, match="/x in file broken.h5") as e:
        reader.read(spec)
    assert e.value.path == "/x"
    assert "object vanished" in e.value.detail
    assert isinstance(e.value, OSError)


def test_io_error_after_allocation():
    dset = MagicMock()
    dset.id.read.side_effect = OSError("read failed")
    file = MagicMock()
    file.__getitem__.return_value = dset
    allocate = MagicMock(return_value=np.empty(3, dtype="int32"))
    spec = DatasetSpec("/x", CanonicalType.INT32, (3,))
    with pytest.raises(DatasetIOError, match="read failed"):
        SliceReader(file, "broken.h5").read(spec, allocate=allocate)
    allocate.assert_called_once_with((3,), np.dtype("int32"))


def test_validate_request():
    spec = DatasetSpec("/d", CanonicalType.UINT8, (4, 5))
    assert validate_request(spec) == (None, None)
    assert validate_request(spec, [1, 2], [3, 3]) == ((1, 2), (3, 3))
    assert validate_request(spec, np.array([0, 0]), np.array([4, 5])) == (
        (0, 0),
        (4, 5),
    )


# stored types that disagree with the resolved type


def test_bool_enum_checked_at_read(bad_h5):
    allocate = MagicMock()
    spec = DatasetSpec("/enum_lowhigh", CanonicalType.BOOL, (2,))
    with h5py.File(bad_h5, "r") as f:
        with pytest.raises(UnsupportedEnumEncoding, match="/enum_lowhigh") as e:
            SliceReader(f).read(spec, allocate=allocate)
    assert set(e.value.names) == {"LOW", "HIGH"}
    allocate.assert_not_called()


@pytest.mark.parametrize(
    "dtype, match",
    [(CanonicalType.BOOL, "bool dataset /good"), (CanonicalType.TEXT, "text dataset")],
)
def test_stored_class_mismatch(bad_h5, dtype, match):
    allocate = MagicMock()
    spec = DatasetSpec("/good", dtype, (3,))
    with h5py.File(bad_h5, "r") as f:
        with pytest.raises(RuntimeError, match=f"{match}.*INTEGER"):
            SliceReader(f, "bad.h5").read(spec, allocate=allocate)
    allocate.assert_not_called()
