from pathlib import Path

import h5py
import numpy as np
import psutil
import pytest
from h5py import h5d, h5s, h5t

INTS = ["i8", "i16", "i32", "i64", "u8", "u16", "u32", "u64"]

# every dataset of sample.h5, in the order the walker reports them
SAMPLE_DATASETS = [
    "/bools",
    "/complex/c128",
    "/complex/c64",
    "/floats/f32",
    "/floats/f64",
    "/g1/data",
    "/g1/g2/deep",
    *sorted(f"/ints/{name}" for name in INTS),
    "/scalar",
    "/text/fixed_nullpad",
    "/text/fixed_nullterm",
    "/text/fixed_spacepad",
    "/text/vlen",
    "/text/vlen_bytes",
]

BAD_DATASETS = {
    "/compound_int": np.dtype([("r", "i4"), ("i", "i4")]),
    "/compound_mixed": np.dtype([("r", "f4"), ("i", "f8")]),
    "/compound_names": np.dtype([("re", "f4"), ("im", "f4")]),
    "/compound_three": np.dtype([("r", "f4"), ("i", "f4"), ("x", "f4")]),
    "/enum_lowhigh": h5py.enum_dtype({"LOW": 0, "HIGH": 1}, basetype="i1"),
    "/float16": np.dtype("f2"),
    "/opaque": np.dtype("V8"),
    "/vlen_int32": h5py.vlen_dtype(np.int32),
}


def int_data(name: str) -> np.ndarray:
    dtype = np.dtype(name.replace("i", "int").replace("u", "uint"))
    return (np.arange(12) * 7 + 1).astype(dtype).reshape(3, 4)


def write_fixed_strings(
    group: h5py.Group, name: str, values: "list[bytes]", width: int, pad: int
) -> None:
    """Write fixed-width strings with an explicit padding mode, bytes unchanged."""
    tid = h5t.C_S1.copy()
    tid.set_size(width)
    tid.set_strpad(pad)
    space = h5s.create_simple((len(values),))
    dsid = h5d.create(group.id, name.encode(), tid, space)
    dsid.write(h5s.ALL, h5s.ALL, np.array(values, dtype=f"S{width}"), mtype=tid)


def write_sample(path: Path) -> None:
    with h5py.File(path, "w") as f:
        for name in INTS:
            f[f"ints/{name}"] = int_data(name)
        f["floats/f32"] = np.linspace(-1, 1, 24, dtype="float32").reshape(2, 3, 4)
        f["floats/f64"] = np.array([0.5, -1.25, np.pi, 1e300, -0.0])
        f["scalar"] = np.float64(3.5)
        f["complex/c64"] = np.array([1 + 2j, -3.5j, 4, 0], dtype="complex64")
        f["complex/c128"] = np.array([[1 + 1j, 2 - 2j], [3j, -4]], dtype="complex128")
        f["bools"] = np.array([True, False, False, True, True, False])

        text = f.create_group("text")
        text.create_dataset(
            "vlen", data=["a", "bc", "", "déjà"], dtype=h5py.string_dtype()
        )
        vbytes = text.create_dataset("vlen_bytes", (2,), dtype=h5py.vlen_dtype("u1"))
        vbytes[0] = np.frombuffer(b"xyz", dtype="u1")
        vbytes[1] = np.frombuffer(b"\x00\x01", dtype="u1")
        write_fixed_strings(
            text,
            "fixed_nullterm",
            [b"ab\x00\x00", b"abcd", b"ab\x00c", b"\x00\x00\x00\x00"],
            4,
            h5t.STR_NULLTERM,
        )
        write_fixed_strings(
            text,
            "fixed_nullpad",
            [b"ab  ", b"ab\x00\x00", b"a\x00b\x00", b"abcd"],
            4,
            h5t.STR_NULLPAD,
        )
        write_fixed_strings(text, "fixed_spacepad", [b"ab  "], 4, h5t.STR_SPACEPAD)

        g1 = f.create_group("g1")
        g1["data"] = np.arange(5, dtype="int32")
        g1["g2/deep"] = np.eye(2, dtype="float32")
        # a hard link back to an ancestor, a soft link to a visited group and a
        # dangling soft link
        g1["g2/up"] = g1
        g1["soft"] = h5py.SoftLink("/g1")
        f["dangling"] = h5py.SoftLink("/does/not/exist")
        # committed datatypes are not datasets
        f["named_type"] = np.dtype("int32")


def write_bad(path: Path) -> None:
    with h5py.File(path, "w") as f:
        f["good"] = np.arange(3, dtype="int32")
        for name, dtype in BAD_DATASETS.items():
            f.create_dataset(name, (2,), dtype=dtype)
        f.create_dataset("null", data=h5py.Empty("f4"))


@pytest.fixture(scope="session")
def data_dir(tmp_path_factory) -> Path:
    data = tmp_path_factory.mktemp("data")
    write_sample(data / "sample.h5")
    write_bad(data / "bad.h5")
    with h5py.File(data / "complex_names.h5", "w") as f:
        z = np.array([1 + 2j, 3 - 4j], dtype="complex64")
        out = np.empty(2, dtype=[("re", "f4"), ("im", "f4")])
        out["re"], out["im"] = z.real, z.imag
        f["z"] = out
    with h5py.File(data / "userblock.h5", "w", userblock_size=512) as f:
        f["x"] = np.arange(3)
    (data / "not_hdf5.h5").write_bytes(b"definitely not an hdf5 file" * 20)
    return data


@pytest.fixture()
def sample_h5(data_dir) -> Path:
    return data_dir / "sample.h5"


@pytest.fixture()
def bad_h5(data_dir) -> Path:
    return data_dir / "bad.h5"


@pytest.fixture()
def sample(sample_h5):
    from h5catalog import H5Catalog

    with H5Catalog(sample_h5) as cat:
        yield cat


@pytest.fixture(params=INTS)
def int_name(request) -> str:
    return request.param


@pytest.fixture(autouse=True)
def _assert_no_files_left_open():
    files_before = {p for p in psutil.Process().open_files() if p.path.endswith(".h5")}
    yield
    files_after = {p for p in psutil.Process().open_files() if p.path.endswith(".h5")}
    assert files_before == files_after == set()
