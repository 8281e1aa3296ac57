# Write the benchmarking functions here.
# See "Writing benchmarks" in the asv docs for more information.
import tempfile
from pathlib import Path

import h5py
import numpy as np

import h5catalog


class TimeSuite:
    """Test time to do things."""

    def setup(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "bench.h5"
        with h5py.File(self.path, "w") as f:
            f["stack"] = np.random.randint(0, 4096, (64, 256, 256), dtype="uint16")
            for i in range(200):
                f[f"groups/g{i:03}/values"] = np.arange(i + 1, dtype="float64")

    def teardown(self) -> None:
        self._tmp.cleanup()

    def time_build_catalog(self) -> None:
        """Test time to walk and resolve a file."""
        with h5catalog.H5Catalog(self.path) as cat:
            _ = cat.datasets

    def time_imread(self) -> None:
        _x = h5catalog.imread(self.path, "/stack")

    def time_plane_reads(self) -> None:
        """Test time to read single planes."""
        with h5catalog.H5Catalog(self.path) as cat:
            for z in range(0, 64, 8):
                cat.read("/stack", (z, 0, 0), (1, 256, 256))
