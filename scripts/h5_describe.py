"""Dumps the dataset catalog of hdf5 files.

Run using:

    python scripts/h5_describe.py file1.h5 s3://bucket/file2.h5 > catalog.json
"""

import json
import sys
from concurrent.futures import ThreadPoolExecutor

import h5catalog


def get_h5_stats(locator: str) -> "tuple[str, dict]":
    with h5catalog.H5Catalog(locator, strict=False) as cat:
        info = h5catalog.dataset_info(cat)
        data = {
            "datasets": [
                {"path": spec.path, "dtype": spec.dtype.name, "shape": spec.shape}
                for spec in cat.specs()
            ],
            "shapes": info.shapes.tolist(),
            "dtypes": info.dtypes.tolist(),
            "unresolved": {k: str(v) for k, v in cat.unresolved.items()},
        }
    return locator, data


if __name__ == "__main__":
    if not sys.argv[1:]:
        raise SystemExit("usage: h5_describe.py FILE [FILE ...]")

    # catalogs serialize on the library lock, but fetching remote files overlaps
    with ThreadPoolExecutor() as exc:
        results = dict(exc.map(get_h5_stats, sys.argv[1:]))

    print(json.dumps(results, default=str, indent=2))
