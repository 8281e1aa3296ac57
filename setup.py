from setuptools import find_packages, setup

setup(
    name="h5catalog",
    version="0.1.0",
    description="Typed, random-access reading of datasets in HDF5 files",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "h5py>=3.0",
        "numpy>=1.20",
        "dask[array]",
        "resource-backed-dask-array",
    ],
    extras_require={
        "remote": ["fsspec"],
        "test": ["pytest", "psutil", "fsspec"],
    },
)
