from __future__ import annotations

from setuptools import find_packages, setup

# numba and pandas stay optional so plain installs only need numpy.
setup(
    name="pyneopdf",
    version="0.1.0",
    description="Compressed, interpolable parton-distribution grids",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=["numpy>=1.22"],
    extras_require={
        "fast": ["numba>=0.56"],
        "dataframe": ["pandas>=1.4"],
        "test": ["pytest>=7"],
    },
    entry_points={"console_scripts": ["pyneopdf=pyneopdf.cli:main"]},
)
