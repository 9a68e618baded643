#!/usr/bin/env python3
"""
Setup script for raw2imd.

Install with pip install -e . (add [test] for the test suite).
"""

from setuptools import setup, find_packages

setup(
    name="raw2imd",
    version="1.0.0",
    description="Convert raw floppy disk sector dumps into ImageDisk (IMD) images",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.5.0",
        "rich>=13.7.0",
    ],
    extras_require={
        "test": ["pytest>=7.4.0"],
    },
    entry_points={
        "console_scripts": [
            "raw2imd=raw2imd.main:main",
        ],
    },
)
