# File: icugenotypes/setup.py
# Location: icugenotypes/setup.py
"""
Setup script for icugenotypes.

This file configures how the package is built, installed, and what
dependencies are required.
"""

import os
from setuptools import setup, find_packages

# Load version from version.py without importing the module
version = {}
with open(os.path.join("icugenotypes", "version.py")) as f:
    exec(f.read(), version)

# Read the README for the long description
this_dir = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_dir, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="icugenotypes",
    version=version["__version__"],
    description="Genotype frequencies and genotype-outcome association analysis for ICU cohorts.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "numpy",
        "scipy",
        "statsmodels",
        "jinja2",
        "openpyxl",
        "matplotlib",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["icugenotypes=icugenotypes.cli:main"]},
    include_package_data=True,
    package_data={"icugenotypes": ["config.json", "templates/*.html"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
)
