#!/usr/bin/env python

"""
Install bayescall with pip from the repo root:
 `pip install .`

Or, for developers, with the test dependencies:
 `pip install -e .[test]`
"""

import re
from setuptools import setup, find_packages


# Fetch version from the package __init__.py.
INITFILE = "bayescall/__init__.py"
CUR_VERSION = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                        open(INITFILE, "r").read(),
                        re.M).group(1)

setup(
    name="bayescall",
    version=CUR_VERSION,
    author="bayescall developers",
    description="Bayesian genotype probabilities from aligned sequencing reads",
    long_description=open('README.rst').read(),
    long_description_content_type='text/x-rst',
    packages=find_packages(),
    python_requires=">=3.10",
    install_requires=[
        "scipy",
        "numpy",
        "numba",
        "pandas",
        "pysam",
        "loguru",
        "pydantic>=2",
        "ipython",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={'console_scripts': ['bayescall = bayescall.__main__:main']},
    license='GPL',
    classifiers=[
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
)
